"""Provider clients for the catalog and streaming APIs."""

from .catalog_client import HttpxCatalogClient
from .http import ProviderHttp
from .streaming_client import HttpxStreamingClient, parse_quality

__all__ = [
    "HttpxCatalogClient",
    "HttpxStreamingClient",
    "ProviderHttp",
    "parse_quality",
]
