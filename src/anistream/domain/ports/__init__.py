from .cache import CacheSubscriptionPort, CacheTag, TaggedCachePort
from .catalog import CatalogClientPort
from .streaming import StreamingClientPort
from .url_rewriter import UrlRewriterPort

__all__ = [
    "CacheSubscriptionPort",
    "CacheTag",
    "CatalogClientPort",
    "StreamingClientPort",
    "TaggedCachePort",
    "UrlRewriterPort",
]
