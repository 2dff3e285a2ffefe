"""Pass-through CORS proxy URL rewriting."""

from __future__ import annotations

import json
from collections.abc import Mapping
from urllib.parse import urlencode, urlparse

import structlog

log = structlog.get_logger(__name__)

_PASSTHROUGH_SCHEMES = frozenset({"data", "blob"})


class CorsProxyRewriter:
    """Implements ``UrlRewriterPort``.

    Without a proxy base URL every URL is returned unchanged. With one,
    remote http(s) URLs become ``{base}?url=<url>&headers=<json>`` where
    the headers are the ones the provider's CDN expects.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        provider_headers: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._provider_headers = {
            name: dict(headers) for name, headers in (provider_headers or {}).items()
        }

    @property
    def enabled(self) -> bool:
        return self._base_url is not None

    def headers_for(self, provider: str) -> dict[str, str]:
        return dict(self._provider_headers.get(provider, {}))

    def rewrite(self, url: str, provider: str) -> str:
        if not url:
            return ""
        parsed = urlparse(url)
        if parsed.scheme in _PASSTHROUGH_SCHEMES:
            return url
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            log.warning("cors_proxy_invalid_url", url=url, provider=provider)
            return url
        if self._base_url is None:
            return url

        query = {"url": url}
        headers = self.headers_for(provider)
        if headers:
            query["headers"] = json.dumps(headers, separators=(",", ":"), sort_keys=True)
        return f"{self._base_url}?{urlencode(query)}"
