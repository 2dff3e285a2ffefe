"""Shared GET helper for provider clients.

Performs one request (no retries; callers wrap calls with the retry
executor) and classifies every failure into the domain error taxonomy.
"""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from anistream.domain.exceptions import (
    MalformedResponseError,
    TransientNetworkError,
    UpstreamClientError,
    UpstreamServerError,
)

if TYPE_CHECKING:
    from anistream.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)


class ProviderHttp:
    """JSON GETs against one provider base URL.

    Returns the decoded body, or ``None`` for an empty body (204, zero
    bytes, JSON ``null``). Empty is "no data", never an error.
    """

    def __init__(
        self,
        *,
        provider: str,
        base_url: str,
        http_client: httpx.AsyncClient,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self._http = http_client
        self._metrics = metrics

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        endpoint: str = "",
    ) -> Any:
        url = self.url_for(path)
        label = f"{self.provider}:{endpoint or path}"
        start = time.perf_counter_ns()
        success = False
        try:
            data = await self._request(url, params)
            success = True
            return data
        finally:
            if self._metrics is not None:
                self._metrics.record_api_call(
                    label, time.perf_counter_ns() - start, success=success
                )

    async def _request(self, url: str, params: dict[str, Any] | None) -> Any:
        try:
            resp = await self._http.get(url, params=params)
        except httpx.TimeoutException as e:
            log.warning("provider_timeout", provider=self.provider, url=url)
            raise TransientNetworkError(
                f"{self.provider} request timed out",
                provider=self.provider,
                url=url,
                timeout=True,
            ) from e
        except httpx.TransportError as e:
            log.warning(
                "provider_network_error",
                provider=self.provider,
                url=url,
                error=str(e),
            )
            raise TransientNetworkError(
                f"{self.provider} unreachable: {e}",
                provider=self.provider,
                url=url,
            ) from e

        status = resp.status_code
        if status >= 500:
            log.warning("provider_server_error", provider=self.provider, url=url, status=status)
            raise UpstreamServerError(
                f"{self.provider} returned HTTP {status}",
                status_code=status,
                provider=self.provider,
                url=url,
            )
        if status >= 400:
            log.info("provider_client_error", provider=self.provider, url=url, status=status)
            raise UpstreamClientError(
                f"{self.provider} returned HTTP {status}",
                status_code=status,
                provider=self.provider,
                url=url,
            )

        if status == 204 or not resp.content.strip():
            log.debug("provider_empty_body", provider=self.provider, url=url, status=status)
            return None

        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            log.warning(
                "provider_malformed_body",
                provider=self.provider,
                url=url,
                content_type=resp.headers.get("content-type", ""),
            )
            raise MalformedResponseError(
                f"{self.provider} returned a non-JSON body",
                provider=self.provider,
                url=url,
            ) from e
