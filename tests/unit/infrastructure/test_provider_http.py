"""Tests for ProviderHttp error classification (mocked with respx)."""

from __future__ import annotations

import httpx
import pytest
import respx

from anistream.domain.exceptions import (
    MalformedResponseError,
    TransientNetworkError,
    UpstreamClientError,
    UpstreamServerError,
)
from anistream.infrastructure.metrics import MetricsCollector
from anistream.infrastructure.providers.http import ProviderHttp

_BASE = "https://provider.example.com/api"


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    with respx.mock(assert_all_called=False) as router:
        yield router


def _make_http(
    client: httpx.AsyncClient, metrics: MetricsCollector | None = None
) -> ProviderHttp:
    return ProviderHttp(
        provider="testprov", base_url=_BASE + "/", http_client=client, metrics=metrics
    )


class TestProviderHttp:
    def test_url_for(self, http_client: httpx.AsyncClient) -> None:
        http = _make_http(http_client)
        assert http.url_for("/info/x") == f"{_BASE}/info/x"
        assert http.url_for("info/x") == f"{_BASE}/info/x"

    @pytest.mark.asyncio()
    async def test_json_body(
        self, http_client: httpx.AsyncClient, respx_mock: respx.MockRouter
    ) -> None:
        route = respx_mock.get(url__startswith=f"{_BASE}/watch").respond(
            200, json={"sources": []}
        )
        http = _make_http(http_client)

        data = await http.get_json("/watch", params={"episodeId": "e1"})

        assert data == {"sources": []}
        assert route.calls.last.request.url.params["episodeId"] == "e1"

    @pytest.mark.asyncio()
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(204),
            httpx.Response(200, content=b""),
            httpx.Response(200, content=b"   "),
            httpx.Response(200, content=b"null"),
        ],
    )
    async def test_empty_body_is_none(
        self,
        http_client: httpx.AsyncClient,
        respx_mock: respx.MockRouter,
        response: httpx.Response,
    ) -> None:
        respx_mock.get(f"{_BASE}/x").mock(return_value=response)
        assert await _make_http(http_client).get_json("/x") is None

    @pytest.mark.asyncio()
    async def test_server_error(
        self, http_client: httpx.AsyncClient, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.get(f"{_BASE}/x").respond(503)
        with pytest.raises(UpstreamServerError) as exc_info:
            await _make_http(http_client).get_json("/x")
        assert exc_info.value.status_code == 503
        assert exc_info.value.provider == "testprov"

    @pytest.mark.asyncio()
    async def test_client_error(
        self, http_client: httpx.AsyncClient, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.get(f"{_BASE}/x").respond(404)
        with pytest.raises(UpstreamClientError) as exc_info:
            await _make_http(http_client).get_json("/x")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio()
    async def test_connect_error(
        self, http_client: httpx.AsyncClient, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.get(f"{_BASE}/x").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(TransientNetworkError) as exc_info:
            await _make_http(http_client).get_json("/x")
        assert exc_info.value.timeout is False

    @pytest.mark.asyncio()
    async def test_timeout(
        self, http_client: httpx.AsyncClient, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.get(f"{_BASE}/x").mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(TransientNetworkError) as exc_info:
            await _make_http(http_client).get_json("/x")
        assert exc_info.value.timeout is True

    @pytest.mark.asyncio()
    async def test_malformed_body(
        self, http_client: httpx.AsyncClient, respx_mock: respx.MockRouter
    ) -> None:
        respx_mock.get(f"{_BASE}/x").respond(200, content=b"<html>oops</html>")
        with pytest.raises(MalformedResponseError):
            await _make_http(http_client).get_json("/x")

    @pytest.mark.asyncio()
    async def test_records_metrics(
        self,
        http_client: httpx.AsyncClient,
        respx_mock: respx.MockRouter,
        metrics: MetricsCollector,
    ) -> None:
        respx_mock.get(f"{_BASE}/ok").respond(200, json={})
        respx_mock.get(f"{_BASE}/bad").respond(500)
        http = _make_http(http_client, metrics)

        await http.get_json("/ok", endpoint="ok")
        with pytest.raises(UpstreamServerError):
            await http.get_json("/bad", endpoint="bad")

        endpoints = metrics.snapshot()["endpoints"]
        assert endpoints["testprov:ok"]["successes"] == 1
        assert endpoints["testprov:bad"]["failures"] == 1
