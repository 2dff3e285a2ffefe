"""Integration tests for the wired resolution pipeline.

Real provider clients, cache, retry executor and use cases as built by
``wire_services``; only the upstream HTTP APIs are mocked (respx).
"""

from __future__ import annotations

import asyncio
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx

from anistream.domain.exceptions import (
    IdentityResolutionExhausted,
    NoPlayableSourceError,
    UpstreamClientError,
)
from anistream.infrastructure.cache import TaggedMemoryCache
from anistream.infrastructure.config.schema import (
    AppConfig,
    ProviderConfig,
    ProxyConfig,
    RetryConfig,
    RetryPolicyConfig,
)
from anistream.infrastructure.metrics import MetricsCollector
from anistream.interfaces.app_state import AppState
from anistream.interfaces.composition import wire_services

pytestmark = pytest.mark.integration

_CATALOG = "https://catalog.example.com/api/v1"
_STREAMING = "https://streaming.example.com"
_PROXY = "https://proxy.example.com/p"

_INDEX = {
    "episodes": [
        {"id": "naruto-episode-1", "number": 1},
        {"id": "naruto-episode-2", "number": "2"},
    ]
}
_WATCH = {
    "sources": [
        {"url": "https://cdn.example.com/ep1/720.mp4", "quality": "720p"},
        {"url": "https://cdn.example.com/ep1/master.m3u8", "isM3U8": True},
    ],
    "subtitles": [{"url": "https://cdn.example.com/ep1/en.vtt", "lang": "English"}],
}
_CATALOG_EPISODES = {
    "data": {"episodes": [{"episodeId": "naruto?ep=101", "number": 1}]}
}
_CATALOG_TRACKS = {
    "data": {
        "tracks": [
            {"file": "https://s.example.com/en.vtt", "label": "English", "default": True},
            {"file": "https://s.example.com/pt.vtt", "label": "Portuguese"},
        ]
    }
}


def _policy(max_attempts: int) -> RetryPolicyConfig:
    return RetryPolicyConfig(
        max_attempts=max_attempts, base_delay_seconds=0.0, max_delay_seconds=0.0
    )


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig(
        providers=ProviderConfig(
            catalog_base_url=_CATALOG, streaming_base_url=_STREAMING
        ),
        retry=RetryConfig(
            jitter_seconds=0.0,
            critical=_policy(2),
            streaming=_policy(3),
            images=_policy(1),
            optional=_policy(1),
        ),
        proxy=ProxyConfig(base_url=_PROXY),
    )


@pytest.fixture()
async def state(config: AppConfig) -> AppState:
    state = AppState()
    state.config = config
    state.metrics = MetricsCollector()
    async with TaggedMemoryCache(metrics=state.metrics) as cache:
        async with httpx.AsyncClient() as http_client:
            state.cache = cache
            state.http_client = http_client
            wire_services(state, config)
            yield state


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def upstream(respx_mock: respx.MockRouter) -> dict[str, respx.Route]:
    """Happy-path routes for both providers."""
    return {
        "index": respx_mock.get(f"{_STREAMING}/info/naruto").respond(200, json=_INDEX),
        "watch": respx_mock.get(url__startswith=f"{_STREAMING}/watch").respond(
            200, json=_WATCH
        ),
        "episodes": respx_mock.get(f"{_CATALOG}/episodes/naruto").respond(
            200, json=_CATALOG_EPISODES
        ),
        "tracks": respx_mock.get(url__startswith=f"{_CATALOG}/episode/sources").respond(
            200, json=_CATALOG_TRACKS
        ),
    }


def _proxied_target(url: str) -> str:
    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == _PROXY
    return parse_qs(parsed.query)["url"][0]


class TestResolvePipeline:
    @pytest.mark.asyncio()
    async def test_resolves_end_to_end(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        stream = await state.resolve_episode_uc.execute("naruto", 1)

        assert stream.streaming_episode_id == "naruto-episode-1"
        assert [_proxied_target(s.url) for s in stream.sources] == [
            "https://cdn.example.com/ep1/master.m3u8",
            "https://cdn.example.com/ep1/720.mp4",
        ]
        assert [t.label for t in stream.tracks] == ["English", "Portuguese"]
        assert stream.tracks[0].src == "https://cdn.example.com/ep1/en.vtt"
        assert stream.default_track_label == "English"

        watch_params = upstream["watch"].calls.last.request.url.params
        assert watch_params["episodeId"] == "naruto-episode-1"
        track_params = upstream["tracks"].calls.last.request.url.params
        assert track_params["animeEpisodeId"] == "naruto?ep=101"
        assert track_params["category"] == "sub"

    @pytest.mark.asyncio()
    async def test_concurrent_requests_hit_upstream_once(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        await asyncio.gather(
            *(state.resolve_episode_uc.execute("naruto", 1) for _ in range(4))
        )

        assert upstream["index"].call_count == 1
        assert upstream["watch"].call_count == 1
        assert upstream["tracks"].call_count == 1

    @pytest.mark.asyncio()
    async def test_missing_episode_uses_fallback_id(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        stream = await state.resolve_episode_uc.execute("naruto", 5)

        assert stream.streaming_episode_id == "naruto-episode-5"
        assert upstream["watch"].calls.last.request.url.params["episodeId"] == (
            "naruto-episode-5"
        )

    @pytest.mark.asyncio()
    async def test_streaming_5xx_is_retried(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        upstream["watch"].side_effect = [
            httpx.Response(503),
            httpx.Response(200, json=_WATCH),
        ]

        stream = await state.resolve_episode_uc.execute("naruto", 1)

        assert len(stream.sources) == 2
        assert upstream["watch"].call_count == 2
        assert state.metrics.snapshot()["retries"] == {"streaming": 1}

    @pytest.mark.asyncio()
    async def test_streaming_4xx_retried_then_propagated(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        upstream["watch"].respond(404)

        with pytest.raises(UpstreamClientError) as exc_info:
            await state.resolve_episode_uc.execute("naruto", 1)

        assert exc_info.value.status_code == 404
        assert upstream["watch"].call_count == 3

    @pytest.mark.asyncio()
    async def test_index_outage_exhausts_identity_resolution(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        upstream["index"].respond(500)

        with pytest.raises(IdentityResolutionExhausted):
            await state.resolve_episode_uc.execute("naruto", 1)

        assert upstream["index"].call_count == 2
        assert upstream["watch"].call_count == 0

    @pytest.mark.asyncio()
    async def test_catalog_outage_degrades_to_streaming_tracks(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        upstream["tracks"].respond(500)

        stream = await state.resolve_episode_uc.execute("naruto", 1)

        assert [t.label for t in stream.tracks] == ["English"]
        assert stream.default_track_label is None

    @pytest.mark.asyncio()
    async def test_no_sources(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        upstream["watch"].respond(200, json={"sources": []})

        with pytest.raises(NoPlayableSourceError):
            await state.resolve_episode_uc.execute("naruto", 1)

    @pytest.mark.asyncio()
    async def test_fallback_id_without_sources_is_no_playable_source(
        self, state: AppState, respx_mock: respx.MockRouter
    ) -> None:
        index = respx_mock.get(f"{_STREAMING}/info/abc").respond(
            200, json={"episodes": [{"number": 1, "id": "strm-abc-1"}]}
        )
        watch = respx_mock.get(url__startswith=f"{_STREAMING}/watch").respond(
            200, json={"sources": []}
        )
        respx_mock.get(f"{_CATALOG}/episodes/abc").respond(
            200, json={"data": {"episodes": []}}
        )

        with pytest.raises(NoPlayableSourceError) as exc_info:
            await state.resolve_episode_uc.execute("abc", 2)

        assert not isinstance(exc_info.value, IdentityResolutionExhausted)
        assert watch.calls.last.request.url.params["episodeId"] == "strm-abc-2"

        # nothing cached: concurrent retries share one new watch call
        results = await asyncio.gather(
            *(state.resolve_episode_uc.execute("abc", 2) for _ in range(3)),
            return_exceptions=True,
        )

        assert [type(r) for r in results] == [NoPlayableSourceError] * 3
        assert watch.call_count == 2
        assert index.call_count == 1


class TestCatalogPipeline:
    @pytest.mark.asyncio()
    async def test_episodes_through_browse_use_case(
        self, state: AppState, upstream: dict[str, respx.Route]
    ) -> None:
        episodes = await state.catalog_browse_uc.episodes("naruto")
        again = await state.catalog_browse_uc.episodes("naruto")

        assert [e.catalog_episode_id for e in episodes] == ["naruto?ep=101"]
        assert again == episodes
        assert upstream["episodes"].call_count == 1
