"""Shared test fixtures for anistream test suite."""

from __future__ import annotations

import pytest

from anistream.domain.entities.streaming import (
    SourceQuality,
    StreamingSource,
    SubtitleTrack,
    TrackOrigin,
)
from anistream.infrastructure.cache.memory_cache import TaggedMemoryCache
from anistream.infrastructure.common.retry import RetryExecutor, RetryPolicy
from anistream.infrastructure.config.schema import CacheTtlConfig, KeepAliveConfig
from anistream.infrastructure.metrics import MetricsCollector

# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture()
async def cache(clock: FakeClock, metrics: MetricsCollector) -> TaggedMemoryCache:
    """Fresh cache per test, driven by the fake clock."""
    store = TaggedMemoryCache(
        default_ttl=300.0,
        default_keep_alive=300.0,
        clock=clock,
        metrics=metrics,
    )
    async with store:
        yield store


class RecordingSleep:
    """Async sleep replacement that only records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def retrier(sleep: RecordingSleep, metrics: MetricsCollector) -> RetryExecutor:
    """Retry executor without real delays or jitter."""
    return RetryExecutor(sleep=sleep, jitter=lambda low, high: 0.0, metrics=metrics)


@pytest.fixture()
def fast_policy() -> RetryPolicy:
    return RetryPolicy(
        name="test",
        max_attempts=3,
        base_delay_seconds=0.0,
        max_delay_seconds=0.0,
        jitter_seconds=0.0,
    )


@pytest.fixture()
def ttl_config() -> CacheTtlConfig:
    return CacheTtlConfig()


@pytest.fixture()
def keep_alive_config() -> KeepAliveConfig:
    return KeepAliveConfig()


# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def hls_720() -> StreamingSource:
    return StreamingSource(
        url="https://cdn.example.com/ep1/master.m3u8",
        quality=SourceQuality.HD_720P,
        is_adaptive_playlist=True,
    )


@pytest.fixture()
def mp4_1080() -> StreamingSource:
    return StreamingSource(
        url="https://cdn.example.com/ep1/1080.mp4",
        quality=SourceQuality.FHD_1080P,
        is_adaptive_playlist=False,
    )


@pytest.fixture()
def english_streaming() -> SubtitleTrack:
    return SubtitleTrack(
        label="english",
        src="https://cdn.example.com/ep1/en.vtt",
        is_default=False,
        origin=TrackOrigin.STREAMING,
    )


@pytest.fixture()
def english_catalog_default() -> SubtitleTrack:
    return SubtitleTrack(
        label="English",
        src="https://catalog.example.com/ep1/en.vtt",
        is_default=True,
        origin=TrackOrigin.CATALOG,
    )
