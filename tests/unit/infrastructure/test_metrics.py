"""Tests for MetricsCollector."""

from __future__ import annotations

from anistream.infrastructure.metrics import MetricsCollector


class TestMetricsCollector:
    def test_empty_snapshot(self) -> None:
        snap = MetricsCollector().snapshot()
        assert snap["endpoints"] == {}
        assert snap["cache"] == {"hits": 0, "misses": 0, "coalesced": 0, "hit_rate": 0.0}
        assert snap["retries"] == {}
        assert snap["resolutions"] == {}

    def test_api_calls(self) -> None:
        m = MetricsCollector()
        m.record_api_call("yuma:watch", 2_000_000, success=True)
        m.record_api_call("yuma:watch", 4_000_000, success=False)

        stats = m.snapshot()["endpoints"]["yuma:watch"]
        assert stats == {
            "calls": 2,
            "successes": 1,
            "failures": 1,
            "avg_duration_ms": 3.0,
        }

    def test_cache_hit_rate(self) -> None:
        m = MetricsCollector()
        m.record_cache_lookup(hit=True)
        m.record_cache_lookup(hit=True)
        m.record_cache_lookup(hit=False)
        m.record_coalesced()

        cache = m.snapshot()["cache"]
        assert cache["hits"] == 2
        assert cache["misses"] == 1
        assert cache["coalesced"] == 1
        assert cache["hit_rate"] == 0.667

    def test_retries_and_outcomes(self) -> None:
        m = MetricsCollector()
        m.record_retry("streaming")
        m.record_retry("streaming")
        m.record_resolution("resolved")
        m.record_resolution("no_sources")

        snap = m.snapshot()
        assert snap["retries"] == {"streaming": 2}
        assert snap["resolutions"] == {"no_sources": 1, "resolved": 1}
