"""Zero-impact in-memory performance metrics.

All counters are plain Python integers manipulated inside the single-threaded
async event loop: no locks and no I/O.

``time.perf_counter_ns()`` is used for timing (monotonic, nanosecond
resolution, near-zero overhead).
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field


@dataclass
class EndpointStats:
    """Accumulated statistics for a single provider endpoint."""

    calls: int = 0
    successes: int = 0
    failures: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable summary."""
        avg_ms = (
            round(self.total_duration_ns / self.calls / 1_000_000, 1)
            if self.calls
            else 0.0
        )
        return {
            "calls": self.calls,
            "successes": self.successes,
            "failures": self.failures,
            "avg_duration_ms": avg_ms,
        }


@dataclass
class CacheStats:
    """Hit/miss counters for the response cache."""

    hits: int = 0
    misses: int = 0
    coalesced: int = 0

    def snapshot(self) -> dict[str, object]:
        lookups = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "coalesced": self.coalesced,
            "hit_rate": round(self.hits / lookups, 3) if lookups else 0.0,
        }


@dataclass
class MetricsCollector:
    """Central in-memory metrics collector.

    Thread-safety is not required; the async event loop is
    single-threaded, so plain integer increments are atomic enough.
    """

    _endpoints: dict[str, EndpointStats] = field(default_factory=dict)
    _cache: CacheStats = field(default_factory=CacheStats)
    _retries: Counter[str] = field(default_factory=Counter)
    _outcomes: Counter[str] = field(default_factory=Counter)
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_api_call(
        self,
        endpoint: str,
        duration_ns: int,
        *,
        success: bool,
    ) -> None:
        """Record one provider HTTP call."""
        stats = self._endpoints.get(endpoint)
        if stats is None:
            stats = EndpointStats()
            self._endpoints[endpoint] = stats

        stats.calls += 1
        stats.total_duration_ns += duration_ns
        if success:
            stats.successes += 1
        else:
            stats.failures += 1

    def record_cache_lookup(self, *, hit: bool) -> None:
        if hit:
            self._cache.hits += 1
        else:
            self._cache.misses += 1

    def record_coalesced(self) -> None:
        """A caller joined an in-flight fetch instead of starting one."""
        self._cache.coalesced += 1

    def record_retry(self, policy: str) -> None:
        self._retries[policy] += 1

    def record_resolution(self, outcome: str) -> None:
        """Record a finished resolution (``resolved`` or an error kind)."""
        self._outcomes[outcome] += 1

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_ns = time.perf_counter_ns() - self._start_ns
        uptime_s = round(uptime_ns / 1_000_000_000, 1)

        return {
            "uptime_seconds": uptime_s,
            "endpoints": {
                name: stats.snapshot()
                for name, stats in sorted(self._endpoints.items())
            },
            "cache": self._cache.snapshot(),
            "retries": dict(sorted(self._retries.items())),
            "resolutions": dict(sorted(self._outcomes.items())),
        }
