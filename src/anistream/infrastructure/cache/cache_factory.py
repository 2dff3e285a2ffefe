"""Cache-Factory - explicit create/dispose lifecycle for the response cache."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import structlog

from anistream.infrastructure.cache.memory_cache import Clock, TaggedMemoryCache

if TYPE_CHECKING:
    from anistream.infrastructure.config.schema import CacheConfig
    from anistream.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory"]


def create_cache(
    config: CacheConfig | None = None,
    *,
    metrics: MetricsCollector | None = None,
    clock: Clock | None = None,
) -> TaggedMemoryCache:
    """Build an independent cache instance.

    Each pipeline gets its own instance (no module-level singleton), so tests
    and parallel pipelines never share entries.

    Raises:
        ValueError: If ``config.backend`` is unknown.
    """
    if config is None:
        return TaggedMemoryCache(metrics=metrics, clock=clock)

    if config.backend != "memory":
        raise ValueError(
            f"Unknown cache backend: {config.backend!r}. Must be 'memory'."
        )

    log.info(
        "cache_factory_create",
        backend=config.backend,
        ttl=config.default_ttl_seconds,
        keep_alive=config.keep_alive.default,
        max_entries=config.max_entries,
    )
    return TaggedMemoryCache(
        default_ttl=config.default_ttl_seconds,
        default_keep_alive=config.keep_alive.default,
        max_entries=config.max_entries,
        clock=clock,
        metrics=metrics,
    )


async def dispose_cache(cache: TaggedMemoryCache) -> None:
    """Release everything the cache owns (sweeper, in-flight fills, entries)."""
    await cache.aclose()
