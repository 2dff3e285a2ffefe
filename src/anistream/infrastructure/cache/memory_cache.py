"""In-memory tagged cache with TTL, keep-alive and request coalescing.

Entries live for the process lifetime at most. An entry is evictable when
its TTL has elapsed, or when it has not been read for ``keep_alive`` seconds
and nobody holds a subscription on its key.

All mutations happen synchronously between awaits, so within one event loop
no entry is ever partially visible.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from contextlib import suppress
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from anistream.domain.ports.cache import CacheTag

if TYPE_CHECKING:
    from anistream.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """Stored value plus its lifetime bookkeeping."""

    value: Any
    tags: frozenset[CacheTag]
    created_at: float
    ttl_seconds: float
    keep_alive_seconds: float
    last_accessed_at: float

    def is_expired(self, now: float, *, subscribed: bool) -> bool:
        if now > self.created_at + self.ttl_seconds:
            return True
        if subscribed:
            return False
        return now > self.last_accessed_at + self.keep_alive_seconds

    def has_tag(self, tag: CacheTag) -> bool:
        return any(tag.matches(t) for t in self.tags)


@dataclass
class _FillState:
    tags: frozenset[CacheTag]
    stale: bool = False  # a matching tag was invalidated mid-fetch


@dataclass
class _InFlight:
    task: asyncio.Task[Any]
    state: _FillState


@dataclass
class CacheSubscription:
    """Live interest in a key. Use as a context manager or call ``release``."""

    key: str
    _cache: TaggedMemoryCache = field(repr=False)
    _released: bool = False

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._cache._unsubscribe(self.key)

    @property
    def released(self) -> bool:
        return self._released

    def __enter__(self) -> CacheSubscription:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class TaggedMemoryCache:
    """Implements ``TaggedCachePort`` on a plain dict.

    Args:
        default_ttl: TTL (seconds) for ``set()`` without explicit value.
        default_keep_alive: Seconds an unread, unsubscribed entry survives.
        max_entries: Upper bound; least recently used unsubscribed entries
            are evicted first. 0 = unbounded.
        clock: Monotonic time source (seconds).
        metrics: Optional collector for hit/miss counters.
    """

    def __init__(
        self,
        *,
        default_ttl: float = 300.0,
        default_keep_alive: float = 300.0,
        max_entries: int = 0,
        clock: Clock | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.default_ttl = default_ttl
        self.default_keep_alive = default_keep_alive
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._metrics = metrics
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, _InFlight] = {}
        self._subscribers: dict[str, int] = {}
        self._sweeper: asyncio.Task[None] | None = None

        log.info(
            "memory_cache_init",
            default_ttl=default_ttl,
            default_keep_alive=default_keep_alive,
            max_entries=max_entries,
        )

    # --- Context Manager ---
    async def __aenter__(self) -> TaggedMemoryCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop the sweeper, cancel in-flight fetches, drop all entries."""
        tasks: list[asyncio.Task[Any]] = []
        if self._sweeper is not None:
            tasks.append(self._sweeper)
            self._sweeper = None
        tasks.extend(f.task for f in self._inflight.values())
        self._inflight.clear()

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        dropped = len(self._entries)
        self._entries.clear()
        self._subscribers.clear()
        log.info("memory_cache_closed", dropped=dropped, cancelled=len(tasks))

    # --- TaggedCachePort implementation ---
    async def get(self, key: str) -> Any:
        """Read a live entry and refresh its last-access time."""
        entry = self._lookup(key)
        return None if entry is None else entry.value

    async def set(
        self,
        key: str,
        value: Any,
        *,
        tags: Iterable[CacheTag] = (),
        ttl: float | None = None,
        keep_alive: float | None = None,
    ) -> None:
        self._store(key, value, frozenset(tags), ttl, keep_alive)

    async def delete(self, key: str) -> bool:
        deleted = self._entries.pop(key, None) is not None
        log.debug("cache_delete", key=key, deleted=deleted)
        return deleted

    async def exists(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        return not entry.is_expired(self._clock(), subscribed=self._is_subscribed(key))

    async def invalidate_by_tag(self, tag: CacheTag) -> int:
        """Drop all entries carrying *tag*; in-flight fills with it won't be stored."""
        doomed = [k for k, e in self._entries.items() if e.has_tag(tag)]
        for key in doomed:
            del self._entries[key]

        stale = 0
        for pending in self._inflight.values():
            if any(tag.matches(t) for t in pending.state.tags):
                pending.state.stale = True
                stale += 1

        log.info("cache_invalidated", tag=str(tag), dropped=len(doomed), stale=stale)
        return len(doomed)

    async def clear(self) -> None:
        self._entries.clear()
        log.warning("cache_cleared")

    async def coalesce(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        *,
        tags: Iterable[CacheTag] = (),
        ttl: float | None = None,
        keep_alive: float | None = None,
        cache_if: Callable[[T], bool] | None = None,
    ) -> T:
        """Single-flight read-through.

        Concurrent callers for the same key await one shared task. The task
        is shielded: cancelling a caller never cancels the fetch, which then
        still populates the cache for later reuse. Failures reach every
        waiter and are not cached.
        """
        entry = self._lookup(key)
        if entry is not None:
            return entry.value

        pending = self._inflight.get(key)
        if pending is None:
            state = _FillState(tags=frozenset(tags))
            task = asyncio.create_task(
                self._fill(key, factory, state, ttl, keep_alive, cache_if),
                name=f"cache-fill:{key}",
            )
            task.add_done_callback(_retrieve_exception)
            pending = _InFlight(task=task, state=state)
            self._inflight[key] = pending
        else:
            log.debug("cache_coalesced", key=key)
            if self._metrics is not None:
                self._metrics.record_coalesced()

        return await asyncio.shield(pending.task)

    def subscribe(self, key: str) -> CacheSubscription:
        """Pin *key* against keep-alive expiry until released (TTL still applies)."""
        self._subscribers[key] = self._subscribers.get(key, 0) + 1
        return CacheSubscription(key=key, _cache=self)

    # --- Maintenance ---
    def purge_expired(self) -> int:
        """Remove every evictable entry. Returns count removed."""
        now = self._clock()
        doomed = [
            k
            for k, e in self._entries.items()
            if e.is_expired(now, subscribed=self._is_subscribed(k))
        ]
        for key in doomed:
            del self._entries[key]
        if doomed:
            log.debug("cache_purged", removed=len(doomed))
        return len(doomed)

    async def run_sweeper(self, interval: float) -> None:
        """Purge expired entries every *interval* seconds, forever."""
        while True:
            await asyncio.sleep(interval)
            self.purge_expired()

    def start_sweeper(self, interval: float) -> None:
        if self._sweeper is None and interval > 0:
            self._sweeper = asyncio.create_task(
                self.run_sweeper(interval), name="cache-sweeper"
            )

    def stats(self) -> dict[str, int]:
        return {
            "entries": len(self._entries),
            "in_flight": len(self._inflight),
            "subscribed_keys": len(self._subscribers),
        }

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    # --- Internals ---
    def _is_subscribed(self, key: str) -> bool:
        return self._subscribers.get(key, 0) > 0

    def _unsubscribe(self, key: str) -> None:
        count = self._subscribers.get(key, 0) - 1
        if count > 0:
            self._subscribers[key] = count
            return
        self._subscribers.pop(key, None)
        # keep-alive counts from the moment the last subscriber leaves
        entry = self._entries.get(key)
        if entry is not None:
            entry.last_accessed_at = self._clock()

    def _lookup(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None and entry.is_expired(
            now, subscribed=self._is_subscribed(key)
        ):
            del self._entries[key]
            entry = None

        hit = entry is not None
        log.debug("cache_get", key=key, hit=hit)
        if self._metrics is not None:
            self._metrics.record_cache_lookup(hit=hit)

        if entry is not None:
            entry.last_accessed_at = now
        return entry

    def _store(
        self,
        key: str,
        value: Any,
        tags: frozenset[CacheTag],
        ttl: float | None,
        keep_alive: float | None,
    ) -> None:
        if value is None:
            return
        ttl_seconds = self.default_ttl if ttl is None else ttl
        if ttl_seconds <= 0:
            return

        now = self._clock()
        self._entries[key] = CacheEntry(
            value=value,
            tags=tags,
            created_at=now,
            ttl_seconds=ttl_seconds,
            keep_alive_seconds=(
                self.default_keep_alive if keep_alive is None else keep_alive
            ),
            last_accessed_at=now,
        )
        log.debug(
            "cache_set",
            key=key,
            ttl=ttl_seconds,
            tags=sorted(str(t) for t in tags),
        )
        if self.max_entries and len(self._entries) > self.max_entries:
            self._enforce_bound()

    def _enforce_bound(self) -> None:
        self.purge_expired()
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        candidates = sorted(
            (e.last_accessed_at, k)
            for k, e in self._entries.items()
            if not self._is_subscribed(k)
        )
        for _, key in candidates[:overflow]:
            del self._entries[key]
        log.debug("cache_bound_enforced", evicted=min(overflow, len(candidates)))

    async def _fill(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        state: _FillState,
        ttl: float | None,
        keep_alive: float | None,
        cache_if: Callable[[T], bool] | None,
    ) -> T:
        try:
            value = await factory()
        finally:
            pending = self._inflight.get(key)
            if pending is not None and pending.state is state:
                del self._inflight[key]

        if state.stale:
            log.debug("cache_fill_discarded", key=key, reason="invalidated")
        elif cache_if is None or cache_if(value):
            self._store(key, value, state.tags, ttl, keep_alive)
        return value


def _retrieve_exception(task: asyncio.Task[Any]) -> None:
    # Every waiter may have been cancelled; mark the error as observed.
    if not task.cancelled():
        with suppress(Exception):
            task.exception()
