"""Cache Port - Interface for the tagged, coalescing response cache."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheTag:
    """Invalidation label attached to an entry at creation.

    A tag without ``id`` matches every entry carrying a tag of the same
    ``type``, e.g. ``CacheTag("Stream")`` drops all stream entries.
    """

    type: str
    id: str | None = None

    def matches(self, other: CacheTag) -> bool:
        if self.type != other.type:
            return False
        return self.id is None or self.id == other.id

    def __str__(self) -> str:
        return self.type if self.id is None else f"{self.type}:{self.id}"

    @classmethod
    def parse(cls, raw: str) -> CacheTag:
        """Parse ``Type`` or ``Type:id`` (id may itself contain colons)."""
        type_, sep, id_ = raw.partition(":")
        if not type_:
            raise ValueError(f"invalid cache tag: {raw!r}")
        return cls(type_, id_ if sep else None)


class CacheSubscriptionPort(Protocol):
    """Live interest in a key; pins the entry against keep-alive expiry."""

    key: str

    def release(self) -> None: ...


class TaggedCachePort(Protocol):
    """Port for an in-memory TTL cache with tags and request coalescing.

    Implementations:
      - TaggedMemoryCache (process-lifetime dict store)
    """

    async def get(self, key: str) -> Any:
        """Retrieve value. None = not found / expired."""
        ...

    async def set(
        self,
        key: str,
        value: Any,
        *,
        tags: Iterable[CacheTag] = (),
        ttl: float | None = None,
        keep_alive: float | None = None,
    ) -> None:
        """Store value with write-once tags and TTL (seconds)."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. True = deleted, False = did not exist."""
        ...

    async def invalidate_by_tag(self, tag: CacheTag) -> int:
        """Drop every entry carrying a matching tag. Returns count dropped."""
        ...

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
        """Return cached value, join an in-flight fetch, or start one."""
        ...

    def subscribe(self, key: str) -> CacheSubscriptionPort:
        """Register a live subscriber for *key*."""
        ...

    async def clear(self) -> None:
        """Delete ALL keys."""
        ...

    async def aclose(self) -> None:
        """Cleanup hook (cancel sweeper and in-flight fetches)."""
        ...
