"""Episode identity resolution.

Maps ``(title_id, episode_number)`` from the catalog provider's numbering
to the streaming provider's opaque episode id, using the streaming
provider's own per-title index. When the index has no exact match an id
is constructed from the shape of the first indexed id; this never fails.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

import structlog

from anistream.domain.entities.streaming import (
    StreamingEpisodeIndex,
    coerce_episode_number,
)
from anistream.domain.exceptions import IdentityResolutionExhausted, ProviderError
from anistream.domain.ports.cache import CacheTag, TaggedCachePort
from anistream.domain.ports.streaming import StreamingClientPort
from anistream.infrastructure.cache import keys

log = structlog.get_logger(__name__)

T = TypeVar("T")


class _Retrier(Protocol):
    """Runs an operation under a retry policy."""

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: Any,
        *,
        on_retry: Callable[[int, BaseException], None] | None = None,
        operation_name: str = "",
    ) -> T: ...


# Fallback strategies, tried in order.
_EPISODE_MARKER_RE = re.compile(r"^(?P<prefix>.+-episode-)(?P<number>\d+)(?P<suffix>.*)$")
_TRAILING_NUMBER_RE = re.compile(r"^(?P<prefix>.+[-_:/.])(?P<number>\d+)$")


def _with_number(digits: str, episode_number: int) -> str:
    # keep zero padding ("ep-01" -> "ep-05")
    return str(episode_number).zfill(len(digits))


def construct_fallback_id(
    title_id: str,
    episode_number: int,
    first_episode_id: str | None,
) -> tuple[str, str]:
    """Build a streaming episode id when the index has no exact match.

    Returns ``(episode_id, strategy)`` where strategy is one of
    ``episode_marker``, ``trailing_number`` or ``title_concat``.
    """
    if first_episode_id:
        m = _EPISODE_MARKER_RE.match(first_episode_id)
        if m:
            return (
                f"{m['prefix']}{episode_number}{m['suffix']}",
                "episode_marker",
            )
        m = _TRAILING_NUMBER_RE.match(first_episode_id)
        if m:
            return (
                f"{m['prefix']}{_with_number(m['number'], episode_number)}",
                "trailing_number",
            )
    return f"{title_id}-episode-{episode_number}", "title_concat"


def find_episode_id(index: StreamingEpisodeIndex, episode_number: int) -> str | None:
    """Exact match on the integer value of each entry's number."""
    for episode in index.episodes:
        if coerce_episode_number(episode.number) == episode_number:
            return episode.streaming_episode_id
    return None


class EpisodeIdentityResolver:
    """Resolves streaming-provider episode ids, cache-backed.

    The index fetch runs under ``policy`` inside ``cache.coalesce`` so
    concurrent resolutions for one title share a single fetch chain.
    """

    def __init__(
        self,
        *,
        streaming: StreamingClientPort,
        cache: TaggedCachePort,
        retrier: _Retrier,
        policy: Any,
        ttl: float,
        keep_alive: float | None = None,
    ) -> None:
        self._streaming = streaming
        self._cache = cache
        self._retrier = retrier
        self._policy = policy
        self._ttl = ttl
        self._keep_alive = keep_alive

    async def load_index(self, title_id: str) -> StreamingEpisodeIndex:
        """Fetch (or reuse) the streaming index of one title.

        Raises:
            IdentityResolutionExhausted: Retries exhausted or a terminal
                provider error, with the provider error as ``__cause__``.
        """

        async def _fetch() -> StreamingEpisodeIndex:
            return await self._retrier.execute(
                lambda: self._streaming.get_episode_index(title_id),
                self._policy,
                operation_name="streaming_index",
            )

        try:
            return await self._cache.coalesce(
                keys.episode_index_key(title_id),
                _fetch,
                tags=(CacheTag(keys.EPISODE_INDEX, title_id), keys.title_tag(title_id)),
                ttl=self._ttl,
                keep_alive=self._keep_alive,
                # an empty index may only mean "not published yet"
                cache_if=lambda index: len(index) > 0,
            )
        except ProviderError as e:
            log.warning(
                "identity_index_unavailable",
                title_id=title_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise IdentityResolutionExhausted(title_id, e) from e

    async def resolve(self, title_id: str, episode_number: int) -> str:
        index = await self.load_index(title_id)

        found = find_episode_id(index, episode_number)
        if found is not None:
            log.debug(
                "identity_resolved",
                title_id=title_id,
                episode_number=episode_number,
                streaming_episode_id=found,
            )
            return found

        first = index.episodes[0].streaming_episode_id if index.episodes else None
        constructed, strategy = construct_fallback_id(title_id, episode_number, first)
        log.warning(
            "identity_fallback_constructed",
            title_id=title_id,
            episode_number=episode_number,
            streaming_episode_id=constructed,
            strategy=strategy,
            index_size=len(index),
        )
        return constructed
