"""Consumer-side playback session with supersede/abandon semantics."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Protocol

import structlog

from anistream.domain.entities.streaming import ResolvedStream
from anistream.domain.ports.cache import CacheSubscriptionPort, TaggedCachePort
from anistream.infrastructure.cache import keys

log = structlog.get_logger(__name__)


class _EpisodeResolver(Protocol):
    @staticmethod
    def validate(title_id: str, episode_number: object) -> int: ...

    async def execute(
        self,
        title_id: str,
        episode_number: int | str,
        known_streaming_episode_id: str | None = None,
        catalog_episode_id: str | None = None,
    ) -> ResolvedStream: ...


class PlaybackSession:
    """One viewer's "currently wanted episode".

    A new ``request`` supersedes the previous one: the earlier caller gets
    ``None`` and its outcome (value or error) is dropped. The shared
    network work is never cancelled; it completes and lands in the cache.
    While an episode is current, the session subscribes to its
    resolved-stream key so the entry is kept alive.
    """

    def __init__(self, *, resolver: _EpisodeResolver, cache: TaggedCachePort) -> None:
        self._resolver = resolver
        self._cache = cache
        self._generation = 0
        self._waiter: asyncio.Task[ResolvedStream] | None = None
        self._subscription: CacheSubscriptionPort | None = None

    @property
    def current_key(self) -> str | None:
        return self._subscription.key if self._subscription is not None else None

    async def request(
        self,
        title_id: str,
        episode_number: int | str,
        *,
        known_streaming_episode_id: str | None = None,
        catalog_episode_id: str | None = None,
    ) -> ResolvedStream | None:
        """Resolve an episode; ``None`` when superseded or abandoned meanwhile."""
        self._supersede()
        generation = self._generation

        number = self._resolver.validate(title_id, episode_number)
        self._subscription = self._cache.subscribe(
            keys.resolved_key(title_id, number, known_streaming_episode_id or None)
        )

        waiter = asyncio.ensure_future(
            self._resolver.execute(
                title_id,
                number,
                known_streaming_episode_id,
                catalog_episode_id,
            )
        )
        self._waiter = waiter
        try:
            result = await waiter
        except asyncio.CancelledError:
            if waiter.cancelled() and generation != self._generation:
                log.debug("playback_request_superseded", title_id=title_id)
                return None
            raise
        except Exception as e:
            if generation != self._generation:
                log.debug(
                    "playback_error_discarded",
                    title_id=title_id,
                    error_type=type(e).__name__,
                )
                return None
            raise
        finally:
            if self._waiter is waiter:
                self._waiter = None

        if generation != self._generation:
            return None
        return result

    def abandon(self) -> None:
        """Drop the current request and release its subscription."""
        self._supersede()

    def _supersede(self) -> None:
        self._generation += 1
        if self._waiter is not None and not self._waiter.done():
            # cancels only this waiter; the coalesced fetch is shielded
            self._waiter.cancel()
        self._waiter = None
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None


class PlaybackSessionRegistry:
    """Playback sessions keyed by a client-chosen session id.

    Holds at most ``max_sessions``; the least recently used session is
    abandoned when a new one would exceed the bound.
    """

    def __init__(
        self,
        *,
        resolver: _EpisodeResolver,
        cache: TaggedCachePort,
        max_sessions: int = 1024,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")
        self._resolver = resolver
        self._cache = cache
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[str, PlaybackSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> PlaybackSession:
        """Return the session for *session_id*, creating it on first use."""
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
            return session

        session = PlaybackSession(resolver=self._resolver, cache=self._cache)
        self._sessions[session_id] = session
        while len(self._sessions) > self._max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            evicted.abandon()
            log.debug("playback_session_evicted", session_id=evicted_id)
        return session

    def abandon(self, session_id: str) -> bool:
        """Abandon and forget a session. False when it was unknown."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.abandon()
        return True

    def close(self) -> None:
        for session in self._sessions.values():
            session.abandon()
        self._sessions.clear()
