"""Episode resolution use case.

(title_id, episode_number) -> streaming episode id -> parallel
(streaming sources | catalog subtitles) -> sort + merge -> ResolvedStream.

Every step is cache-coalesced, so concurrent requests for the same
episode share one identity resolution and one streaming fetch chain.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, TypeVar
from uuid import uuid4

import structlog

from anistream.domain.entities.streaming import (
    ResolvedStream,
    StreamingPayload,
    SubtitleTrack,
    coerce_episode_number,
)
from anistream.domain.exceptions import (
    AnistreamError,
    InvalidEpisodeRequest,
    SubtitleFetchFailure,
    TransientNetworkError,
)
from anistream.domain.ports.cache import CacheTag, TaggedCachePort
from anistream.domain.ports.catalog import CatalogClientPort
from anistream.domain.ports.streaming import StreamingClientPort
from anistream.infrastructure.cache import keys

log = structlog.get_logger(__name__)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Protocols for injected collaborators
# ---------------------------------------------------------------------------


class _Retrier(Protocol):
    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: Any,
        *,
        on_retry: Callable[[int, BaseException], None] | None = None,
        operation_name: str = "",
    ) -> T: ...


class _RetryPolicies(Protocol):
    """Named retry policies consumed by the pipeline."""

    streaming: Any
    optional: Any


class _IdentityResolver(Protocol):
    async def resolve(self, title_id: str, episode_number: int) -> str: ...


class _TtlConfig(Protocol):
    episodes: int
    stream: int
    subtitles: int
    resolved: int


class _KeepAliveConfig(Protocol):
    default: int
    critical: int
    streaming: int


class _MetricsRecorder(Protocol):
    def record_resolution(self, outcome: str) -> None: ...


class _AssembleFn(Protocol):
    def __call__(
        self,
        *,
        title_id: str,
        episode_number: int,
        streaming_episode_id: str,
        payload: StreamingPayload,
        catalog_tracks: list[SubtitleTrack],
    ) -> ResolvedStream: ...


StateObserver = Callable[[str, "ResolutionState"], None]

# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class ResolutionState(str, Enum):
    IDLE = "idle"
    RESOLVING_IDENTITY = "resolving_identity"
    FETCHING_STREAM = "fetching_stream"
    MERGING = "merging"
    RESOLVED = "resolved"
    FAILED = "failed"


_TRANSITIONS: dict[ResolutionState, frozenset[ResolutionState]] = {
    ResolutionState.IDLE: frozenset(
        {ResolutionState.RESOLVING_IDENTITY, ResolutionState.FETCHING_STREAM}
    ),
    ResolutionState.RESOLVING_IDENTITY: frozenset(
        {ResolutionState.FETCHING_STREAM, ResolutionState.FAILED}
    ),
    ResolutionState.FETCHING_STREAM: frozenset(
        {ResolutionState.MERGING, ResolutionState.FAILED}
    ),
    ResolutionState.MERGING: frozenset(
        {ResolutionState.RESOLVED, ResolutionState.FAILED}
    ),
    ResolutionState.RESOLVED: frozenset(),
    ResolutionState.FAILED: frozenset(),
}


@dataclass
class ResolutionAttempt:
    """Mutable progress record of one pipeline run."""

    title_id: str
    episode_number: int
    known_streaming_episode_id: str | None = None
    attempt_id: str = field(default_factory=lambda: uuid4().hex[:12])
    state: ResolutionState = ResolutionState.IDLE
    history: list[ResolutionState] = field(
        default_factory=lambda: [ResolutionState.IDLE]
    )
    streaming_episode_id: str | None = None
    error: BaseException | None = None

    @property
    def finished(self) -> bool:
        return not _TRANSITIONS[self.state]

    def advance(self, new_state: ResolutionState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"illegal resolution transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        self.history.append(new_state)


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


class ResolveEpisodeUseCase:
    """Resolve one episode into a playable ``ResolvedStream``.

    Flow:
        1. Validate input, coalesce on the resolved-stream cache key.
        2. Resolve the streaming episode id (skipped when one is known).
        3. Fetch streaming sources and catalog subtitles in parallel.
           Subtitle failures are tolerated; streaming failures are not.
        4. Sort sources, merge tracks, cache the result.
    """

    def __init__(
        self,
        *,
        streaming: StreamingClientPort,
        catalog: CatalogClientPort,
        resolver: _IdentityResolver,
        cache: TaggedCachePort,
        retrier: _Retrier,
        policies: _RetryPolicies,
        assemble_fn: _AssembleFn,
        ttl: _TtlConfig,
        keep_alive: _KeepAliveConfig,
        request_timeout_seconds: float | None = None,
        on_state_change: StateObserver | None = None,
        metrics: _MetricsRecorder | None = None,
    ) -> None:
        self._streaming = streaming
        self._catalog = catalog
        self._resolver = resolver
        self._cache = cache
        self._retrier = retrier
        self._policies = policies
        self._assemble = assemble_fn
        self._ttl = ttl
        self._keep_alive = keep_alive
        self._timeout = request_timeout_seconds
        self._on_state_change = on_state_change
        self._metrics = metrics

    @staticmethod
    def validate(title_id: str, episode_number: Any) -> int:
        """Return the episode number as a positive int or raise."""
        if not isinstance(title_id, str) or not title_id.strip():
            raise InvalidEpisodeRequest("title id must be a non-empty string")
        number = coerce_episode_number(episode_number)
        if number is None or number < 1:
            raise InvalidEpisodeRequest(
                f"episode number must be a positive integer, got {episode_number!r}"
            )
        return number

    async def execute(
        self,
        title_id: str,
        episode_number: int | str,
        known_streaming_episode_id: str | None = None,
        catalog_episode_id: str | None = None,
    ) -> ResolvedStream:
        """Resolve a stream.

        Raises:
            InvalidEpisodeRequest: Bad title id or episode number.
            IdentityResolutionExhausted: Streaming index unavailable.
            ProviderError: Streaming fetch failed (propagated unmodified).
            NoPlayableSourceError: Streaming provider returned no sources.
        """
        number = self.validate(title_id, episode_number)
        known = known_streaming_episode_id or None

        async def _pipeline() -> ResolvedStream:
            attempt = ResolutionAttempt(
                title_id=title_id,
                episode_number=number,
                known_streaming_episode_id=known,
            )
            return await self._run(attempt, catalog_episode_id)

        pending = self._cache.coalesce(
            keys.resolved_key(title_id, number, known),
            _pipeline,
            tags=(
                keys.title_tag(title_id),
                keys.episode_tag(title_id, number),
                CacheTag(keys.STREAM),
            ),
            ttl=self._ttl.resolved,
            keep_alive=self._keep_alive.streaming,
        )

        try:
            if self._timeout is None:
                resolved = await pending
            else:
                try:
                    resolved = await asyncio.wait_for(pending, self._timeout)
                except asyncio.TimeoutError as e:
                    log.warning(
                        "resolution_timeout",
                        title_id=title_id,
                        episode_number=number,
                        timeout=self._timeout,
                    )
                    raise TransientNetworkError(
                        f"resolution exceeded {self._timeout}s", timeout=True
                    ) from e
        except AnistreamError as e:
            self._record(e.kind.value)
            raise
        self._record("resolved")
        return resolved

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    async def _run(
        self, attempt: ResolutionAttempt, catalog_episode_id: str | None
    ) -> ResolvedStream:
        try:
            if attempt.known_streaming_episode_id:
                streaming_id = attempt.known_streaming_episode_id
            else:
                self._transition(attempt, ResolutionState.RESOLVING_IDENTITY)
                streaming_id = await self._resolver.resolve(
                    attempt.title_id, attempt.episode_number
                )
            attempt.streaming_episode_id = streaming_id
            self._transition(attempt, ResolutionState.FETCHING_STREAM)

            stream_result, tracks_result = await asyncio.gather(
                self._fetch_stream(
                    attempt.title_id, attempt.episode_number, streaming_id
                ),
                self._fetch_catalog_tracks(
                    attempt.title_id, attempt.episode_number, catalog_episode_id
                ),
                return_exceptions=True,
            )
            if isinstance(stream_result, BaseException):
                raise stream_result

            catalog_tracks: list[SubtitleTrack]
            if isinstance(tracks_result, BaseException):
                if not isinstance(tracks_result, Exception):
                    raise tracks_result
                failure = SubtitleFetchFailure(
                    catalog_episode_id or f"{attempt.title_id}:{attempt.episode_number}",
                    tracks_result,
                )
                log.warning(
                    "subtitle_fetch_failed",
                    attempt_id=attempt.attempt_id,
                    error=str(failure),
                    cause=type(tracks_result).__name__,
                )
                catalog_tracks = []
            else:
                catalog_tracks = tracks_result

            self._transition(attempt, ResolutionState.MERGING)
            resolved = self._assemble(
                title_id=attempt.title_id,
                episode_number=attempt.episode_number,
                streaming_episode_id=streaming_id,
                payload=stream_result,
                catalog_tracks=catalog_tracks,
            )
            self._transition(attempt, ResolutionState.RESOLVED)
            log.info(
                "episode_resolved",
                attempt_id=attempt.attempt_id,
                title_id=attempt.title_id,
                episode_number=attempt.episode_number,
                streaming_episode_id=streaming_id,
                sources=len(resolved.sources),
                tracks=len(resolved.tracks),
            )
            return resolved
        except Exception as e:
            attempt.error = e
            if not attempt.finished:
                self._transition(attempt, ResolutionState.FAILED)
            log.warning(
                "episode_resolution_failed",
                attempt_id=attempt.attempt_id,
                title_id=attempt.title_id,
                episode_number=attempt.episode_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

    async def _fetch_stream(
        self, title_id: str, episode_number: int, streaming_episode_id: str
    ) -> StreamingPayload:
        async def _fetch() -> StreamingPayload:
            return await self._retrier.execute(
                lambda: self._streaming.get_watch(streaming_episode_id),
                self._policies.streaming,
                operation_name="streaming_watch",
            )

        return await self._cache.coalesce(
            keys.watch_key(streaming_episode_id),
            _fetch,
            tags=(
                CacheTag(keys.STREAM, streaming_episode_id),
                keys.title_tag(title_id),
                keys.episode_tag(title_id, episode_number),
            ),
            ttl=self._ttl.stream,
            keep_alive=self._keep_alive.streaming,
            cache_if=lambda payload: payload.has_sources,
        )

    async def _fetch_catalog_tracks(
        self,
        title_id: str,
        episode_number: int,
        catalog_episode_id: str | None,
    ) -> list[SubtitleTrack]:
        if not catalog_episode_id:
            catalog_episode_id = await self._lookup_catalog_episode_id(
                title_id, episode_number
            )
            if catalog_episode_id is None:
                log.debug(
                    "catalog_episode_not_listed",
                    title_id=title_id,
                    episode_number=episode_number,
                )
                return []
        episode_ref = catalog_episode_id

        async def _fetch() -> list[SubtitleTrack]:
            return await self._retrier.execute(
                lambda: self._catalog.get_episode_tracks(episode_ref),
                self._policies.optional,
                operation_name="catalog_tracks",
            )

        return await self._cache.coalesce(
            keys.catalog_tracks_key(episode_ref),
            _fetch,
            tags=(
                CacheTag(keys.SUBTITLES, episode_ref),
                keys.title_tag(title_id),
                keys.episode_tag(title_id, episode_number),
            ),
            ttl=self._ttl.subtitles,
            keep_alive=self._keep_alive.default,
        )

    async def _lookup_catalog_episode_id(
        self, title_id: str, episode_number: int
    ) -> str | None:
        async def _fetch() -> list[Any]:
            return await self._retrier.execute(
                lambda: self._catalog.get_episodes(title_id),
                self._policies.optional,
                operation_name="catalog_episodes",
            )

        episodes = await self._cache.coalesce(
            keys.episodes_key(title_id),
            _fetch,
            tags=(CacheTag(keys.EPISODES, title_id), keys.title_tag(title_id)),
            ttl=self._ttl.episodes,
            keep_alive=self._keep_alive.critical,
            cache_if=bool,
        )
        for episode in episodes:
            if episode.number == episode_number:
                return episode.catalog_episode_id
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, attempt: ResolutionAttempt, state: ResolutionState) -> None:
        previous = attempt.state
        attempt.advance(state)
        log.debug(
            "resolution_state_changed",
            attempt_id=attempt.attempt_id,
            from_state=previous.value,
            to_state=state.value,
        )
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(attempt.attempt_id, state)
        except Exception:
            log.warning(
                "state_observer_failed",
                attempt_id=attempt.attempt_id,
                state=state.value,
                exc_info=True,
            )

    def _record(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_resolution(outcome)
