"""Assembly of the final ``ResolvedStream``."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime, timezone

from anistream.domain.entities.streaming import (
    ResolvedStream,
    StreamingPayload,
    SubtitleTrack,
)
from anistream.domain.exceptions import NoPlayableSourceError
from anistream.domain.ports.url_rewriter import UrlRewriterPort
from anistream.infrastructure.playback.selection import sort_sources
from anistream.infrastructure.playback.tracks import default_track_label, merge_tracks


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_resolved_stream(
    *,
    title_id: str,
    episode_number: int,
    streaming_episode_id: str,
    payload: StreamingPayload,
    catalog_tracks: Iterable[SubtitleTrack] = (),
    rewriter: UrlRewriterPort | None = None,
    provider: str = "",
    now: Callable[[], datetime] = _utcnow,
) -> ResolvedStream:
    """Sort sources, merge tracks and stamp the result.

    Raises:
        NoPlayableSourceError: The payload has no sources. Missing
            subtitles are never an error.
    """
    sources = sort_sources(payload.sources)
    if not sources:
        raise NoPlayableSourceError(streaming_episode_id)

    if rewriter is not None:
        sources = [replace(s, url=rewriter.rewrite(s.url, provider)) for s in sources]

    tracks = merge_tracks(payload.subtitles, catalog_tracks)
    return ResolvedStream(
        title_id=title_id,
        episode_number=episode_number,
        streaming_episode_id=streaming_episode_id,
        sources=tuple(sources),
        tracks=tuple(tracks),
        default_track_label=default_track_label(tracks),
        resolved_at=now(),
        intro=payload.intro,
        outro=payload.outro,
    )
