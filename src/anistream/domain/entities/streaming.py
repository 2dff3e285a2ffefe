"""Domain entities for the streaming provider and resolved playback streams.

Pure value objects without framework dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SourceQuality(str, Enum):
    """Advertised quality of a streaming source."""

    FHD_1080P = "1080p"
    HD_720P = "720p"
    SD_480P = "480p"
    SD_360P = "360p"
    UNKNOWN = "unknown"


class TrackOrigin(str, Enum):
    """Provider a subtitle track came from."""

    CATALOG = "catalog"
    STREAMING = "streaming"


@dataclass(frozen=True)
class StreamingSource:
    """A single playable video source."""

    url: str
    quality: SourceQuality = SourceQuality.UNKNOWN
    is_adaptive_playlist: bool = False  # HLS/DASH manifest


@dataclass(frozen=True)
class SubtitleTrack:
    """A subtitle track attached to an episode."""

    label: str
    src: str
    is_default: bool = False
    origin: TrackOrigin = TrackOrigin.STREAMING


@dataclass(frozen=True)
class SkipRange:
    """Intro/outro marker in seconds."""

    start: float
    end: float


@dataclass(frozen=True)
class StreamingEpisode:
    """One entry of the streaming provider's per-title episode index."""

    streaming_episode_id: str
    number: int | str  # providers send both; compared after int coercion


@dataclass(frozen=True)
class StreamingEpisodeIndex:
    """Episode index of one title as published by the streaming provider.

    Never mutated: a fresh fetch replaces the cached index wholesale.
    """

    title_id: str
    episodes: tuple[StreamingEpisode, ...] = ()

    def __len__(self) -> int:
        return len(self.episodes)


@dataclass(frozen=True)
class StreamingPayload:
    """Normalized ``/watch`` response."""

    sources: tuple[StreamingSource, ...] = ()
    subtitles: tuple[SubtitleTrack, ...] = ()
    intro: SkipRange | None = None
    outro: SkipRange | None = None

    @property
    def has_sources(self) -> bool:
        return bool(self.sources)


@dataclass(frozen=True)
class ResolvedStream:
    """Final pipeline artifact handed to the presentation layer.

    ``sources`` is non-empty and ordered best-first; ``tracks`` is
    deduplicated by normalized label.
    """

    title_id: str
    episode_number: int
    streaming_episode_id: str
    sources: tuple[StreamingSource, ...]
    tracks: tuple[SubtitleTrack, ...] = ()
    default_track_label: str | None = None
    resolved_at: datetime | None = None
    intro: SkipRange | None = None
    outro: SkipRange | None = None

    @property
    def best_source(self) -> StreamingSource:
        return self.sources[0]


def coerce_episode_number(value: object) -> int | None:
    """Integer value of an episode number sent as int, float or string.

    ``2``, ``"2"``, ``2.0`` and ``" 2 "`` all give ``2``. Anything that is
    not a whole number (``"2.5"``, ``"abc"``, ``True``) gives ``None``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return int(parsed) if parsed.is_integer() else None
    return None
