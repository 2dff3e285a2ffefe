"""Streaming provider client (episode index and watch payloads)."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import httpx
import structlog

from anistream.domain.entities.streaming import (
    SkipRange,
    SourceQuality,
    StreamingEpisode,
    StreamingEpisodeIndex,
    StreamingPayload,
    StreamingSource,
    SubtitleTrack,
    TrackOrigin,
)
from anistream.infrastructure.providers import envelope
from anistream.infrastructure.providers.http import ProviderHttp
from anistream.infrastructure.providers.schemas import (
    RawSkipRange,
    RawSource,
    RawStreamingEpisode,
    RawSubtitle,
    validate_items,
    validate_one,
)

if TYPE_CHECKING:
    from anistream.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)

_QUALITY_RE = re.compile(r"^(\d{3,4})p?$")
_QUALITY_BY_HEIGHT: dict[int, SourceQuality] = {
    1080: SourceQuality.FHD_1080P,
    720: SourceQuality.HD_720P,
    480: SourceQuality.SD_480P,
    360: SourceQuality.SD_360P,
}
_ADAPTIVE_TYPES = frozenset({"hls", "m3u8"})


def parse_quality(raw: str | int | None) -> SourceQuality:
    """``"1080p"``, ``"1080"`` and ``1080`` all map to 1080p; the rest is unknown."""
    if raw is None:
        return SourceQuality.UNKNOWN
    match = _QUALITY_RE.match(str(raw).strip().lower())
    if match is None:
        return SourceQuality.UNKNOWN
    return _QUALITY_BY_HEIGHT.get(int(match.group(1)), SourceQuality.UNKNOWN)


def is_adaptive(source: RawSource) -> bool:
    if source.is_m3u8:
        return True
    if source.type and source.type.lower() in _ADAPTIVE_TYPES:
        return True
    return urlparse(source.url).path.lower().endswith(".m3u8")


def _episode_number(raw: int | float | str) -> int | str:
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else str(raw)
    return raw


def normalize_index(
    raw: Any, title_id: str, *, provider: str = "streaming"
) -> StreamingEpisodeIndex:
    items = validate_items(
        RawStreamingEpisode,
        envelope.probe_list(raw, envelope.STREAMING_INDEX),
        provider=provider,
    )
    return StreamingEpisodeIndex(
        title_id=title_id,
        episodes=tuple(
            StreamingEpisode(
                streaming_episode_id=item.id,
                number=_episode_number(item.number),
            )
            for item in items
        ),
    )


def _skip_range(raw: Any, *, provider: str) -> SkipRange | None:
    if not isinstance(raw, dict):
        return None
    parsed = validate_one(RawSkipRange, raw, provider=provider)
    if parsed is None or parsed.end <= parsed.start:
        return None
    return SkipRange(start=parsed.start, end=parsed.end)


def normalize_watch(raw: Any, *, provider: str = "streaming") -> StreamingPayload:
    body = envelope.probe_dict(raw, envelope.STREAMING_WATCH)
    sources = validate_items(
        RawSource, envelope.probe_list(body, envelope.WATCH_SOURCES), provider=provider
    )
    subtitles = validate_items(
        RawSubtitle, envelope.probe_list(body, envelope.WATCH_SUBTITLES), provider=provider
    )
    return StreamingPayload(
        sources=tuple(
            StreamingSource(
                url=s.url,
                quality=parse_quality(s.quality),
                is_adaptive_playlist=is_adaptive(s),
            )
            for s in sources
        ),
        subtitles=tuple(
            SubtitleTrack(
                label=t.label,
                src=t.src,
                is_default=t.default,
                origin=TrackOrigin.STREAMING,
            )
            for t in subtitles
        ),
        intro=_skip_range(body.get("intro"), provider=provider),
        outro=_skip_range(body.get("outro"), provider=provider),
    )


class HttpxStreamingClient:
    """Async streaming provider client. Implements ``StreamingClientPort``."""

    def __init__(
        self,
        *,
        base_url: str,
        http_client: httpx.AsyncClient,
        provider: str = "yuma",
        audio_type: str = "sub",
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._http = ProviderHttp(
            provider=provider,
            base_url=base_url,
            http_client=http_client,
            metrics=metrics,
        )
        self._audio_type = audio_type

    @property
    def provider(self) -> str:
        return self._http.provider

    async def fetch_info(self, title_id: str) -> Any:
        return await self._http.get_json(f"/info/{title_id}", endpoint="info")

    async def fetch_watch(self, streaming_episode_id: str) -> Any:
        return await self._http.get_json(
            "/watch",
            params={"episodeId": streaming_episode_id, "type": self._audio_type},
            endpoint="watch",
        )

    async def get_episode_index(self, title_id: str) -> StreamingEpisodeIndex:
        index = normalize_index(
            await self.fetch_info(title_id), title_id, provider=self.provider
        )
        log.debug("streaming_index_loaded", title_id=title_id, episodes=len(index))
        return index

    async def get_watch(self, streaming_episode_id: str) -> StreamingPayload:
        payload = normalize_watch(
            await self.fetch_watch(streaming_episode_id), provider=self.provider
        )
        log.debug(
            "streaming_watch_loaded",
            streaming_episode_id=streaming_episode_id,
            sources=len(payload.sources),
            subtitles=len(payload.subtitles),
        )
        return payload
