"""Deterministic source ordering.

Ranking: adaptive playlists first (they switch quality on their own),
then by advertised quality, best first. Unranked qualities go last.
Ties keep their input order, so the same input always yields the same
output.
"""

from __future__ import annotations

from collections.abc import Iterable

from anistream.domain.entities.streaming import SourceQuality, StreamingSource

QUALITY_ORDER: tuple[SourceQuality, ...] = (
    SourceQuality.FHD_1080P,
    SourceQuality.HD_720P,
    SourceQuality.SD_480P,
    SourceQuality.SD_360P,
)
_QUALITY_RANK = {q: i for i, q in enumerate(QUALITY_ORDER)}
_UNRANKED = len(QUALITY_ORDER)


def source_rank(source: StreamingSource) -> tuple[int, int]:
    """Sort key; lower is better."""
    return (
        0 if source.is_adaptive_playlist else 1,
        _QUALITY_RANK.get(source.quality, _UNRANKED),
    )


def sort_sources(sources: Iterable[StreamingSource]) -> list[StreamingSource]:
    """Return a new best-first list. ``sorted`` is stable."""
    return sorted(sources, key=source_rank)


def select_best_source(sources: Iterable[StreamingSource]) -> StreamingSource | None:
    ranked = sort_sources(sources)
    return ranked[0] if ranked else None
