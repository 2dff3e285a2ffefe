"""Subtitle track merging across providers."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import replace

from anistream.domain.entities.streaming import SubtitleTrack

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_label(label: str) -> str:
    """Comparison key only: trimmed, lowercased, whitespace collapsed."""
    return _WHITESPACE_RE.sub(" ", label.strip().lower())


def merge_tracks(
    streaming: Iterable[SubtitleTrack],
    catalog: Iterable[SubtitleTrack],
) -> list[SubtitleTrack]:
    """Merge both providers' tracks, deduplicated by normalized label.

    Streaming tracks come first in arrival order. A catalog track is
    appended only when no track with the same normalized label exists.
    On a match, a default catalog track promotes the existing track to
    default but never replaces its ``src``.
    """
    merged: list[SubtitleTrack] = []
    position: dict[str, int] = {}

    for track in streaming:
        key = normalize_label(track.label)
        if key in position:
            continue
        position[key] = len(merged)
        merged.append(track)

    for track in catalog:
        key = normalize_label(track.label)
        idx = position.get(key)
        if idx is None:
            position[key] = len(merged)
            merged.append(track)
            continue
        existing = merged[idx]
        if track.is_default and not existing.is_default:
            merged[idx] = replace(existing, is_default=True)

    return merged


def default_track_label(tracks: Sequence[SubtitleTrack]) -> str | None:
    """Label of the first default track in final order."""
    for track in tracks:
        if track.is_default:
            return track.label
    return None
