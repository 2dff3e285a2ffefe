"""Envelope probing for provider responses.

Both providers wrap their payloads inconsistently (``{"data": ...}``,
``{"results": ...}``, bare objects, ...). Instead of ad hoc ``.get()``
chains, every field we read is described by an ordered tuple of probe
paths; the first path that resolves to a value of the expected type wins.
The empty path ``()`` means "the document itself".
"""

from __future__ import annotations

from typing import Any, TypeVar

ProbePath = tuple[str, ...]

T = TypeVar("T")

# Catalog provider
CATALOG_EPISODES: tuple[ProbePath, ...] = (
    ("data", "episodes"),
    ("results", "episodes"),
    ("episodes",),
    ("data",),
    ("results",),
)
CATALOG_TOTAL_EPISODES: tuple[ProbePath, ...] = (
    ("data", "totalEpisodes"),
    ("totalEpisodes",),
)
CATALOG_DETAIL: tuple[ProbePath, ...] = (
    ("data", "anime"),
    ("results", "anime"),
    ("anime",),
    ("data",),
)
CATALOG_TRACKS: tuple[ProbePath, ...] = (
    ("data", "tracks"),
    ("results", "tracks"),
    ("tracks",),
    ("data", "subtitles"),
    ("subtitles",),
)
CATALOG_HOME: tuple[ProbePath, ...] = (
    ("data",),
    ("results",),
    (),
)
CATALOG_SEARCH: tuple[ProbePath, ...] = (
    ("data",),
    ("results",),
    (),
)
SEARCH_ITEMS: tuple[ProbePath, ...] = (
    ("animes",),
    ("results",),
    ("data",),
)

# Streaming provider
STREAMING_INDEX: tuple[ProbePath, ...] = (
    ("episodes",),
    ("data", "episodes"),
    ("results", "episodes"),
    ("info", "episodes"),
    ("data",),
    ("results",),
)
STREAMING_WATCH: tuple[ProbePath, ...] = (
    ("data",),
    ("results",),
    ("result",),
    (),
)
WATCH_SOURCES: tuple[ProbePath, ...] = (
    ("sources",),
    ("streams",),
)
WATCH_SUBTITLES: tuple[ProbePath, ...] = (
    ("subtitles",),
    ("tracks",),
    ("captions",),
)


def resolve_path(document: Any, path: ProbePath) -> Any:
    """Walk *path* through nested mappings; ``None`` when any hop is missing."""
    current = document
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def probe(document: Any, paths: tuple[ProbePath, ...], expected: type[T]) -> T | None:
    """Return the value at the first path holding an instance of *expected*."""
    for path in paths:
        value = resolve_path(document, path)
        # bool is an int subclass; never let a flag pass as a count
        if isinstance(value, bool) and expected is not bool:
            continue
        if isinstance(value, expected):
            return value
    return None


def probe_list(document: Any, paths: tuple[ProbePath, ...]) -> list[Any]:
    return probe(document, paths, list) or []


def probe_dict(document: Any, paths: tuple[ProbePath, ...]) -> dict[str, Any]:
    return probe(document, paths, dict) or {}
