"""Source selection, subtitle merging and URL rewriting."""

from .assembly import build_resolved_stream
from .cors_proxy import CorsProxyRewriter
from .selection import QUALITY_ORDER, select_best_source, sort_sources
from .tracks import default_track_label, merge_tracks, normalize_label

__all__ = [
    "QUALITY_ORDER",
    "CorsProxyRewriter",
    "build_resolved_stream",
    "default_track_label",
    "merge_tracks",
    "normalize_label",
    "select_best_source",
    "sort_sources",
]
