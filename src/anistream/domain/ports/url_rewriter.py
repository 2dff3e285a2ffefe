"""Port for the pass-through CORS proxy."""

from __future__ import annotations

from typing import Protocol


class UrlRewriterPort(Protocol):
    """Rewrites a source URL so the playback engine can fetch it."""

    def rewrite(self, url: str, provider: str) -> str: ...
