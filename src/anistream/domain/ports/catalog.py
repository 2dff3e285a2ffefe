"""Port for catalog provider operations."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from anistream.domain.entities.catalog import (
    CatalogEpisode,
    HomePage,
    SearchPage,
    TitleDetail,
)
from anistream.domain.entities.streaming import SubtitleTrack


@runtime_checkable
class CatalogClientPort(Protocol):
    """Async interface for the catalog provider.

    Methods raise ``ProviderError`` subclasses on transport failures and
    return empty values when the provider answers with no data.
    """

    async def get_episodes(self, title_id: str) -> list[CatalogEpisode]:
        """Episode list ordered by number."""
        ...

    async def get_title_detail(self, title_id: str) -> TitleDetail | None:
        """Title detail page data, or None when the body is empty."""
        ...

    async def get_episode_tracks(
        self, catalog_episode_id: str
    ) -> list[SubtitleTrack]:
        """Subtitle tracks published for one catalog episode."""
        ...

    async def get_home(self) -> HomePage:
        """Home page sections."""
        ...

    async def search(self, keyword: str, page: int = 1) -> SearchPage:
        """Keyword search."""
        ...
