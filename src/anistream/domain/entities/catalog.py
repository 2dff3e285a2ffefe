"""Domain entities for the catalog provider."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CatalogEpisode:
    """One episode as numbered by the catalog provider."""

    catalog_episode_id: str
    number: int
    title: str = ""
    is_filler: bool = False


@dataclass(frozen=True)
class TitleSummary:
    """Card-level title data used by listings (home, search)."""

    id: str
    title: str
    poster: str = ""
    description: str = ""
    genres: tuple[str, ...] = ()
    rating: float = 0.0
    year: int = 0
    status: str = "Unknown"
    episodes: int = 0
    type: str = "TV"
    other_info: tuple[str, ...] = ()


@dataclass(frozen=True)
class TitleDetail(TitleSummary):
    """Full title page data."""

    more_info: dict[str, str | int] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchPage:
    """One page of search results."""

    titles: tuple[TitleSummary, ...] = ()
    total_pages: int = 0
    current_page: int = 1
    has_next_page: bool = False


@dataclass(frozen=True)
class TopTen:
    today: tuple[TitleSummary, ...] = ()
    week: tuple[TitleSummary, ...] = ()
    month: tuple[TitleSummary, ...] = ()


@dataclass(frozen=True)
class HomePage:
    """Home page sections."""

    spotlight: tuple[TitleSummary, ...] = ()
    trending: tuple[TitleSummary, ...] = ()
    top_airing: tuple[TitleSummary, ...] = ()
    most_popular: tuple[TitleSummary, ...] = ()
    most_favorite: tuple[TitleSummary, ...] = ()
    latest_episodes: tuple[TitleSummary, ...] = ()
    top10: TopTen = field(default_factory=TopTen)
    genres: tuple[str, ...] = ()
