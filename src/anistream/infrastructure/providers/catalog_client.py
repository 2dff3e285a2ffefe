"""Catalog provider client (titles, episode lists, listings, subtitles)."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from anistream.domain.entities.catalog import (
    CatalogEpisode,
    HomePage,
    SearchPage,
    TitleDetail,
    TitleSummary,
    TopTen,
)
from anistream.domain.entities.streaming import SubtitleTrack, TrackOrigin
from anistream.infrastructure.providers import envelope
from anistream.infrastructure.providers.http import ProviderHttp
from anistream.infrastructure.providers.schemas import (
    RawAnime,
    RawAnimeDetail,
    RawCatalogEpisode,
    RawCatalogTrack,
    validate_items,
    validate_one,
)

if TYPE_CHECKING:
    from anistream.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)

_YEAR_RE = re.compile(r"(\d{4})")

# Track kinds that are actual captions; "thumbnails" etc. are dropped.
_CAPTION_KINDS = frozenset({"captions", "subtitles"})

_HOME_SECTIONS: dict[str, str] = {
    "spotlight": "spotlight",
    "trending": "trending",
    "top_airing": "topAiring",
    "most_popular": "mostPopular",
    "most_favorite": "mostFavorite",
    "latest_episodes": "latestEpisodes",
}


# ---------------------------------------------------------------------------
# Normalization (total: never raises, defaults to empty values)
# ---------------------------------------------------------------------------


def parse_rating(raw: str | float | None) -> float:
    if raw is None:
        return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


def extract_year(date_string: str | None) -> int:
    if not date_string:
        return 0
    match = _YEAR_RE.search(date_string)
    return int(match.group(1)) if match else 0


def _summary_fields(raw: RawAnime) -> dict[str, Any]:
    return {
        "id": raw.id,
        "title": raw.name,
        "poster": raw.poster,
        "description": raw.description or "",
        "genres": tuple(raw.genres),
        "rating": parse_rating(raw.rating),
        "year": extract_year(raw.release_date),
        "status": raw.status or "Unknown",
        "episodes": raw.total_episodes or 0,
        "type": raw.type or "TV",
        "other_info": tuple(raw.other_info),
    }


def to_title_summary(raw: RawAnime) -> TitleSummary:
    return TitleSummary(**_summary_fields(raw))


def _summaries(items: Any, *, provider: str) -> tuple[TitleSummary, ...]:
    if not isinstance(items, list):
        return ()
    return tuple(
        to_title_summary(r) for r in validate_items(RawAnime, items, provider=provider)
    )


def normalize_episodes(raw: Any, *, provider: str = "catalog") -> list[CatalogEpisode]:
    """Episode list sorted by number ascending."""
    items = validate_items(
        RawCatalogEpisode, envelope.probe_list(raw, envelope.CATALOG_EPISODES), provider=provider
    )
    episodes = [
        CatalogEpisode(
            catalog_episode_id=item.id,
            number=item.number,
            title=item.title or "",
            is_filler=item.is_filler,
        )
        for item in items
    ]
    episodes.sort(key=lambda e: e.number)
    return episodes


def normalize_title_detail(raw: Any, *, provider: str = "catalog") -> TitleDetail | None:
    anime = envelope.probe_dict(raw, envelope.CATALOG_DETAIL)
    # Some deployments nest the card fields one level deeper under "info".
    if "info" in anime and isinstance(anime["info"], dict):
        anime = {**anime["info"], "moreInfo": anime.get("moreInfo", {})}
    parsed = validate_one(RawAnimeDetail, anime, provider=provider)
    if parsed is None:
        return None
    return TitleDetail(**_summary_fields(parsed), more_info=dict(parsed.more_info))


def normalize_tracks(raw: Any, *, provider: str = "catalog") -> list[SubtitleTrack]:
    """Caption tracks only; ``origin`` is always ``catalog``."""
    items = validate_items(
        RawCatalogTrack, envelope.probe_list(raw, envelope.CATALOG_TRACKS), provider=provider
    )
    return [
        SubtitleTrack(
            label=item.label,
            src=item.src,
            is_default=item.default,
            origin=TrackOrigin.CATALOG,
        )
        for item in items
        if item.kind is None or item.kind.lower() in _CAPTION_KINDS
    ]


def normalize_home(raw: Any, *, provider: str = "catalog") -> HomePage:
    body = envelope.probe_dict(raw, envelope.CATALOG_HOME)
    sections = {
        attr: _summaries(body.get(key), provider=provider)
        for attr, key in _HOME_SECTIONS.items()
    }
    top10 = body.get("top10") if isinstance(body.get("top10"), dict) else {}
    genres = body.get("genres") if isinstance(body.get("genres"), list) else []
    return HomePage(
        **sections,
        top10=TopTen(
            today=_summaries(top10.get("today"), provider=provider),
            week=_summaries(top10.get("week"), provider=provider),
            month=_summaries(top10.get("month"), provider=provider),
        ),
        genres=tuple(g for g in genres if isinstance(g, str)),
    )


def normalize_search(raw: Any, *, page: int = 1, provider: str = "catalog") -> SearchPage:
    body = envelope.probe_dict(raw, envelope.CATALOG_SEARCH)
    titles = _summaries(envelope.probe_list(body, envelope.SEARCH_ITEMS), provider=provider)
    total_pages = body.get("totalPages")
    current_page = body.get("currentPage")
    return SearchPage(
        titles=titles,
        total_pages=total_pages if isinstance(total_pages, int) else 0,
        current_page=current_page if isinstance(current_page, int) else page,
        has_next_page=bool(body.get("hasNextPage", False)),
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class HttpxCatalogClient:
    """Async catalog client on a shared ``httpx.AsyncClient``.

    Implements ``CatalogClientPort``. ``fetch_*`` return the decoded
    body (or None); ``get_*`` return normalized domain entities.
    """

    def __init__(
        self,
        *,
        base_url: str,
        http_client: httpx.AsyncClient,
        provider: str = "hianime",
        category: str = "sub",
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._http = ProviderHttp(
            provider=provider,
            base_url=base_url,
            http_client=http_client,
            metrics=metrics,
        )
        self._category = category

    @property
    def provider(self) -> str:
        return self._http.provider

    # --- raw fetches ---

    async def fetch_episodes(self, title_id: str) -> Any:
        return await self._http.get_json(f"/episodes/{title_id}", endpoint="episodes")

    async def fetch_title_detail(self, title_id: str) -> Any:
        return await self._http.get_json(f"/anime/{title_id}", endpoint="anime")

    async def fetch_episode_tracks(self, catalog_episode_id: str) -> Any:
        return await self._http.get_json(
            "/episode/sources",
            params={"animeEpisodeId": catalog_episode_id, "category": self._category},
            endpoint="episode_sources",
        )

    async def fetch_home(self) -> Any:
        return await self._http.get_json("/home", endpoint="home")

    async def fetch_search(self, keyword: str, page: int = 1) -> Any:
        return await self._http.get_json(
            "/search", params={"keyword": keyword, "page": page}, endpoint="search"
        )

    # --- CatalogClientPort ---

    async def get_episodes(self, title_id: str) -> list[CatalogEpisode]:
        episodes = normalize_episodes(await self.fetch_episodes(title_id), provider=self.provider)
        log.debug("catalog_episodes_loaded", title_id=title_id, count=len(episodes))
        return episodes

    async def get_title_detail(self, title_id: str) -> TitleDetail | None:
        return normalize_title_detail(
            await self.fetch_title_detail(title_id), provider=self.provider
        )

    async def get_episode_tracks(self, catalog_episode_id: str) -> list[SubtitleTrack]:
        tracks = normalize_tracks(
            await self.fetch_episode_tracks(catalog_episode_id), provider=self.provider
        )
        log.debug(
            "catalog_tracks_loaded",
            catalog_episode_id=catalog_episode_id,
            count=len(tracks),
        )
        return tracks

    async def get_home(self) -> HomePage:
        return normalize_home(await self.fetch_home(), provider=self.provider)

    async def search(self, keyword: str, page: int = 1) -> SearchPage:
        return normalize_search(
            await self.fetch_search(keyword, page), page=page, provider=self.provider
        )
