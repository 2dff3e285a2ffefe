"""JSON presentation of domain entities (camelCase, like the front end expects)."""

from __future__ import annotations

from typing import Any

from anistream.domain.entities.catalog import (
    CatalogEpisode,
    HomePage,
    SearchPage,
    TitleDetail,
    TitleSummary,
)
from anistream.domain.entities.streaming import (
    ResolvedStream,
    SkipRange,
    StreamingSource,
    SubtitleTrack,
)


def _skip(range_: SkipRange | None) -> dict[str, float] | None:
    if range_ is None:
        return None
    return {"start": range_.start, "end": range_.end}


def present_source(source: StreamingSource) -> dict[str, Any]:
    return {
        "url": source.url,
        "quality": source.quality.value,
        "isM3U8": source.is_adaptive_playlist,
    }


def present_track(track: SubtitleTrack) -> dict[str, Any]:
    return {
        "label": track.label,
        "src": track.src,
        "default": track.is_default,
        "origin": track.origin.value,
    }


def present_resolved_stream(stream: ResolvedStream) -> dict[str, Any]:
    return {
        "titleId": stream.title_id,
        "episodeNumber": stream.episode_number,
        "streamingEpisodeId": stream.streaming_episode_id,
        "sources": [present_source(s) for s in stream.sources],
        "tracks": [present_track(t) for t in stream.tracks],
        "defaultTrackLabel": stream.default_track_label,
        "intro": _skip(stream.intro),
        "outro": _skip(stream.outro),
        "resolvedAt": stream.resolved_at.isoformat() if stream.resolved_at else None,
    }


def present_title(title: TitleSummary) -> dict[str, Any]:
    return {
        "id": title.id,
        "title": title.title,
        "poster": title.poster,
        "description": title.description,
        "genres": list(title.genres),
        "rating": title.rating,
        "year": title.year,
        "status": title.status,
        "episodes": title.episodes,
        "type": title.type,
        "otherInfo": list(title.other_info),
    }


def present_title_detail(detail: TitleDetail) -> dict[str, Any]:
    return {**present_title(detail), "moreInfo": dict(detail.more_info)}


def present_episodes(episodes: list[CatalogEpisode]) -> dict[str, Any]:
    return {
        "episodes": [
            {
                "id": e.catalog_episode_id,
                "number": e.number,
                "title": e.title,
                "isFiller": e.is_filler,
            }
            for e in episodes
        ],
        "totalEpisodes": len(episodes),
    }


def present_search(page: SearchPage) -> dict[str, Any]:
    return {
        "animes": [present_title(t) for t in page.titles],
        "totalPages": page.total_pages,
        "currentPage": page.current_page,
        "hasNextPage": page.has_next_page,
    }


def present_home(home: HomePage) -> dict[str, Any]:
    def _many(titles: tuple[TitleSummary, ...]) -> list[dict[str, Any]]:
        return [present_title(t) for t in titles]

    return {
        "spotlight": _many(home.spotlight),
        "trending": _many(home.trending),
        "topAiring": _many(home.top_airing),
        "mostPopular": _many(home.most_popular),
        "mostFavorite": _many(home.most_favorite),
        "latestEpisodes": _many(home.latest_episodes),
        "top10": {
            "today": _many(home.top10.today),
            "week": _many(home.top10.week),
            "month": _many(home.top10.month),
        },
        "genres": list(home.genres),
    }
