"""Deterministic cache keys and invalidation tags.

Keys are derived from the exact query parameters so the same request
always maps to the same entry (and to the same in-flight fetch).
"""

from __future__ import annotations

from anistream.domain.ports.cache import CacheTag

# Tag types
HOME = "Home"
SEARCH = "Search"
ANIME_DETAIL = "AnimeDetail"
EPISODES = "Episodes"
EPISODE_INDEX = "EpisodeIndex"
STREAM = "Stream"
SUBTITLES = "Subtitles"
TITLE = "Title"
EPISODE = "Episode"


def home_key() -> str:
    return "catalog:home"


def search_key(keyword: str, page: int = 1) -> str:
    return f"catalog:search:{keyword.lower().strip()}:{page}"


def detail_key(title_id: str) -> str:
    return f"catalog:detail:{title_id}"


def episodes_key(title_id: str) -> str:
    return f"catalog:episodes:{title_id}"


def catalog_tracks_key(catalog_episode_id: str) -> str:
    return f"catalog:tracks:{catalog_episode_id}"


def episode_index_key(title_id: str) -> str:
    return f"streaming:index:{title_id}"


def watch_key(streaming_episode_id: str) -> str:
    return f"streaming:watch:{streaming_episode_id}"


def resolved_key(
    title_id: str,
    episode_number: int,
    known_streaming_episode_id: str | None = None,
) -> str:
    base = f"resolved:{title_id}:{episode_number}"
    if known_streaming_episode_id:
        return f"{base}:{known_streaming_episode_id}"
    return base


def title_tag(title_id: str) -> CacheTag:
    return CacheTag(TITLE, title_id)


def episode_tag(title_id: str, episode_number: int) -> CacheTag:
    return CacheTag(EPISODE, f"{title_id}:{episode_number}")
