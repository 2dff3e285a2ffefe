"""Catalog browsing use case (home, search, title detail, episode list)."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

import structlog

from anistream.domain.entities.catalog import (
    CatalogEpisode,
    HomePage,
    SearchPage,
    TitleDetail,
)
from anistream.domain.exceptions import InvalidRequest
from anistream.domain.ports.cache import CacheTag, TaggedCachePort
from anistream.domain.ports.catalog import CatalogClientPort
from anistream.infrastructure.cache import keys

log = structlog.get_logger(__name__)

T = TypeVar("T")


class _Retrier(Protocol):
    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: Any,
        *,
        on_retry: Callable[[int, BaseException], None] | None = None,
        operation_name: str = "",
    ) -> T: ...


class _TtlConfig(Protocol):
    home: int
    search: int
    detail: int
    episodes: int


class _KeepAliveConfig(Protocol):
    default: int
    critical: int


class CatalogBrowseUseCase:
    """Cache-backed catalog reads under the ``critical`` retry policy."""

    def __init__(
        self,
        *,
        catalog: CatalogClientPort,
        cache: TaggedCachePort,
        retrier: _Retrier,
        policy: Any,
        ttl: _TtlConfig,
        keep_alive: _KeepAliveConfig,
    ) -> None:
        self._catalog = catalog
        self._cache = cache
        self._retrier = retrier
        self._policy = policy
        self._ttl = ttl
        self._keep_alive = keep_alive

    async def home(self) -> HomePage:
        return await self._cached(
            keys.home_key(),
            self._catalog.get_home,
            tags=(CacheTag(keys.HOME),),
            ttl=self._ttl.home,
            keep_alive=self._keep_alive.default,
            operation_name="catalog_home",
        )

    async def search(self, keyword: str, page: int = 1) -> SearchPage:
        keyword = keyword.strip()
        if not keyword:
            raise InvalidRequest("search keyword must not be empty")
        if page < 1:
            raise InvalidRequest(f"page must be >= 1, got {page}")
        return await self._cached(
            keys.search_key(keyword, page),
            lambda: self._catalog.search(keyword, page),
            tags=(CacheTag(keys.SEARCH),),
            ttl=self._ttl.search,
            keep_alive=self._keep_alive.default,
            operation_name="catalog_search",
        )

    async def title_detail(self, title_id: str) -> TitleDetail | None:
        """Detail page, or None when the provider has no data for the id."""
        return await self._cached(
            keys.detail_key(title_id),
            lambda: self._catalog.get_title_detail(title_id),
            tags=(CacheTag(keys.ANIME_DETAIL, title_id), keys.title_tag(title_id)),
            ttl=self._ttl.detail,
            keep_alive=self._keep_alive.critical,
            operation_name="catalog_detail",
        )

    async def episodes(self, title_id: str) -> list[CatalogEpisode]:
        return await self._cached(
            keys.episodes_key(title_id),
            lambda: self._catalog.get_episodes(title_id),
            tags=(CacheTag(keys.EPISODES, title_id), keys.title_tag(title_id)),
            ttl=self._ttl.episodes,
            keep_alive=self._keep_alive.critical,
            operation_name="catalog_episodes",
            cache_if=bool,
        )

    async def _cached(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        *,
        tags: tuple[CacheTag, ...],
        ttl: float,
        keep_alive: float,
        operation_name: str,
        cache_if: Callable[[T], bool] | None = None,
    ) -> T:
        async def _fill() -> T:
            return await self._retrier.execute(
                fetch, self._policy, operation_name=operation_name
            )

        return await self._cache.coalesce(
            key,
            _fill,
            tags=tags,
            ttl=ttl,
            keep_alive=keep_alive,
            cache_if=cache_if,
        )
