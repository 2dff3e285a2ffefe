"""Tests for CatalogBrowseUseCase."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from anistream.application.use_cases.catalog_browse import CatalogBrowseUseCase
from anistream.domain.entities.catalog import (
    CatalogEpisode,
    HomePage,
    SearchPage,
    TitleDetail,
    TitleSummary,
)
from anistream.domain.exceptions import InvalidRequest, UpstreamServerError
from anistream.domain.ports.cache import CacheTag
from anistream.infrastructure.cache import keys
from anistream.infrastructure.cache.memory_cache import TaggedMemoryCache
from anistream.infrastructure.common.retry import RetryExecutor


@pytest.fixture()
def catalog():
    client = AsyncMock()
    client.get_home.return_value = HomePage(
        trending=(TitleSummary(id="naruto", title="Naruto"),)
    )
    client.search.return_value = SearchPage(
        titles=(TitleSummary(id="bleach", title="Bleach"),), total_pages=1
    )
    client.get_title_detail.return_value = TitleDetail(id="naruto", title="Naruto")
    client.get_episodes.return_value = [CatalogEpisode("naruto?ep=1", 1)]
    return client


@pytest.fixture()
def browse(
    catalog,
    cache: TaggedMemoryCache,
    retrier: RetryExecutor,
    fast_policy,
    ttl_config,
    keep_alive_config,
) -> CatalogBrowseUseCase:
    return CatalogBrowseUseCase(
        catalog=catalog,
        cache=cache,
        retrier=retrier,
        policy=fast_policy,
        ttl=ttl_config,
        keep_alive=keep_alive_config,
    )


class TestHome:
    @pytest.mark.asyncio()
    async def test_home_is_cached(self, browse: CatalogBrowseUseCase, catalog) -> None:
        first = await browse.home()
        second = await browse.home()

        assert first.trending[0].id == "naruto"
        assert second is first
        assert catalog.get_home.await_count == 1

    @pytest.mark.asyncio()
    async def test_home_tag_invalidation(
        self, browse: CatalogBrowseUseCase, catalog, cache: TaggedMemoryCache
    ) -> None:
        await browse.home()
        await cache.invalidate_by_tag(CacheTag(keys.HOME))
        await browse.home()
        assert catalog.get_home.await_count == 2

    @pytest.mark.asyncio()
    async def test_transient_failures_are_retried(
        self, browse: CatalogBrowseUseCase, catalog
    ) -> None:
        catalog.get_home.side_effect = [
            UpstreamServerError("busy", status_code=503),
            HomePage(),
        ]

        assert await browse.home() == HomePage()
        assert catalog.get_home.await_count == 2


class TestSearch:
    @pytest.mark.asyncio()
    async def test_keyword_is_trimmed_and_cached(
        self, browse: CatalogBrowseUseCase, catalog
    ) -> None:
        await browse.search("  Bleach ", 1)
        await browse.search("bleach")

        catalog.search.assert_awaited_once_with("Bleach", 1)

    @pytest.mark.asyncio()
    async def test_pages_are_cached_separately(
        self, browse: CatalogBrowseUseCase, catalog
    ) -> None:
        await browse.search("bleach", 1)
        await browse.search("bleach", 2)
        assert catalog.search.await_count == 2

    @pytest.mark.asyncio()
    @pytest.mark.parametrize(("keyword", "page"), [("", 1), ("   ", 1), ("bleach", 0)])
    async def test_invalid_input(
        self, browse: CatalogBrowseUseCase, catalog, keyword: str, page: int
    ) -> None:
        with pytest.raises(InvalidRequest):
            await browse.search(keyword, page)
        catalog.search.assert_not_awaited()


class TestTitleData:
    @pytest.mark.asyncio()
    async def test_detail_invalidated_by_title_tag(
        self, browse: CatalogBrowseUseCase, catalog, cache: TaggedMemoryCache
    ) -> None:
        detail = await browse.title_detail("naruto")
        assert detail is not None
        assert detail.title == "Naruto"

        await cache.invalidate_by_tag(keys.title_tag("naruto"))
        await browse.title_detail("naruto")
        assert catalog.get_title_detail.await_count == 2

    @pytest.mark.asyncio()
    async def test_missing_detail_is_not_cached(
        self, browse: CatalogBrowseUseCase, catalog
    ) -> None:
        catalog.get_title_detail.return_value = None

        assert await browse.title_detail("ghost") is None
        assert await browse.title_detail("ghost") is None
        assert catalog.get_title_detail.await_count == 2

    @pytest.mark.asyncio()
    async def test_episodes_cached_when_non_empty(
        self, browse: CatalogBrowseUseCase, catalog
    ) -> None:
        await browse.episodes("naruto")
        await browse.episodes("naruto")
        assert catalog.get_episodes.await_count == 1

    @pytest.mark.asyncio()
    async def test_empty_episode_list_not_cached(
        self, browse: CatalogBrowseUseCase, catalog
    ) -> None:
        catalog.get_episodes.return_value = []

        assert await browse.episodes("naruto") == []
        await browse.episodes("naruto")
        assert catalog.get_episodes.await_count == 2
