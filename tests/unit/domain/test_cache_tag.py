"""Tests for CacheTag matching and parsing."""

from __future__ import annotations

import pytest

from anistream.domain.ports.cache import CacheTag


class TestCacheTag:
    def test_type_only_tag_matches_all_ids(self) -> None:
        assert CacheTag("Stream").matches(CacheTag("Stream", "ep-1"))
        assert CacheTag("Stream").matches(CacheTag("Stream"))

    def test_specific_tag_matches_only_same_id(self) -> None:
        assert CacheTag("Title", "a").matches(CacheTag("Title", "a"))
        assert not CacheTag("Title", "a").matches(CacheTag("Title", "b"))
        assert not CacheTag("Title", "a").matches(CacheTag("Title"))

    def test_different_types_never_match(self) -> None:
        assert not CacheTag("Title").matches(CacheTag("Stream", "x"))

    def test_str(self) -> None:
        assert str(CacheTag("Home")) == "Home"
        assert str(CacheTag("Title", "one-piece")) == "Title:one-piece"

    def test_parse(self) -> None:
        assert CacheTag.parse("Home") == CacheTag("Home")
        assert CacheTag.parse("Title:one-piece") == CacheTag("Title", "one-piece")
        assert CacheTag.parse("Episode:one-piece:3") == CacheTag(
            "Episode", "one-piece:3"
        )

    def test_parse_rejects_empty_type(self) -> None:
        with pytest.raises(ValueError):
            CacheTag.parse(":x")
        with pytest.raises(ValueError):
            CacheTag.parse("")
