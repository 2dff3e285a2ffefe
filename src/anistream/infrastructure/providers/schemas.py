"""Pydantic boundary models for raw provider items.

Each model validates exactly one list item; invalid items are dropped by
``validate_items`` instead of failing the whole response.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, TypeVar, Union

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

log = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# === Catalog provider ===


class RawAnime(_RawModel):
    id: str = Field(..., min_length=1)
    name: str = Field(default="", validation_alias=AliasChoices("name", "title"))
    poster: str = Field(default="", validation_alias=AliasChoices("poster", "image"))
    description: Optional[str] = None
    genres: list[str] = Field(default_factory=list)
    rating: Optional[Union[str, float]] = None
    release_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("releaseDate", "release_date")
    )
    status: Optional[str] = None
    total_episodes: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("totalEpisodes", "total_episodes"),
    )
    type: Optional[str] = None
    other_info: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("otherInfo", "other_info"),
    )


class RawAnimeDetail(RawAnime):
    more_info: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("moreInfo", "more_info"),
    )


class RawCatalogEpisode(_RawModel):
    id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("id", "episodeId")
    )
    number: int = Field(..., ge=1)
    title: Optional[str] = None
    is_filler: bool = Field(
        default=False, validation_alias=AliasChoices("isFiller", "is_filler")
    )


class RawCatalogTrack(_RawModel):
    src: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("file", "src", "url")
    )
    label: str = Field(default="", validation_alias=AliasChoices("label", "lang"))
    kind: Optional[str] = None
    default: bool = False


# === Streaming provider ===


class RawStreamingEpisode(_RawModel):
    id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("id", "episodeId")
    )
    number: Union[int, float, str] = Field(
        ..., validation_alias=AliasChoices("number", "episode", "episodeNumber")
    )


class RawSource(_RawModel):
    url: str = Field(..., min_length=1, validation_alias=AliasChoices("url", "file"))
    quality: Optional[Union[str, int]] = None
    is_m3u8: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("isM3U8", "is_m3u8")
    )
    type: Optional[str] = None


class RawSubtitle(_RawModel):
    src: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("src", "url", "file")
    )
    label: str = Field(default="", validation_alias=AliasChoices("label", "lang"))
    default: bool = False


class RawSkipRange(_RawModel):
    start: float = 0.0
    end: float = 0.0


def validate_items(
    model: type[M], items: Iterable[Any], *, provider: str = ""
) -> list[M]:
    """Validate each item against *model*; drop and log the invalid ones."""
    valid: list[M] = []
    for index, item in enumerate(items):
        try:
            valid.append(model.model_validate(item))
        except ValidationError as e:
            log.debug(
                "provider_item_dropped",
                provider=provider,
                model=model.__name__,
                index=index,
                errors=e.error_count(),
            )
    return valid


def validate_one(model: type[M], item: Any, *, provider: str = "") -> M | None:
    found = validate_items(model, [item], provider=provider)
    return found[0] if found else None
