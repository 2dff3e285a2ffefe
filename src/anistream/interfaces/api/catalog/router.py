"""Catalog browsing endpoints (home, search, title detail, episode list)."""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from anistream.domain.exceptions import TitleNotFound
from anistream.interfaces.api.presenter import (
    present_episodes,
    present_home,
    present_search,
    present_title_detail,
)
from anistream.interfaces.app_state import AppState

router = APIRouter(tags=["catalog"])


@router.get("/home")
async def home(request: Request) -> JSONResponse:
    state = cast(AppState, request.app.state)
    page = await state.catalog_browse_uc.home()
    return JSONResponse(content=present_home(page))


@router.get("/search")
async def search(
    request: Request,
    keyword: str = Query(..., min_length=1),
    page: int = Query(default=1, ge=1),
) -> JSONResponse:
    state = cast(AppState, request.app.state)
    result = await state.catalog_browse_uc.search(keyword, page)
    return JSONResponse(content=present_search(result))


@router.get("/titles/{title_id}")
async def title_detail(request: Request, title_id: str) -> JSONResponse:
    state = cast(AppState, request.app.state)
    detail = await state.catalog_browse_uc.title_detail(title_id)
    if detail is None:
        raise TitleNotFound(title_id)
    return JSONResponse(content=present_title_detail(detail))


@router.get("/titles/{title_id}/episodes")
async def title_episodes(request: Request, title_id: str) -> JSONResponse:
    state = cast(AppState, request.app.state)
    episodes = await state.catalog_browse_uc.episodes(title_id)
    return JSONResponse(content=present_episodes(episodes))
