"""Runtime metrics and cache maintenance endpoints."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from anistream.domain.exceptions import InvalidRequest
from anistream.domain.ports.cache import CacheTag
from anistream.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["stats"])


@router.get("/stats/metrics")
async def metrics(request: Request) -> JSONResponse:
    """Return in-memory runtime metrics.

    Includes provider call stats, cache hit/miss counters, retry counts,
    resolution outcomes and current cache occupancy.
    """
    state = cast(AppState, request.app.state)
    snapshot = state.metrics.snapshot()
    snapshot["cache_store"] = state.cache.stats()
    return JSONResponse(content=snapshot)


@router.post("/cache/invalidate")
async def invalidate_cache(
    request: Request,
    tag: str = Query(..., description="Tag as 'Type' or 'Type:id'."),
) -> JSONResponse:
    """Drop every cache entry carrying a matching tag."""
    state = cast(AppState, request.app.state)
    try:
        parsed = CacheTag.parse(tag)
    except ValueError as e:
        raise InvalidRequest(str(e)) from e

    dropped = await state.cache.invalidate_by_tag(parsed)
    log.info("cache_invalidated_via_api", tag=str(parsed), dropped=dropped)
    return JSONResponse(content={"tag": str(parsed), "invalidated": dropped})
