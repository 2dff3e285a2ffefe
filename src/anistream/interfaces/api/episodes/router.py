"""Episode stream resolution endpoint."""

from __future__ import annotations

from typing import cast

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from anistream.interfaces.api.presenter import present_resolved_stream
from anistream.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/episodes", tags=["episodes"])


@router.get("/{title_id}/{episode_number}/stream")
async def episode_stream(
    request: Request,
    title_id: str,
    episode_number: str,
    streaming_episode_id: str | None = Query(
        default=None,
        alias="streamingEpisodeId",
        description="Skip identity resolution when the id is already known.",
    ),
    catalog_episode_id: str | None = Query(
        default=None,
        alias="catalogEpisodeId",
        description="Catalog episode id for the subtitle lookup.",
    ),
    session_id: str | None = Query(
        default=None,
        alias="sessionId",
        min_length=1,
        description=(
            "Client playback session. A newer request in the same session "
            "supersedes this one, which then answers 409."
        ),
    ),
) -> JSONResponse:
    """Resolve one episode to ordered sources and merged subtitle tracks.

    Pipeline errors are rendered by the registered AnistreamError handler.
    """
    state = cast(AppState, request.app.state)
    if session_id is None:
        resolved = await state.resolve_episode_uc.execute(
            title_id,
            episode_number,
            known_streaming_episode_id=streaming_episode_id,
            catalog_episode_id=catalog_episode_id,
        )
        return JSONResponse(content=present_resolved_stream(resolved))

    session = state.playback_sessions.get(session_id)
    outcome = await session.request(
        title_id,
        episode_number,
        known_streaming_episode_id=streaming_episode_id,
        catalog_episode_id=catalog_episode_id,
    )
    if outcome is None:
        log.info(
            "episode_stream_superseded",
            session_id=session_id,
            title_id=title_id,
            episode_number=episode_number,
        )
        return JSONResponse(
            status_code=409,
            content={
                "error": "RequestSuperseded",
                "sessionId": session_id,
                "message": "A newer request in this session replaced this one.",
            },
        )
    return JSONResponse(content=present_resolved_stream(outcome))


@router.delete("/sessions/{session_id}")
async def abandon_session(request: Request, session_id: str) -> JSONResponse:
    """Abandon a playback session and release its cache keep-alive."""
    state = cast(AppState, request.app.state)
    abandoned = state.playback_sessions.abandon(session_id)
    return JSONResponse(content={"sessionId": session_id, "abandoned": abandoned})
