"""Port for streaming provider operations."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from anistream.domain.entities.streaming import StreamingEpisodeIndex, StreamingPayload


@runtime_checkable
class StreamingClientPort(Protocol):
    """Async interface for the streaming provider."""

    async def get_episode_index(self, title_id: str) -> StreamingEpisodeIndex:
        """Per-title episode index from the provider's info endpoint."""
        ...

    async def get_watch(self, streaming_episode_id: str) -> StreamingPayload:
        """Sources, subtitles and skip markers for one episode."""
        ...
