"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from anistream.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from anistream.application.services.identity_resolver import (
        EpisodeIdentityResolver,
    )
    from anistream.application.session import PlaybackSessionRegistry
    from anistream.application.use_cases import (
        CatalogBrowseUseCase,
        ResolveEpisodeUseCase,
    )
    from anistream.infrastructure.cache import TaggedMemoryCache
    from anistream.infrastructure.common.retry import RetryExecutor, RetryPolicies
    from anistream.infrastructure.metrics import MetricsCollector
    from anistream.infrastructure.playback import CorsProxyRewriter
    from anistream.infrastructure.providers import (
        HttpxCatalogClient,
        HttpxStreamingClient,
    )


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: TaggedMemoryCache
    http_client: httpx.AsyncClient
    metrics: MetricsCollector
    retry_executor: RetryExecutor
    retry_policies: RetryPolicies
    url_rewriter: CorsProxyRewriter

    # Provider clients
    catalog_client: HttpxCatalogClient
    streaming_client: HttpxStreamingClient

    # Application services
    identity_resolver: EpisodeIdentityResolver
    resolve_episode_uc: ResolveEpisodeUseCase
    catalog_browse_uc: CatalogBrowseUseCase
    playback_sessions: PlaybackSessionRegistry
