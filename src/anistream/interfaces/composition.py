"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import functools
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from anistream.application.services.identity_resolver import EpisodeIdentityResolver
from anistream.application.session import PlaybackSessionRegistry
from anistream.application.use_cases import CatalogBrowseUseCase, ResolveEpisodeUseCase
from anistream.infrastructure.cache import create_cache, dispose_cache
from anistream.infrastructure.common.retry import RetryExecutor, RetryPolicies
from anistream.infrastructure.config.schema import AppConfig
from anistream.infrastructure.metrics import MetricsCollector
from anistream.infrastructure.playback import CorsProxyRewriter, build_resolved_stream
from anistream.infrastructure.providers import HttpxCatalogClient, HttpxStreamingClient
from anistream.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def wire_services(state: AppState, config: AppConfig) -> None:
    """Build clients and use cases on top of cache, http client and metrics."""
    state.retry_policies = RetryPolicies.from_config(config.retry)
    state.retry_executor = RetryExecutor(metrics=state.metrics)
    state.url_rewriter = CorsProxyRewriter(
        base_url=config.proxy.base_url,
        provider_headers=config.proxy.provider_headers,
    )

    providers = config.providers
    state.catalog_client = HttpxCatalogClient(
        base_url=providers.catalog_base_url,
        http_client=state.http_client,
        provider=providers.catalog_name,
        category=providers.audio_type,
        metrics=state.metrics,
    )
    state.streaming_client = HttpxStreamingClient(
        base_url=providers.streaming_base_url,
        http_client=state.http_client,
        provider=providers.streaming_name,
        audio_type=providers.audio_type,
        metrics=state.metrics,
    )

    ttl = config.cache.ttl
    keep_alive = config.cache.keep_alive
    state.identity_resolver = EpisodeIdentityResolver(
        streaming=state.streaming_client,
        cache=state.cache,
        retrier=state.retry_executor,
        policy=state.retry_policies.critical,
        ttl=ttl.episode_index,
        keep_alive=keep_alive.critical,
    )
    state.resolve_episode_uc = ResolveEpisodeUseCase(
        streaming=state.streaming_client,
        catalog=state.catalog_client,
        resolver=state.identity_resolver,
        cache=state.cache,
        retrier=state.retry_executor,
        policies=state.retry_policies,
        assemble_fn=functools.partial(
            build_resolved_stream,
            rewriter=state.url_rewriter,
            provider=providers.streaming_name,
        ),
        ttl=ttl,
        keep_alive=keep_alive,
        request_timeout_seconds=config.pipeline.request_timeout_seconds,
        metrics=state.metrics,
    )
    state.catalog_browse_uc = CatalogBrowseUseCase(
        catalog=state.catalog_client,
        cache=state.cache,
        retrier=state.retry_executor,
        policy=state.retry_policies.critical,
        ttl=ttl,
        keep_alive=keep_alive,
    )
    state.playback_sessions = PlaybackSessionRegistry(
        resolver=state.resolve_episode_uc,
        cache=state.cache,
        max_sessions=config.pipeline.max_playback_sessions,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Metrics (recorded into by cache, clients and retry executor)
        2. Cache (+ background expiry sweep)
        3. HTTP client (shared by both provider clients)
        4. Clients, resolver, use cases and playback sessions
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Metrics collector
    state.metrics = MetricsCollector()

    # 2) Cache
    cache = create_cache(config.cache, metrics=state.metrics)
    await cache.__aenter__()
    cache.start_sweeper(config.cache.sweep_interval_seconds)
    state.cache = cache
    log.info(
        "cache_initialized",
        backend=config.cache.backend,
        max_entries=config.cache.max_entries,
    )

    # 3) HTTP client; retries happen above it, per policy
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent, "Accept": "application/json"},
        follow_redirects=config.http_follow_redirects,
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 4) Providers and use cases
    wire_services(state, config)
    log.info(
        "providers_initialized",
        catalog=config.providers.catalog_base_url,
        streaming=config.providers.streaming_base_url,
        proxy_enabled=state.url_rewriter.enabled,
    )

    log.info("app_startup_complete")

    try:
        yield
    finally:
        state.playback_sessions.close()
        log.info("playback_sessions_closed")

        await state.http_client.aclose()
        log.info("http_client_closed")

        await dispose_cache(state.cache)
        log.info("cache_closed")

        log.info("app_shutdown_complete")
