"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]

_BROWSER_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class ProviderConfig(BaseModel):
    """Upstream provider endpoints."""

    catalog_name: str = Field(
        default="hianime",
        description="Provider name of the catalog API (used for proxy headers).",
    )
    catalog_base_url: str = Field(
        default="https://hianime-api-jzl7.onrender.com/api/v1",
        description="Base URL of the catalog provider.",
    )
    streaming_name: str = Field(
        default="yuma",
        description="Provider name of the streaming API (used for proxy headers).",
    )
    streaming_base_url: str = Field(
        default="https://yumaapi.vercel.app",
        description="Base URL of the streaming provider.",
    )
    audio_type: Literal["sub", "dub"] = Field(
        default="sub",
        description="Audio variant requested from both providers.",
    )

    @field_validator("catalog_base_url", "streaming_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("provider base URL must be http(s)")
        return v.rstrip("/")


class CacheTtlConfig(BaseModel):
    """Entry lifetimes (seconds) by data volatility."""

    home: int = Field(default=5 * 60, description="Home page listings.")
    search: int = Field(default=3 * 60, description="Search result pages.")
    detail: int = Field(default=15 * 60, description="Title detail pages.")
    episodes: int = Field(default=30 * 60, description="Catalog episode lists.")
    episode_index: int = Field(
        default=15 * 60,
        description="Streaming provider episode index (identity mapping).",
    )
    stream: int = Field(
        default=2 * 60,
        description="Streaming sources (links expire upstream).",
    )
    subtitles: int = Field(default=2 * 60, description="Catalog subtitle tracks.")
    resolved: int = Field(default=2 * 60, description="Resolved streams.")


class KeepAliveConfig(BaseModel):
    """How long unused, unsubscribed entries survive (seconds)."""

    default: int = 5 * 60
    critical: int = 10 * 60
    streaming: int = 2 * 60


class CacheConfig(BaseSettings):
    """Cache configuration."""

    backend: Literal["memory"] = Field(
        default="memory",
        description="Cache backend. Only the in-process store is supported.",
    )
    default_ttl_seconds: int = Field(
        default=300,
        description="TTL for entries stored without an explicit TTL (seconds).",
    )
    max_entries: int = Field(
        default=500,
        description="Upper bound on cached entries. 0 = unbounded.",
    )
    sweep_interval_seconds: float = Field(
        default=60.0,
        description="Interval of the background expiry sweep. 0 = disabled.",
    )
    ttl: CacheTtlConfig = Field(default_factory=CacheTtlConfig)
    keep_alive: KeepAliveConfig = Field(default_factory=KeepAliveConfig)

    model_config = SettingsConfigDict(
        env_prefix="ANISTREAM_CACHE_",
        case_sensitive=False,
    )

    @field_validator("default_ttl_seconds", "max_entries")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


class RetryPolicyConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=1.0, ge=0)
    max_delay_seconds: float = Field(default=10.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)


class RetryConfig(BaseModel):
    """Named retry policies."""

    jitter_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Upper bound of the random delay added to every backoff.",
    )
    critical: RetryPolicyConfig = Field(
        default_factory=lambda: RetryPolicyConfig(
            max_attempts=3,
            base_delay_seconds=1.0,
            max_delay_seconds=5.0,
            backoff_factor=2.0,
        ),
        description="Catalog reads and identity resolution.",
    )
    streaming: RetryPolicyConfig = Field(
        default_factory=lambda: RetryPolicyConfig(
            max_attempts=5,
            base_delay_seconds=0.5,
            max_delay_seconds=3.0,
            backoff_factor=1.5,
        ),
        description="Streaming source fetches (also retries 4xx).",
    )
    images: RetryPolicyConfig = Field(
        default_factory=lambda: RetryPolicyConfig(
            max_attempts=2,
            base_delay_seconds=0.5,
            max_delay_seconds=2.0,
            backoff_factor=2.0,
        ),
    )
    optional: RetryPolicyConfig = Field(
        default_factory=lambda: RetryPolicyConfig(
            max_attempts=2,
            base_delay_seconds=2.0,
            max_delay_seconds=4.0,
            backoff_factor=2.0,
        ),
        description="Soft dependencies such as catalog subtitles.",
    )


class ProxyConfig(BaseModel):
    """Pass-through CORS proxy for playback URLs."""

    base_url: str | None = Field(
        default=None,
        description="Proxy endpoint. Unset = URLs are handed out unchanged.",
    )
    provider_headers: dict[str, dict[str, str]] = Field(
        default={
            "hianime": {
                "User-Agent": _BROWSER_UA,
                "Referer": "https://hianime.to/",
            },
            "yuma": {
                "User-Agent": _BROWSER_UA,
            },
        },
        description="Headers the proxy must attach per provider.",
    )


class PipelineConfig(BaseModel):
    request_timeout_seconds: float | None = Field(
        default=None,
        description=(
            "Optional hard limit for one episode resolution. Unset = bounded "
            "only by the retry policies."
        ),
    )
    max_playback_sessions: int = Field(
        default=1024,
        ge=1,
        description="Upper bound on concurrently tracked client playback sessions.",
    )

    @field_validator("request_timeout_seconds")
    @classmethod
    def _positive(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("request_timeout_seconds must be > 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/providers/cache/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="anistream", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Per-request timeout for provider calls.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether HTTP client follows redirects.",
    )
    http_user_agent: str = Field(
        default="anistream/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    providers: ProviderConfig = Field(default_factory=ProviderConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "providers": self.providers.model_dump(),
            "cache": self.cache.model_dump(),
            "retry": self.retry.model_dump(),
            "proxy": self.proxy.model_dump(),
            "pipeline": self.pipeline.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read ANISTREAM_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - ANISTREAM_HTTP_TIMEOUT_SECONDS
    - ANISTREAM_CATALOG_BASE_URL
    - ANISTREAM_PROXY_BASE_URL
    - ANISTREAM_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="ANISTREAM_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    catalog_base_url: Optional[str] = None
    streaming_base_url: Optional[str] = None
    proxy_base_url: Optional[str] = None
    request_timeout_seconds: Optional[float] = None
    max_playback_sessions: Optional[int] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
