"""Exponential backoff with jitter for provider calls.

A single suspending executor parameterized by a ``RetryPolicy`` and used
uniformly by every call site (catalog, streaming, images), so the policies
cannot drift apart between callers.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

import structlog

from anistream.domain.exceptions import (
    TransientNetworkError,
    UpstreamClientError,
    UpstreamServerError,
)

if TYPE_CHECKING:
    from anistream.infrastructure.config.schema import RetryConfig
    from anistream.infrastructure.metrics import MetricsCollector

log = structlog.get_logger(__name__)

T = TypeVar("T")

ShouldRetry = Callable[[BaseException], bool]
OnRetry = Callable[[int, BaseException], None]
SleepFn = Callable[[float], Awaitable[None]]
JitterFn = Callable[[float, float], float]


def is_transient(error: BaseException) -> bool:
    """Network failures, timeouts and 5xx responses."""
    return isinstance(error, (TransientNetworkError, UpstreamServerError))


def is_streaming_retryable(error: BaseException) -> bool:
    """Transient errors plus any 4xx (upstream blocking is often temporary)."""
    return is_transient(error) or isinstance(error, UpstreamClientError)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff curve for one class of operations."""

    name: str
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    backoff_factor: float = 2.0
    jitter_seconds: float = 1.0
    should_retry: ShouldRetry = field(default=is_transient, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < 0:
            raise ValueError("delays must be >= 0")

    def backoff(self, attempt: int) -> float:
        """Delay before attempt ``attempt + 1``, without jitter."""
        delay = self.base_delay_seconds * (self.backoff_factor ** (attempt - 1))
        return min(self.max_delay_seconds, delay)


CRITICAL = RetryPolicy(
    name="critical",
    max_attempts=3,
    base_delay_seconds=1.0,
    max_delay_seconds=5.0,
    backoff_factor=2.0,
)
STREAMING = RetryPolicy(
    name="streaming",
    max_attempts=5,
    base_delay_seconds=0.5,
    max_delay_seconds=3.0,
    backoff_factor=1.5,
    should_retry=is_streaming_retryable,
)
IMAGES = RetryPolicy(
    name="images",
    max_attempts=2,
    base_delay_seconds=0.5,
    max_delay_seconds=2.0,
    backoff_factor=2.0,
)
OPTIONAL = RetryPolicy(
    name="optional",
    max_attempts=2,
    base_delay_seconds=2.0,
    max_delay_seconds=4.0,
    backoff_factor=2.0,
)


@dataclass(frozen=True)
class RetryPolicies:
    """The named policies wired into the pipeline."""

    critical: RetryPolicy = CRITICAL
    streaming: RetryPolicy = STREAMING
    images: RetryPolicy = IMAGES
    optional: RetryPolicy = OPTIONAL

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicies:
        def _build(name: str, should_retry: ShouldRetry) -> RetryPolicy:
            section = getattr(config, name)
            return RetryPolicy(
                name=name,
                max_attempts=section.max_attempts,
                base_delay_seconds=section.base_delay_seconds,
                max_delay_seconds=section.max_delay_seconds,
                backoff_factor=section.backoff_factor,
                jitter_seconds=config.jitter_seconds,
                should_retry=should_retry,
            )

        return cls(
            critical=_build("critical", is_transient),
            streaming=_build("streaming", is_streaming_retryable),
            images=_build("images", is_transient),
            optional=_build("optional", is_transient),
        )


class RetryExecutor:
    """Runs an async operation under a ``RetryPolicy``.

    ``sleep`` and ``jitter`` are injectable so tests run without real
    delays.
    """

    def __init__(
        self,
        *,
        sleep: SleepFn = asyncio.sleep,
        jitter: JitterFn = random.uniform,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._sleep = sleep
        self._jitter = jitter
        self._metrics = metrics

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        *,
        on_retry: OnRetry | None = None,
        operation_name: str = "",
    ) -> T:
        """Call *operation* until it succeeds or the policy gives up.

        The original error is re-raised unchanged on the last attempt or
        when ``policy.should_retry`` rejects it.
        """
        for attempt in range(1, policy.max_attempts + 1):
            try:
                return await operation()
            except Exception as exc:
                if attempt >= policy.max_attempts or not policy.should_retry(exc):
                    if attempt > 1:
                        log.warning(
                            "retry_exhausted",
                            operation=operation_name,
                            policy=policy.name,
                            attempts=attempt,
                            error=str(exc),
                            error_type=type(exc).__name__,
                        )
                    raise

                delay = policy.backoff(attempt) + self._jitter(
                    0.0, policy.jitter_seconds
                )
                log.info(
                    "retry_scheduled",
                    operation=operation_name,
                    policy=policy.name,
                    attempt=attempt,
                    delay=round(delay, 3),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                if self._metrics is not None:
                    self._metrics.record_retry(policy.name)
                _notify(on_retry, attempt, exc)
                await self._sleep(delay)

        raise RuntimeError("unreachable")  # pragma: no cover


def _notify(hook: OnRetry | None, attempt: int, error: BaseException) -> None:
    """Invoke the diagnostics hook; its failures never alter control flow."""
    if hook is None:
        return
    try:
        hook(attempt, error)
    except Exception:
        log.warning("retry_hook_failed", attempt=attempt, exc_info=True)


_default_executor = RetryExecutor()


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    on_retry: OnRetry | None = None,
) -> T:
    """Module-level shortcut using a shared default executor."""
    return await _default_executor.execute(operation, policy, on_retry=on_retry)
