from .retry import (
    CRITICAL,
    IMAGES,
    OPTIONAL,
    STREAMING,
    RetryExecutor,
    RetryPolicies,
    RetryPolicy,
    is_streaming_retryable,
    is_transient,
    retry_with_backoff,
)

__all__ = [
    "CRITICAL",
    "IMAGES",
    "OPTIONAL",
    "STREAMING",
    "RetryExecutor",
    "RetryPolicies",
    "RetryPolicy",
    "is_streaming_retryable",
    "is_transient",
    "retry_with_backoff",
]
