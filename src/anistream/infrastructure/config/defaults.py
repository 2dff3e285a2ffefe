"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "anistream",
    "environment": "dev",
    "http": {
        "timeout_seconds": 15.0,
        "follow_redirects": True,
        "user_agent": "anistream/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "providers": {
        "catalog_name": "hianime",
        "catalog_base_url": "https://hianime-api-jzl7.onrender.com/api/v1",
        "streaming_name": "yuma",
        "streaming_base_url": "https://yumaapi.vercel.app",
        "audio_type": "sub",
    },
    "cache": {
        "backend": "memory",
        "default_ttl_seconds": 300,
        "max_entries": 500,
        "sweep_interval_seconds": 60.0,
    },
    "retry": {
        "jitter_seconds": 1.0,
        "critical": {
            "max_attempts": 3,
            "base_delay_seconds": 1.0,
            "max_delay_seconds": 5.0,
            "backoff_factor": 2.0,
        },
        "streaming": {
            "max_attempts": 5,
            "base_delay_seconds": 0.5,
            "max_delay_seconds": 3.0,
            "backoff_factor": 1.5,
        },
        "images": {
            "max_attempts": 2,
            "base_delay_seconds": 0.5,
            "max_delay_seconds": 2.0,
            "backoff_factor": 2.0,
        },
        "optional": {
            "max_attempts": 2,
            "base_delay_seconds": 2.0,
            "max_delay_seconds": 4.0,
            "backoff_factor": 2.0,
        },
    },
    "proxy": {
        "base_url": None,
    },
    "pipeline": {
        "request_timeout_seconds": None,
        "max_playback_sessions": 1024,
    },
}
