"""Tests for structlog/dictConfig logging setup."""

from __future__ import annotations

import structlog

from anistream.infrastructure.config.schema import AppConfig
from anistream.infrastructure.logging.setup import build_logging_config


def _renderer(cfg: dict) -> object:
    return cfg["formatters"]["structlog"]["processors"][-1]


class TestBuildLoggingConfig:
    def test_console_renderer_in_dev(self) -> None:
        cfg = build_logging_config(AppConfig(environment="dev"))
        assert isinstance(_renderer(cfg), structlog.dev.ConsoleRenderer)

    def test_json_renderer_in_prod(self) -> None:
        cfg = build_logging_config(AppConfig(environment="prod"))
        assert isinstance(_renderer(cfg), structlog.processors.JSONRenderer)

    def test_level_applied_to_root_and_uvicorn(self) -> None:
        cfg = build_logging_config(AppConfig(log_level="WARNING"))
        assert cfg["root"]["level"] == "WARNING"
        assert cfg["loggers"]["uvicorn"]["level"] == "WARNING"

    def test_httpx_stays_quiet_unless_debug(self) -> None:
        info_cfg = build_logging_config(AppConfig(log_level="INFO"))
        debug_cfg = build_logging_config(AppConfig(log_level="DEBUG"))
        assert info_cfg["loggers"]["httpx"]["level"] == "WARNING"
        assert debug_cfg["loggers"]["httpx"]["level"] == "DEBUG"

    def test_handlers_use_structlog_formatter(self) -> None:
        cfg = build_logging_config(AppConfig())
        assert cfg["handlers"]["default"]["formatter"] == "structlog"
        assert cfg["handlers"]["access"]["formatter"] == "structlog"
