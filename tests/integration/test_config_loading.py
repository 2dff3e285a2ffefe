"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from anistream.infrastructure.config.load import load_config

pytestmark = pytest.mark.integration


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "anistream-test",
        "environment": "test",
        "http": {
            "timeout_seconds": 12.0,
            "user_agent": "TestAgent/1.0",
        },
        "logging": {"level": "DEBUG", "format": "console"},
        "providers": {"streaming_base_url": "https://yaml-streaming.example.com/"},
        "cache": {"max_entries": 50, "ttl": {"stream": 30}},
        "retry": {"streaming": {"max_attempts": 2}},
        "proxy": {"base_url": "https://proxy.example.com/p"},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, no ENV, no CLI: pure defaults."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "anistream"
        assert config.environment == "dev"
        assert config.http_timeout_seconds == 15.0
        assert config.log_level == "INFO"
        assert config.log_format == "console"  # dev → console
        assert config.providers.streaming_name == "yuma"
        assert config.cache.ttl.stream == 120
        assert config.retry.critical.max_attempts == 3
        assert config.proxy.base_url is None
        assert config.pipeline.request_timeout_seconds is None
        assert config.pipeline.max_playback_sessions == 1024

    def test_defaults_derive_log_format_from_environment(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"


class TestYamlOverrides:
    """YAML values override defaults."""

    def test_yaml_overrides_defaults(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "anistream-test"
        assert config.environment == "test"
        assert config.http_timeout_seconds == 12.0
        assert config.http_user_agent == "TestAgent/1.0"
        assert config.log_level == "DEBUG"
        assert config.providers.streaming_base_url == "https://yaml-streaming.example.com"
        assert config.cache.max_entries == 50
        assert config.proxy.base_url == "https://proxy.example.com/p"

    def test_nested_sections_keep_sibling_defaults(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.cache.ttl.stream == 30
        assert config.cache.ttl.detail == 900
        assert config.retry.streaming.max_attempts == 2
        assert config.retry.streaming.base_delay_seconds == 0.5
        assert config.providers.catalog_name == "hianime"

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_empty_yaml_is_allowed(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(config_path=path).app_name == "anistream"

    def test_non_mapping_yaml_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(config_path=path)


class TestEnvOverrides:
    """Environment variables override YAML and defaults."""

    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ANISTREAM_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("ANISTREAM_HTTP_TIMEOUT_SECONDS", "60.0")
        monkeypatch.setenv("ANISTREAM_PROXY_BASE_URL", "https://env-proxy.example.com")

        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.http_timeout_seconds == 60.0
        assert config.proxy.base_url == "https://env-proxy.example.com"
        # YAML values not overridden by ENV stay
        assert config.app_name == "anistream-test"

    def test_env_provider_urls_and_timeout(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ANISTREAM_CATALOG_BASE_URL", "https://cat.example.com/api/")
        monkeypatch.setenv("ANISTREAM_REQUEST_TIMEOUT_SECONDS", "20")

        config = load_config()
        assert config.providers.catalog_base_url == "https://cat.example.com/api"
        assert config.pipeline.request_timeout_seconds == 20.0

    def test_env_playback_session_bound(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ANISTREAM_MAX_PLAYBACK_SESSIONS", "16")

        config = load_config(cli_overrides={"pipeline": {"request_timeout_seconds": 9}})
        assert config.pipeline.max_playback_sessions == 16
        assert config.pipeline.request_timeout_seconds == 9.0

    def test_dotenv_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ANISTREAM_APP_NAME", raising=False)
        dotenv = tmp_path / ".env"
        dotenv.write_text("ANISTREAM_APP_NAME=from-dotenv\n", encoding="utf-8")

        try:
            config = load_config(dotenv_path=dotenv)
        finally:
            # load_dotenv writes into os.environ directly
            monkeypatch.delenv("ANISTREAM_APP_NAME", raising=False)
        assert config.app_name == "from-dotenv"

    def test_missing_dotenv_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    """CLI overrides beat everything (highest precedence)."""

    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ANISTREAM_LOG_LEVEL", "WARNING")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR", "proxy_base_url": "https://cli.example.com"},
        )
        assert config.log_level == "ERROR"
        assert config.proxy.base_url == "https://cli.example.com"

    def test_cli_overrides_with_sectioned_format(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"http": {"timeout_seconds": 5.0}},
        )
        assert config.http_timeout_seconds == 5.0


class TestValidation:
    def test_invalid_provider_url_rejected(self) -> None:
        with pytest.raises(ValueError):
            load_config(cli_overrides={"catalog_base_url": "ftp://nope"})

    def test_non_positive_request_timeout_rejected(self) -> None:
        with pytest.raises(ValueError):
            load_config(cli_overrides={"request_timeout_seconds": 0})

    def test_zero_playback_sessions_rejected(self) -> None:
        with pytest.raises(ValueError):
            load_config(cli_overrides={"max_playback_sessions": 0})

    def test_sectioned_dump_round_trips_key_sections(self) -> None:
        dumped = load_config().to_sectioned_dict()
        assert set(dumped) >= {"http", "logging", "providers", "cache", "retry", "proxy"}
        assert dumped["logging"]["format"] == "console"
