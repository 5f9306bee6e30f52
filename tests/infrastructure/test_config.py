"""Tests for configuration module."""

import json
import os

import pytest

from lambdaform.domain.errors import ConfigurationError
from lambdaform.infrastructure.config import (
    API_KEY_ENV_VAR,
    DEFAULT_API_HOST,
    HOST_ENV_VAR,
    ApiConfig,
    CapacityConfig,
    LambdaformConfig,
    StateConfig,
    TelemetryConfig,
    load_config,
    resolve_api_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("LAMBDAFORM_") or key.startswith("LAMBDALABS_"):
            monkeypatch.delenv(key)


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/lambdaform.json")
        assert config.log_level == "WARNING"
        assert config.api.host == ""
        assert config.capacity.poll_interval_seconds == 2.0
        assert config.capacity.timeout_seconds == 1200.0
        assert config.state.db_path == "lambdaform.db"
        assert config.telemetry.endpoint == ""

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/lambdaform.json")
        assert isinstance(config.api, ApiConfig)
        assert isinstance(config.capacity, CapacityConfig)
        assert isinstance(config.state, StateConfig)
        assert isinstance(config.telemetry, TelemetryConfig)


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "lambdaform.json"
        config_file.write_text(json.dumps({
            "log_level": "DEBUG",
            "api": {"host": "https://example.test/api/v1", "key": "file-key"},
            "capacity": {"poll_interval_seconds": 5, "timeout_seconds": 60},
            "state": {"db_path": "/tmp/state.db"},
        }))

        config = load_config(path=str(config_file))
        assert config.log_level == "DEBUG"
        assert config.api.key == "file-key"
        assert config.capacity.poll_interval_seconds == 5
        assert config.capacity.timeout_seconds == 60
        assert config.state.db_path == "/tmp/state.db"

    def test_partial_config(self, tmp_path):
        config_file = tmp_path / "lambdaform.json"
        config_file.write_text(json.dumps({"capacity": {"timeout_seconds": 30}}))

        config = load_config(path=str(config_file))
        assert config.capacity.timeout_seconds == 30
        assert config.capacity.poll_interval_seconds == 2.0  # default preserved

    def test_invalid_json_returns_defaults(self, tmp_path):
        config_file = tmp_path / "lambdaform.json"
        config_file.write_text("not valid json{{{")

        config = load_config(path=str(config_file))
        assert config == LambdaformConfig()

    def test_non_object_returns_defaults(self, tmp_path):
        config_file = tmp_path / "lambdaform.json"
        config_file.write_text("[1, 2, 3]")

        assert load_config(path=str(config_file)) == LambdaformConfig()

    def test_unknown_keys_ignored(self, tmp_path):
        config_file = tmp_path / "lambdaform.json"
        config_file.write_text(json.dumps({"state": {"db_path": "x.db", "unknown": 1}}))

        assert load_config(path=str(config_file)).state.db_path == "x.db"


class TestEnvOverride:
    def test_env_overrides_file(self, tmp_path, monkeypatch):
        config_file = tmp_path / "lambdaform.json"
        config_file.write_text(json.dumps({"capacity": {"timeout_seconds": 60}}))
        monkeypatch.setenv("LAMBDAFORM_CAPACITY_TIMEOUT_SECONDS", "600")

        config = load_config(path=str(config_file))
        assert config.capacity.timeout_seconds == 600.0

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("LAMBDAFORM_API_KEY", "env-key")

        assert load_config(path="/nonexistent.json").api.key == "env-key"

    def test_top_level_log_level(self, monkeypatch):
        monkeypatch.setenv("LAMBDAFORM_LOG_LEVEL", "DEBUG")

        assert load_config(path="/nonexistent.json").log_level == "DEBUG"

    def test_bool_conversion(self, monkeypatch):
        monkeypatch.setenv("LAMBDAFORM_TELEMETRY_INSECURE", "true")

        assert load_config(path="/nonexistent.json").telemetry.insecure is True

    def test_bad_number_rejected(self, monkeypatch):
        monkeypatch.setenv("LAMBDAFORM_CAPACITY_POLL_INTERVAL_SECONDS", "soon")

        with pytest.raises(ConfigurationError, match="poll_interval_seconds"):
            load_config(path="/nonexistent.json")


class TestResolveApiSettings:
    def test_default_host_and_provider_env_key(self):
        settings = resolve_api_settings(ApiConfig(), env={API_KEY_ENV_VAR: "k"})
        assert settings.host == DEFAULT_API_HOST
        assert settings.api_key == "k"

    def test_provider_env_host(self):
        settings = resolve_api_settings(
            ApiConfig(),
            env={API_KEY_ENV_VAR: "k", HOST_ENV_VAR: "http://localhost:8080/api/v1"},
        )
        assert settings.host == "http://localhost:8080/api/v1"

    def test_config_beats_provider_env(self):
        settings = resolve_api_settings(
            ApiConfig(host="https://cfg.test", key="cfg-key"),
            env={API_KEY_ENV_VAR: "env-key", HOST_ENV_VAR: "https://env.test"},
        )
        assert settings.host == "https://cfg.test"
        assert settings.api_key == "cfg-key"

    def test_explicit_beats_everything(self):
        settings = resolve_api_settings(
            ApiConfig(key="cfg-key"), api_key="explicit", env={API_KEY_ENV_VAR: "env"}
        )
        assert settings.api_key == "explicit"

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="API key"):
            resolve_api_settings(ApiConfig(), env={})

    def test_repr_masks_key(self):
        settings = resolve_api_settings(ApiConfig(key="very-secret"), env={})
        assert "very-secret" not in repr(settings)

    def test_timeout_carried(self):
        settings = resolve_api_settings(
            ApiConfig(key="k", request_timeout_seconds=5.0), env={}
        )
        assert settings.timeout_seconds == 5.0
