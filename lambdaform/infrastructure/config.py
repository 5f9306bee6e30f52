"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all lambdaform settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- API credentials resolve through their own precedence chain
  (resolve_api_settings) so the provider's LAMBDALABS_* variables keep working
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
import dataclasses
import json
import logging
import os

from lambdaform.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "https://cloud.lambdalabs.com/api/v1"
HOST_ENV_VAR = "LAMBDALABS_HOST"
API_KEY_ENV_VAR = "LAMBDALABS_API_KEY"


@dataclass(frozen=True)
class ApiConfig:
    """Provider API endpoint and credential."""
    host: str = ""
    key: str = ""
    request_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class CapacityConfig:
    """Capacity polling configuration."""
    poll_interval_seconds: float = 2.0
    timeout_seconds: float = 1200.0


@dataclass(frozen=True)
class StateConfig:
    """Resource registry configuration."""
    db_path: str = "lambdaform.db"


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False


@dataclass(frozen=True)
class LambdaformConfig:
    """Root configuration for lambdaform."""
    api: ApiConfig = field(default_factory=ApiConfig)
    capacity: CapacityConfig = field(default_factory=CapacityConfig)
    state: StateConfig = field(default_factory=StateConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    log_level: str = "WARNING"


@dataclass(frozen=True)
class ApiSettings:
    """Resolved host and credential for the HTTP gateway."""
    host: str
    api_key: str
    timeout_seconds: float = 30.0

    def __repr__(self) -> str:
        return f"ApiSettings(host={self.host!r}, api_key='***')"


_TOP_LEVEL_KEYS = {"log_level"}


def _env_override(data: dict, prefix: str = "LAMBDAFORM") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern LAMBDAFORM_SECTION_KEY.
    For example: LAMBDAFORM_API_KEY=..., LAMBDAFORM_CAPACITY_TIMEOUT_SECONDS=600
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in _TOP_LEVEL_KEYS:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
        else:
            data[parts[0]] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s does not contain a JSON object", path)
        return {}
    return data


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    # Convert env strings to the field's declared type
    for f in dataclasses.fields(cls):
        if f.name not in filtered or not isinstance(filtered[f.name], str):
            continue
        value = filtered[f.name]
        try:
            if f.type == "int":
                filtered[f.name] = int(value)
            elif f.type == "float":
                filtered[f.name] = float(value)
            elif f.type == "bool":
                filtered[f.name] = value.lower() in ("true", "1", "yes")
        except ValueError as e:
            raise ConfigurationError(
                f"invalid value for {cls.__name__}.{f.name}: {value!r}",
                operation="configure",
            ) from e

    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "LAMBDAFORM",
) -> LambdaformConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (LAMBDAFORM_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to lambdaform.json in CWD.
        env_prefix: Environment variable prefix. Defaults to LAMBDAFORM.
    """
    config_path = Path(path) if path else Path("lambdaform.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return LambdaformConfig(
        api=_build_sub_config(ApiConfig, data.get("api", {})),
        capacity=_build_sub_config(CapacityConfig, data.get("capacity", {})),
        state=_build_sub_config(StateConfig, data.get("state", {})),
        telemetry=_build_sub_config(TelemetryConfig, data.get("telemetry", {})),
        log_level=data.get("log_level", "WARNING"),
    )


def resolve_api_settings(
    api: ApiConfig,
    host: Optional[str] = None,
    api_key: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ApiSettings:
    """Resolve the gateway host and API key.

    Priority (highest to lowest):
    1. Explicit arguments
    2. Config (file or LAMBDAFORM_API_*)
    3. LAMBDALABS_HOST / LAMBDALABS_API_KEY
    4. Default host (there is no default key)
    """
    env = os.environ if env is None else env
    resolved_host = host or api.host or env.get(HOST_ENV_VAR) or DEFAULT_API_HOST
    resolved_key = api_key or api.key or env.get(API_KEY_ENV_VAR) or ""
    if not resolved_key:
        raise ConfigurationError(
            "missing Lambda Labs API key",
            operation="configure",
            detail=f"set {API_KEY_ENV_VAR} or api.key in the config file",
        )
    return ApiSettings(
        host=resolved_host,
        api_key=resolved_key,
        timeout_seconds=api.request_timeout_seconds,
    )
