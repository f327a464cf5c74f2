from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import voluptuous as vol

from .const import (
    CONF_DEVICE_NAME,
    CONF_LOG_LEVEL,
    CONF_REPLAY_LOG,
    CONF_SEED,
    CONF_STATUS_RATE,
    DEFAULT_DEVICE_NAME,
    DEFAULT_REPLAY_LOG,
    DEFAULT_STATUS_RATE,
    LOG_LEVELS,
    STATUS_DELAY_MS,
)


class ConfigError(Exception):
    """Emulator configuration is invalid."""


def _device_name(value: Any) -> str:
    name = vol.Coerce(str)(value).strip()
    if not name:
        raise vol.Invalid("device name must not be empty")
    # BLE advertising name has to fit in a legacy advertisement
    if len(name.encode("utf-8")) > 29:
        raise vol.Invalid("device name must be at most 29 bytes")
    return name


CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_DEVICE_NAME, default=DEFAULT_DEVICE_NAME): _device_name,
        vol.Optional(CONF_REPLAY_LOG, default=DEFAULT_REPLAY_LOG): vol.Any(
            None, vol.All(str, vol.Length(min=1))
        ),
        vol.Optional(CONF_STATUS_RATE, default=DEFAULT_STATUS_RATE): vol.All(
            vol.Coerce(int), vol.In(list(STATUS_DELAY_MS))
        ),
        vol.Optional(CONF_SEED, default=None): vol.Any(None, vol.Coerce(int)),
        vol.Optional(CONF_LOG_LEVEL, default="INFO"): vol.All(
            vol.Upper, vol.In(LOG_LEVELS)
        ),
    }
)


@dataclass
class EmulatorConfig:
    device_name: str = DEFAULT_DEVICE_NAME
    replay_log: str | None = DEFAULT_REPLAY_LOG
    status_rate: int = DEFAULT_STATUS_RATE
    seed: int | None = None
    log_level: str = "INFO"


def load_config(data: dict | None = None) -> EmulatorConfig:
    try:
        validated = CONFIG_SCHEMA(data or {})
    except vol.Invalid as err:
        raise ConfigError(str(err)) from err
    return EmulatorConfig(**validated)


def load_config_file(path: str | Path) -> EmulatorConfig:
    """Read a JSON object from `path` and validate it."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as err:
        raise ConfigError(f"Cannot read config file {path}: {err}") from err
    except json.JSONDecodeError as err:
        raise ConfigError(f"Config file {path} is not valid JSON: {err}") from err

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return load_config(data)
