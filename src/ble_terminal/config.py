"""Configuration for the BLE terminal link."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import voluptuous as vol

from .const import (
    CONF_CONNECTION_TIMEOUT,
    CONF_DEVICE_NAME,
    CONF_DISCONNECT_DEBOUNCE,
    CONF_NEWLINE_TERMINATED,
    CONF_READVERTISE_DELAY_MS,
    CONF_SCAN_TIMEOUT,
    CONF_SERVICE_UUID,
    CONF_TELEMETRY_INTERVAL_MS,
    CONF_WRITE_TIMEOUT,
    CONNECTION_TIMEOUT,
    DEFAULT_DEVICE_NAME,
    DISCONNECT_DEBOUNCE,
    READVERTISE_DELAY_MS,
    SCAN_TIMEOUT,
    SERVICE_UUID,
    TELEMETRY_INTERVAL_MS,
    WRITE_TIMEOUT,
)
from .errors import ConfigError

_LOGGER = logging.getLogger(__name__)

UUID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"

_SECONDS = vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_DEVICE_NAME, default=DEFAULT_DEVICE_NAME): vol.All(
            str, vol.Length(min=1)
        ),
        vol.Optional(CONF_SERVICE_UUID, default=SERVICE_UUID): vol.All(
            str, vol.Lower, vol.Match(UUID_PATTERN)
        ),
        vol.Optional(CONF_SCAN_TIMEOUT, default=SCAN_TIMEOUT): _SECONDS,
        vol.Optional(CONF_CONNECTION_TIMEOUT, default=CONNECTION_TIMEOUT): _SECONDS,
        vol.Optional(CONF_WRITE_TIMEOUT, default=WRITE_TIMEOUT): _SECONDS,
        vol.Optional(CONF_DISCONNECT_DEBOUNCE, default=DISCONNECT_DEBOUNCE): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
        vol.Optional(CONF_NEWLINE_TERMINATED, default=False): vol.Boolean(),
        vol.Optional(CONF_TELEMETRY_INTERVAL_MS, default=TELEMETRY_INTERVAL_MS): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(CONF_READVERTISE_DELAY_MS, default=READVERTISE_DELAY_MS): vol.All(
            vol.Coerce(int), vol.Range(min=0)
        ),
    }
)


@dataclass(frozen=True)
class LinkConfig:
    """Settings shared by both ends of the link."""

    device_name: str = DEFAULT_DEVICE_NAME
    service_uuid: str = SERVICE_UUID
    scan_timeout: float = SCAN_TIMEOUT
    connection_timeout: float = CONNECTION_TIMEOUT
    write_timeout: float = WRITE_TIMEOUT
    disconnect_debounce: float = DISCONNECT_DEBOUNCE
    newline_terminated: bool = False
    telemetry_interval_ms: int = TELEMETRY_INTERVAL_MS
    readvertise_delay_ms: int = READVERTISE_DELAY_MS

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None = None) -> LinkConfig:
        """Validate a raw mapping and build a config from it.

        Args:
            data: Raw settings keyed by the CONF_* names. Missing keys
                take their defaults.

        Returns:
            LinkConfig: The validated configuration.

        Raises:
            ConfigError: If a value is invalid or a key is unknown.
        """
        try:
            validated = CONFIG_SCHEMA(dict(data or {}))
        except vol.Invalid as err:
            raise ConfigError(f"Invalid link configuration: {err}") from err
        return cls(**validated)

    @classmethod
    def from_file(cls, path: str | Path) -> LinkConfig:
        """Load a JSON settings file and validate it."""
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as err:
            raise ConfigError(f"Cannot read config file {path}: {err}") from err
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        _LOGGER.debug("Loaded link configuration from %s", path)
        return cls.from_dict(raw)
