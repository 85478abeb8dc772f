"""Reconciler configuration for pyflashblocks."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pyflashblocks._constants import (
    FAST_DEBOUNCE_SECONDS,
    FAST_STREAM_URL,
    FULL_DEBOUNCE_SECONDS,
    FULL_SOURCE_URL,
    POLL_INTERVAL_SECONDS,
    RECONNECT_DELAY_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
)
from pyflashblocks.exceptions import FlashblocksConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise FlashblocksConfigError(f"{key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class FlashblocksConfig:
    """Reconciler configuration.

    Parameters
    ----------
    fast_stream_url : str
        Websocket URL of the fast (flashblocks) stream.
    full_source_url : str
        JSON-RPC HTTP endpoint polled for full blocks.
    fast_debounce_seconds : float
        Trailing-edge debounce window for the fast stream slot.
    full_debounce_seconds : float
        Trailing-edge debounce window for the full block slot.
    poll_interval_seconds : float
        Interval between full block polls. The first poll fires
        immediately on start.
    request_timeout_seconds : float
        Total timeout for a single JSON-RPC poll request.
    reconnect_delay_seconds : float
        Delay before reconnecting a dropped fast stream. ``0`` disables
        reconnection; the slot then simply stops updating.
    fast_stream_enabled : bool
        Start the websocket reader on enter.
    full_source_enabled : bool
        Start the JSON-RPC poller on enter.
    """

    fast_stream_url: str = FAST_STREAM_URL
    full_source_url: str = FULL_SOURCE_URL
    fast_debounce_seconds: float = FAST_DEBOUNCE_SECONDS
    full_debounce_seconds: float = FULL_DEBOUNCE_SECONDS
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    request_timeout_seconds: float = REQUEST_TIMEOUT_SECONDS
    reconnect_delay_seconds: float = RECONNECT_DELAY_SECONDS
    fast_stream_enabled: bool = True
    full_source_enabled: bool = True

    def __post_init__(self) -> None:
        if self.fast_debounce_seconds < 0:
            raise FlashblocksConfigError("fast_debounce_seconds must be >= 0")
        if self.full_debounce_seconds < 0:
            raise FlashblocksConfigError("full_debounce_seconds must be >= 0")
        if self.poll_interval_seconds <= 0:
            raise FlashblocksConfigError("poll_interval_seconds must be > 0")
        if self.request_timeout_seconds <= 0:
            raise FlashblocksConfigError("request_timeout_seconds must be > 0")
        if self.reconnect_delay_seconds < 0:
            raise FlashblocksConfigError("reconnect_delay_seconds must be >= 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> FlashblocksConfig:
        """Create configuration from ``FLASHBLOCKS_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        FlashblocksConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "FLASHBLOCKS_FAST_STREAM_URL": "fast_stream_url",
            "FLASHBLOCKS_FULL_SOURCE_URL": "full_source_url",
        }
        _ENV_FLOAT_MAP = {
            "FLASHBLOCKS_FAST_DEBOUNCE": "fast_debounce_seconds",
            "FLASHBLOCKS_FULL_DEBOUNCE": "full_debounce_seconds",
            "FLASHBLOCKS_POLL_INTERVAL": "poll_interval_seconds",
            "FLASHBLOCKS_REQUEST_TIMEOUT": "request_timeout_seconds",
            "FLASHBLOCKS_RECONNECT_DELAY": "reconnect_delay_seconds",
        }
        _ENV_BOOL_MAP = {
            "FLASHBLOCKS_FAST_STREAM_ENABLED": "fast_stream_enabled",
            "FLASHBLOCKS_FULL_SOURCE_ENABLED": "full_source_enabled",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val:
                config_kwargs[field_name] = val.strip()

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            if field_name in overrides:
                continue
            parsed = _env_float(env, env_key)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        for env_key, field_name in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
