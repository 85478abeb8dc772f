from __future__ import annotations

import pytest

from pyflashblocks.config import FlashblocksConfig
from pyflashblocks.exceptions import FlashblocksConfigError

_ENV_KEYS = (
    "FLASHBLOCKS_FAST_STREAM_URL",
    "FLASHBLOCKS_FULL_SOURCE_URL",
    "FLASHBLOCKS_FAST_DEBOUNCE",
    "FLASHBLOCKS_FULL_DEBOUNCE",
    "FLASHBLOCKS_POLL_INTERVAL",
    "FLASHBLOCKS_REQUEST_TIMEOUT",
    "FLASHBLOCKS_RECONNECT_DELAY",
    "FLASHBLOCKS_FAST_STREAM_ENABLED",
    "FLASHBLOCKS_FULL_SOURCE_ENABLED",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_match_public_sepolia_endpoints() -> None:
    config = FlashblocksConfig()

    assert config.fast_stream_url == "wss://sepolia.flashblocks.base.org/ws"
    assert config.full_source_url == "https://sepolia-preconf.base.org"
    assert config.fast_debounce_seconds == 0.2
    assert config.full_debounce_seconds == 0.4
    assert config.poll_interval_seconds == 2.0
    assert config.fast_stream_enabled
    assert config.full_source_enabled


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLASHBLOCKS_FULL_SOURCE_URL", " http://localhost:8545 ")
    monkeypatch.setenv("FLASHBLOCKS_FAST_DEBOUNCE", "0.05")
    monkeypatch.setenv("FLASHBLOCKS_POLL_INTERVAL", "1")
    monkeypatch.setenv("FLASHBLOCKS_FAST_STREAM_ENABLED", "off")

    config = FlashblocksConfig.from_env()

    assert config.full_source_url == "http://localhost:8545"
    assert config.fast_debounce_seconds == 0.05
    assert config.poll_interval_seconds == 1.0
    assert config.fast_stream_enabled is False
    assert config.full_source_enabled is True


def test_unrecognised_bool_falls_back_to_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLASHBLOCKS_FULL_SOURCE_ENABLED", "maybe")
    assert FlashblocksConfig.from_env().full_source_enabled is True


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLASHBLOCKS_FULL_DEBOUNCE", "not-a-number")
    monkeypatch.setenv("FLASHBLOCKS_FULL_SOURCE_ENABLED", "0")
    monkeypatch.setenv("FLASHBLOCKS_FAST_STREAM_URL", "ws://env/ws")

    config = FlashblocksConfig.from_env(
        full_debounce_seconds=0.1,
        full_source_enabled=True,
        fast_stream_url="ws://override/ws",
    )

    assert config.full_debounce_seconds == 0.1
    assert config.full_source_enabled is True
    assert config.fast_stream_url == "ws://override/ws"


def test_non_numeric_env_value_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLASHBLOCKS_REQUEST_TIMEOUT", "ten")
    with pytest.raises(FlashblocksConfigError, match="FLASHBLOCKS_REQUEST_TIMEOUT"):
        FlashblocksConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"fast_debounce_seconds": -0.1},
        {"full_debounce_seconds": -1},
        {"poll_interval_seconds": 0},
        {"request_timeout_seconds": -5},
        {"reconnect_delay_seconds": -1},
    ],
)
def test_out_of_range_values_raise(kwargs: dict[str, float]) -> None:
    with pytest.raises(FlashblocksConfigError):
        FlashblocksConfig(**kwargs)


def test_zero_debounce_is_allowed() -> None:
    assert FlashblocksConfig(fast_debounce_seconds=0).fast_debounce_seconds == 0
