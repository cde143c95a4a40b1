import logging

import pytest

import wearsync.config as config_module
from wearsync.config import MIN_POLL_INTERVAL_S, EngineConfig


def test_defaults_without_environment():
    config = EngineConfig.from_env({})
    assert config == EngineConfig()
    assert config.telemetry_enabled is False


def test_values_are_read_from_environment():
    config = EngineConfig.from_env(
        {
            "WEARSYNC_POLL_INTERVAL_S": "0.5",
            "WEARSYNC_PERIODIC_UPDATES": "off",
            "WEARSYNC_LOG_LEVEL": "debug",
            "WEARSYNC_TELEMETRY_BASE_URL": "https://ingest.example",
            "WEARSYNC_TELEMETRY_API_KEY": "k",
            "WEARSYNC_TELEMETRY_TIMEOUT_S": "4",
            "WEARSYNC_TELEMETRY_MAX_RETRIES": "-2",
        }
    )
    assert config.poll_interval_s == 0.5
    assert config.run_periodic_updates is False
    assert config.log_level == "DEBUG"
    assert config.telemetry_enabled is True
    assert config.telemetry_timeout_s == 4.0
    assert config.telemetry_max_retries == 0


def test_invalid_values_fall_back_with_warning(caplog):
    caplog.set_level(logging.WARNING)
    config = EngineConfig.from_env(
        {
            "WEARSYNC_POLL_INTERVAL_S": "soon",
            "WEARSYNC_PERIODIC_UPDATES": "maybe",
            "WEARSYNC_TELEMETRY_MAX_RETRIES": "many",
        }
    )
    assert config.poll_interval_s == 5.0
    assert config.run_periodic_updates is True
    assert config.telemetry_max_retries == 3
    assert "WEARSYNC_POLL_INTERVAL_S" in caplog.text
    assert "WEARSYNC_PERIODIC_UPDATES" in caplog.text


def test_poll_interval_is_clamped(caplog):
    caplog.set_level(logging.WARNING)
    config = EngineConfig.from_env({"WEARSYNC_POLL_INTERVAL_S": "0"})
    assert config.poll_interval_s == MIN_POLL_INTERVAL_S
    assert "too small" in caplog.text


def test_incomplete_telemetry_configuration_is_disabled(caplog, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config_module, "_TELEMETRY_INCOMPLETE_WARNED", False)
    caplog.set_level(logging.WARNING)
    config = EngineConfig.from_env({"WEARSYNC_TELEMETRY_BASE_URL": "https://ingest.example"})
    assert config.telemetry_base_url is None
    assert config.telemetry_enabled is False
    assert "Incomplete telemetry configuration" in caplog.text


def test_incomplete_telemetry_warning_is_logged_once(caplog, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config_module, "_TELEMETRY_INCOMPLETE_WARNED", False)
    caplog.set_level(logging.WARNING)
    for _ in range(3):
        config = EngineConfig.from_env({"WEARSYNC_TELEMETRY_API_KEY": "k"})
        assert config.telemetry_enabled is False
    assert caplog.text.count("Incomplete telemetry configuration") == 1
