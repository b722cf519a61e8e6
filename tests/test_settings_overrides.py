from __future__ import annotations

import logging
from typing import Iterator

import pytest

from cli.config import DEFAULT_BASE_URL, load_config
from logging_config import ContextualFormatter
from settings import DEFAULT_BANNER_MARKERS, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch) -> None:
    for name in (
        "TELEMETRY_BANNER_MARKERS",
        "TELEMETRY_POLL_INTERVAL",
        "TELEMETRY_READ_CHUNK_SIZE",
        "TELEMETRY_SOURCE_PATH",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.banner_markers == DEFAULT_BANNER_MARKERS
    assert settings.poll_interval == 0.01
    assert settings.read_chunk_size == 64
    assert settings.source_path is None
    assert settings.log_level == "INFO"


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TELEMETRY_BANNER_MARKERS", " BOOT , ,READY")
    monkeypatch.setenv("TELEMETRY_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("TELEMETRY_READ_CHUNK_SIZE", "1")
    monkeypatch.setenv("TELEMETRY_SOURCE_PATH", str(tmp_path / "ttyACM0"))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.banner_markers == ("BOOT", "READY")
    assert settings.poll_interval == 0.5
    assert settings.read_chunk_size == 1
    assert settings.source_path == str(tmp_path / "ttyACM0")
    assert settings.log_level == "DEBUG"


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("TELEMETRY_BANNER_MARKERS", " , ")
    monkeypatch.setenv("TELEMETRY_POLL_INTERVAL", "-1")
    monkeypatch.setenv("TELEMETRY_READ_CHUNK_SIZE", "lots")
    monkeypatch.setenv("TELEMETRY_SOURCE_PATH", "   ")

    settings = get_settings()

    assert settings.banner_markers == DEFAULT_BANNER_MARKERS
    assert settings.poll_interval == 0.01
    assert settings.read_chunk_size == 64
    assert settings.source_path is None


def test_cli_config(monkeypatch) -> None:
    monkeypatch.delenv("API_BASE_URL", raising=False)
    monkeypatch.setenv("CLI_REQUEST_TIMEOUT", "2.5")

    config = load_config()

    assert config.base_url == DEFAULT_BASE_URL
    assert config.request_timeout == 2.5
    assert load_config(base_url="http://x:1/").base_url == "http://x:1"


def test_contextual_formatter_appends_extras() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")
    record = logging.LogRecord("test", logging.WARNING, __file__, 1, "Discarding", None, None)
    record.line_number = 3
    record.line = "T TEMP-1 abc"
    record.reason = "invalid thermal value"

    assert formatter.format(record) == (
        "Discarding | line_number=3 line='T TEMP-1 abc' reason='invalid thermal value'"
    )
