"""Logging configuration tests."""

import logging
from collections.abc import Iterator

import pytest
import structlog

from teams_monitor.logging import configure_logging


@pytest.fixture(autouse=True)
def restore_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


def _renderer() -> object:
    return structlog.get_config()["processors"][-1]


def test_debug_renders_to_console() -> None:
    configure_logging(debug=True)

    assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)


def test_production_renders_json() -> None:
    configure_logging(debug=False)

    assert isinstance(_renderer(), structlog.processors.JSONRenderer)


def test_watchdog_stays_quiet_in_debug() -> None:
    configure_logging(debug=True)

    assert logging.getLogger("watchdog").level == logging.WARNING
