"""Shared fixtures for the Laneful test suite."""

from __future__ import annotations

import os

import pytest
import structlog

from laneful.config import clear_config


@pytest.fixture
def lane_id():
    """A well-formed lane UUID."""
    return "5805dd85-ed8c-44db-91a7-1d53a41c86a5"


@pytest.fixture
def make_event(lane_id):
    """Factory for a valid delivery event with field overrides."""

    def _make_event(**overrides):
        event = {
            "event": "delivery",
            "email": "user@example.com",
            "lane_id": lane_id,
            "message_id": "H-1-019844e340027d728a7cfda632e14d0a",
            "timestamp": 1753502407,
        }
        event.update(overrides)
        return event

    return _make_event


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep LANEFUL_* variables and logging config from leaking between tests."""
    for key in list(os.environ):
        if key.startswith("LANEFUL_"):
            monkeypatch.delenv(key)
    clear_config()
    yield
    clear_config()
    structlog.reset_defaults()
