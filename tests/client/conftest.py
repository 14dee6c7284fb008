"""Pytest fixtures for upload driver tests."""

from __future__ import annotations

import pytest

from tests.client.fakes import FakeSleep, FakeTransport


@pytest.fixture
def transport() -> FakeTransport:
    """Scripted transport with no responses queued."""
    return FakeTransport()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    """Backoff timer that records delays and returns immediately."""
    return FakeSleep()
