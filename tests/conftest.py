"""Shared fixtures for the notification client tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the project root (which contains the ``notification_sync`` package) is importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from notification_sync.config import reset_settings_cache
from notification_sync.infrastructure.notifications import HeadlessPlatform
from tests.support import FakeApi, RecordingSleep, make_settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def platform():
    return HeadlessPlatform()
