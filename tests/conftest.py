"""Shared pytest fixtures for the ipsdl test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from fakes import BOARD_URL, FakeAuthenticator, FakeSession, RecordingRateLimiter
from ipsdl.models.config import BoardConfig
from ipsdl.storage.cache import RecordCache


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def authenticator(session: FakeSession) -> FakeAuthenticator:
    return FakeAuthenticator(session)


@pytest.fixture
def rate_limiter() -> RecordingRateLimiter:
    return RecordingRateLimiter()


@pytest.fixture
def board_config(tmp_path: Path) -> BoardConfig:
    return BoardConfig(
        name="TestBoard",
        url=BOARD_URL,
        username="bob",
        password="secret",
        min_delay=0,
        max_delay=0,
        cache_dir=tmp_path / "config",
    )


@pytest.fixture
def record_cache(tmp_path: Path) -> RecordCache:
    return RecordCache(tmp_path / "cache" / "test-board-files.json")
