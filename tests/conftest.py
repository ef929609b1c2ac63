"""Shared pytest fixtures for stream-stats tests.

Fixture summary
---------------
settings        Settings for a test channel, no config file read.
fake_counts     In-memory ChannelCounts with switchable failures.
clock           Deterministic UTC clock advancing one minute per call.
tracker         SessionTracker wired to fake_counts and clock.
sqlite_dsn      aiosqlite DSN for a throw-away database file.
sink            SessionSink on sqlite_dsn with tables created.

All tests run without network access or a database server.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from stream_stats.config.settings import Settings
from stream_stats.core.database import build_engine
from stream_stats.core.exceptions import FetchError
from stream_stats.storage.sink import SessionSink
from stream_stats.tracker.machine import SessionTracker

TEST_CHANNEL = "somechannel"
TEST_API_BASE = "https://api.twitch.tv/kraken"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeCounts:
    """ChannelCounts double returning fixed totals and recording every call."""

    def __init__(self, subscribers: int = 100, followers: int = 500) -> None:
        self.subscribers = subscribers
        self.followers = followers
        self.failing: set[str] = set()
        self.calls: list[str] = []

    async def subscriber_count(self) -> int:
        self.calls.append("subscribers")
        if "subscribers" in self.failing:
            raise FetchError("subscribers down", query="subscribers", channel=TEST_CHANNEL)
        return self.subscribers

    async def follower_count(self) -> int:
        self.calls.append("followers")
        if "followers" in self.failing:
            raise FetchError("followers down", query="followers", channel=TEST_CHANNEL)
        return self.followers


class FakeClock:
    """Returns 2026-01-01T12:00Z on the first call, one minute later on each next."""

    def __init__(self) -> None:
        self.current = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(minutes=1)
        return value


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        dsn="sqlite+aiosqlite:///:memory:",
        stream_channel=TEST_CHANNEL,
        auth_token="test-oauth-token",
        monitor_interval=60,
        api_base=TEST_API_BASE,
    )


@pytest.fixture
def fake_counts() -> FakeCounts:
    return FakeCounts()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(fake_counts: FakeCounts, clock: FakeClock) -> SessionTracker:
    return SessionTracker(fake_counts, clock=clock)


@pytest.fixture
def sqlite_dsn(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'stream_stats.db'}"


@pytest_asyncio.fixture
async def sink(sqlite_dsn: str) -> AsyncGenerator[SessionSink, None]:
    session_sink = SessionSink(build_engine(sqlite_dsn))
    await session_sink.create_tables()
    yield session_sink
    await session_sink.dispose()
