"""Tests for the session persistence sink.

Covers:
- create_tables() is idempotent
- save() inserts a new row that get() reads back
- saving the same stream id twice leaves one row with the second values
- different stream ids produce separate rows
- database failures surface as PersistError carrying the stream id

Runs against a throw-away SQLite file through aiosqlite.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import sqlalchemy as sa

from stream_stats.core.database import build_engine
from stream_stats.core.exceptions import PersistError
from stream_stats.core.models import StreamSession
from stream_stats.storage.sink import SessionSink
from stream_stats.tracker.state import SessionRecord

_START = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)


def _record(
    stream_id: int = 42, title: str = "A", average: int = 15, maximum: int = 20
) -> SessionRecord:
    return SessionRecord(
        stream_id=stream_id,
        title=title,
        start_time=_START,
        end_time=_START + timedelta(hours=3),
        initial_followers=500,
        initial_subscribers=100,
        final_followers=530,
        final_subscribers=104,
        average_viewers=average,
        max_viewers=maximum,
        created_at=_START + timedelta(hours=3),
    )


async def _row_count(sink: SessionSink, stream_id: int | None = None) -> int:
    query = sa.select(sa.func.count()).select_from(StreamSession)
    if stream_id is not None:
        query = query.where(StreamSession.id == stream_id)
    async with sink.engine.connect() as conn:
        return (await conn.execute(query)).scalar_one()


class TestCreateTables:
    @pytest.mark.asyncio
    async def test_create_tables_twice_is_safe(self, sink: SessionSink) -> None:
        await sink.create_tables()
        assert await _row_count(sink) == 0


class TestSave:
    @pytest.mark.asyncio
    async def test_save_inserts_row(self, sink: SessionSink) -> None:
        await sink.save(_record())

        stored = await sink.get(42)

        assert stored is not None
        assert stored.title == "A"
        assert stored.initial_followers == 500
        assert stored.initial_subscribers == 100
        assert stored.final_followers == 530
        assert stored.final_subscribers == 104
        assert stored.average_viewers == 15
        assert stored.max_viewers == 20
        assert stored.start_time.replace(tzinfo=None) == _START.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_same_stream_id_is_replaced(self, sink: SessionSink) -> None:
        await sink.save(_record(title="first", average=15, maximum=20))
        await sink.save(_record(title="second", average=40, maximum=90))

        assert await _row_count(sink, 42) == 1
        stored = await sink.get(42)
        assert stored is not None
        assert stored.title == "second"
        assert stored.average_viewers == 40
        assert stored.max_viewers == 90

    @pytest.mark.asyncio
    async def test_identical_resave_is_accepted(self, sink: SessionSink) -> None:
        await sink.save(_record())
        await sink.save(_record())

        assert await _row_count(sink, 42) == 1

    @pytest.mark.asyncio
    async def test_distinct_stream_ids_are_separate_rows(self, sink: SessionSink) -> None:
        await sink.save(_record(stream_id=1))
        await sink.save(_record(stream_id=2))

        assert await _row_count(sink) == 2

    @pytest.mark.asyncio
    async def test_unknown_stream_id_reads_none(self, sink: SessionSink) -> None:
        assert await sink.get(999) is None


class TestFailures:
    @pytest.mark.asyncio
    async def test_save_without_table_raises_persist_error(self, sqlite_dsn: str) -> None:
        sink = SessionSink(build_engine(sqlite_dsn))
        try:
            with pytest.raises(PersistError) as exc_info:
                await sink.save(_record(stream_id=77))
        finally:
            await sink.dispose()

        assert exc_info.value.stream_id == 77

    @pytest.mark.asyncio
    async def test_unreachable_database_raises_persist_error(self, tmp_path) -> None:
        missing_dir = tmp_path / "does" / "not" / "exist"
        sink = SessionSink(build_engine(f"sqlite+aiosqlite:///{missing_dir / 'x.db'}"))
        try:
            with pytest.raises(PersistError):
                await sink.create_tables()
        finally:
            await sink.dispose()
