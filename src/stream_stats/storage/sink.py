"""Persistence sink for finished stream sessions.

Each :class:`~stream_stats.tracker.state.SessionRecord` is written once,
as an insert-or-replace keyed by stream id: saving the same stream id again
overwrites the earlier row instead of adding a second one.  The replace is
an UPDATE followed, when no row matched, by an INSERT, inside one
transaction, so it behaves the same on PostgreSQL, MySQL and SQLite.
"""

from __future__ import annotations

import logging
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from stream_stats.core.database import build_session_factory, create_tables
from stream_stats.core.exceptions import PersistError
from stream_stats.core.models import StreamSession
from stream_stats.tracker.state import SessionRecord

logger = logging.getLogger(__name__)


def _row_values(record: SessionRecord) -> dict[str, Any]:
    """Map a record onto the ``stream_sessions`` columns, excluding the key."""
    return {
        "status": record.title,
        "starttime": record.start_time,
        "endtime": record.end_time,
        "initialfollow": record.initial_followers,
        "initialsub": record.initial_subscribers,
        "endfollow": record.final_followers,
        "endsub": record.final_subscribers,
        "avgviewers": record.average_viewers,
        "maxviewers": record.max_viewers,
        "enterdate": record.created_at,
    }


def _to_record(row: StreamSession) -> SessionRecord:
    return SessionRecord(
        stream_id=row.id,
        title=row.status or "",
        start_time=row.starttime,
        end_time=row.endtime,
        initial_followers=row.initialfollow,
        initial_subscribers=row.initialsub,
        final_followers=row.endfollow,
        final_subscribers=row.endsub,
        average_viewers=row.avgviewers,
        max_viewers=row.maxviewers,
        created_at=row.enterdate,
    )


class SessionSink:
    """Writes finished sessions to the ``stream_sessions`` table.

    Args:
        engine: Async engine for the configured DSN.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    async def create_tables(self) -> None:
        """Create the ``stream_sessions`` table if it does not exist.

        Raises:
            PersistError: If the database cannot be reached or the DDL fails.
        """
        try:
            await create_tables(self.engine)
        except (SQLAlchemyError, OSError) as exc:
            raise PersistError(f"storage: failed to create tables: {exc}") from exc

    async def save(self, record: SessionRecord) -> None:
        """Insert or replace the row for ``record.stream_id``.

        Raises:
            PersistError: If the write fails or does not affect exactly one row.
                The transaction is rolled back in both cases.
        """
        values = _row_values(record)
        logger.info(
            "storage: saving session stream_id=%d title=%r start=%s end=%s "
            "avg_viewers=%d max_viewers=%d",
            record.stream_id,
            record.title,
            record.start_time.isoformat(),
            record.end_time.isoformat(),
            record.average_viewers,
            record.max_viewers,
        )

        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(
                    sa.update(StreamSession)
                    .where(StreamSession.id == record.stream_id)
                    .values(**values)
                )
                affected = result.rowcount
                if affected == 0:
                    result = await conn.execute(
                        sa.insert(StreamSession).values(id=record.stream_id, **values)
                    )
                    affected = result.rowcount
                if affected != 1:
                    raise PersistError(
                        f"storage: expected 1 affected row, got {affected}",
                        stream_id=record.stream_id,
                    )
        except (SQLAlchemyError, OSError) as exc:
            raise PersistError(
                f"storage: write failed for stream {record.stream_id}: {exc}",
                stream_id=record.stream_id,
            ) from exc

    async def get(self, stream_id: int) -> SessionRecord | None:
        """Return the stored record for *stream_id*, or ``None``.

        Raises:
            PersistError: If the read fails.
        """
        try:
            async with self._session_factory() as session:
                row = await session.get(StreamSession, stream_id)
        except (SQLAlchemyError, OSError) as exc:
            raise PersistError(
                f"storage: read failed for stream {stream_id}: {exc}",
                stream_id=stream_id,
            ) from exc
        return _to_record(row) if row is not None else None

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
