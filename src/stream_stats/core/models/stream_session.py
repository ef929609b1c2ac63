"""Stream session ORM model.

One row per finished broadcast, keyed by the platform's numeric stream id.
Column names are kept compatible with the ``twitch_streams`` layout used by
earlier deployments of the monitor.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from stream_stats.core.models.base import Base


class StreamSession(Base):
    """Summary of one broadcast of the monitored channel.

    ``enterdate`` holds the close time of the session.  The server-side
    default and on-update value only apply to writes that leave it unset.
    """

    __tablename__ = "stream_sessions"

    id: Mapped[int] = mapped_column(
        sa.BigInteger,
        primary_key=True,
        autoincrement=False,
        comment="Platform stream id.",
    )
    status: Mapped[Optional[str]] = mapped_column(
        sa.Text,
        nullable=True,
        comment="Broadcast title at session open.",
    )
    starttime: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
    )
    endtime: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
    )
    initialfollow: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    initialsub: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    endfollow: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    endsub: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    avgviewers: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    maxviewers: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    enterdate: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
        onupdate=sa.func.now(),
    )

    def __repr__(self) -> str:
        return f"<StreamSession id={self.id} status={self.status!r}>"
