"""ORM models.  Importing this package registers every table on ``Base.metadata``."""

from __future__ import annotations

from stream_stats.core.models.base import Base
from stream_stats.core.models.stream_session import StreamSession

__all__ = ["Base", "StreamSession"]
