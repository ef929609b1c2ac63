"""Session tracker: the state machine and its value types."""

from __future__ import annotations

from stream_stats.tracker.machine import MISS_TOLERANCE, ChannelCounts, SessionTracker
from stream_stats.tracker.state import (
    SessionRecord,
    SessionState,
    Snapshot,
    ViewerSample,
    average_viewers,
    max_viewers,
)

__all__ = [
    "MISS_TOLERANCE",
    "ChannelCounts",
    "SessionRecord",
    "SessionState",
    "SessionTracker",
    "Snapshot",
    "ViewerSample",
    "average_viewers",
    "max_viewers",
]
