"""Data model of the session tracker.

Three value types flow through a tick:

- :class:`Snapshot`: what one poll of the stream endpoint saw.
- :class:`SessionState`: the tracker's state between ticks.  Immutable;
  every transition returns a new instance.
- :class:`SessionRecord`: the summary of a finished broadcast, written
  once to storage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import NamedTuple, Sequence


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Snapshot:
    """Result of one successful poll of the stream endpoint.

    Attributes:
        title: Broadcast title (the channel status text).  Empty when the
            channel is offline.
        stream_id: Numeric identifier of the broadcast, ``0`` when offline.
        viewers: Current viewer count.
        followers: Current follower count reported with the stream.
        game: Game name, passed through without interpretation.
    """

    title: str = ""
    stream_id: int = 0
    viewers: int = 0
    followers: int = 0
    game: str | None = None

    @property
    def live(self) -> bool:
        """``True`` when the channel is broadcasting (non-empty title)."""
        return len(self.title) > 0

    @classmethod
    def offline(cls) -> Snapshot:
        return cls()


class ViewerSample(NamedTuple):
    """One viewer count recorded during a session."""

    timestamp: datetime
    count: int


@dataclass(frozen=True)
class SessionState:
    """State of the tracker between two ticks.

    When ``active`` is false every other field holds its zero value; use
    :meth:`idle` to build that state.
    """

    active: bool = False
    stream_id: int = 0
    title: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None
    initial_followers: int = 0
    initial_subscribers: int = 0
    final_followers: int = 0
    final_subscribers: int = 0
    viewer_samples: tuple[ViewerSample, ...] = field(default_factory=tuple)
    consecutive_misses: int = 0

    @classmethod
    def idle(cls) -> SessionState:
        return cls()

    @property
    def viewer_counts(self) -> list[int]:
        return [sample.count for sample in self.viewer_samples]


@dataclass(frozen=True)
class SessionRecord:
    """Summary of a finished broadcast, keyed by ``stream_id`` in storage."""

    stream_id: int
    title: str
    start_time: datetime
    end_time: datetime
    initial_followers: int
    initial_subscribers: int
    final_followers: int
    final_subscribers: int
    average_viewers: int
    max_viewers: int
    created_at: datetime = field(default_factory=utcnow)

    @property
    def follower_delta(self) -> int:
        return self.final_followers - self.initial_followers

    @property
    def subscriber_delta(self) -> int:
        return self.final_subscribers - self.initial_subscribers


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def average_viewers(counts: Sequence[int]) -> int:
    """Floor mean of the sampled viewer counts, ``0`` when nothing was sampled.

    Every poll contributes one sample regardless of how long it covered, so
    this is a per-sample mean rather than a time-weighted one.
    """
    if not counts:
        return 0
    return sum(counts) // len(counts)


def max_viewers(counts: Sequence[int]) -> int:
    """Largest sampled viewer count, ``0`` when nothing was sampled."""
    return max(counts, default=0)
