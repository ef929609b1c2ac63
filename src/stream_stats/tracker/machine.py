"""Session-detection state machine.

Turns a sequence of independent poll results into discrete stream sessions.
The tracker has two states, *idle* and *live* (``SessionState.active``), and
one transition function, :meth:`SessionTracker.step`:

==========  ===========================  ==========================================
State       Poll result                  Outcome
==========  ===========================  ==========================================
any         ``FetchError``               state unchanged, no record
idle        offline                      idle
idle        live                         open session (initial counts, 1 sample)
live        offline, misses < tolerance  misses + 1, stay live
live        offline, misses = tolerance  close session, emit record, idle
live        live, same title             misses reset to 0, append sample
live        live, different title        close session, emit record, idle
==========  ===========================  ==========================================

A broadcast that changes title is closed in the tick that notices the new
title; the new title is opened by the following tick, as an ordinary
idle-to-live transition.

Subscriber and follower totals are only needed when a session opens or
closes.  They are read through the :class:`ChannelCounts` capability so that
tests can substitute deterministic fakes for the HTTP fetcher.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

import structlog

from stream_stats.core.exceptions import FetchError
from stream_stats.tracker.state import (
    SessionRecord,
    SessionState,
    Snapshot,
    ViewerSample,
    average_viewers,
    max_viewers,
    utcnow,
)

logger = structlog.get_logger(__name__)

MISS_TOLERANCE: int = 2
"""Consecutive offline polls tolerated before a live session is closed."""


class ChannelCounts(Protocol):
    """Subscriber and follower lookups needed when a session opens or closes.

    Implementations raise :class:`~stream_stats.core.exceptions.FetchError`
    when a lookup fails.
    """

    async def subscriber_count(self) -> int: ...

    async def follower_count(self) -> int: ...


StepResult = tuple[SessionState, SessionRecord | None]


class SessionTracker:
    """Applies one poll result at a time to a :class:`SessionState`.

    The tracker keeps no state of its own; the caller owns the current
    ``SessionState`` and replaces it with the one returned by :meth:`step`.

    Args:
        counts: Capability used for subscriber/follower totals.
        miss_tolerance: Consecutive misses allowed before a session ends.
        clock: Returns the current UTC time.  Injected for tests.
    """

    def __init__(
        self,
        counts: ChannelCounts,
        miss_tolerance: int = MISS_TOLERANCE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.counts = counts
        self.miss_tolerance = miss_tolerance
        self.clock = clock

    async def step(
        self,
        state: SessionState,
        observed: Snapshot | FetchError,
    ) -> StepResult:
        """Apply one poll result to *state*.

        A failed poll, or a failed subscriber/follower lookup during an open
        or a close, abandons the tick: *state* is returned unchanged and no
        record is emitted.

        Args:
            state: State left by the previous tick.
            observed: The poll's snapshot, or the error that replaced it.

        Returns:
            Tuple of the new state and the record of a session that ended in
            this tick (``None`` when no session ended).
        """
        if isinstance(observed, FetchError):
            logger.debug(
                "tracker: poll failed, state unchanged",
                query=observed.query,
                active=state.active,
            )
            return state, None

        try:
            if not state.active:
                if observed.live:
                    return await self._open(observed), None
                return state, None

            if not observed.live:
                if state.consecutive_misses < self.miss_tolerance:
                    misses = state.consecutive_misses + 1
                    logger.debug(
                        "tracker: channel reported offline during session",
                        title=state.title,
                        consecutive_misses=misses,
                    )
                    return dataclasses.replace(state, consecutive_misses=misses), None
                return await self._close(state)

            if observed.title == state.title:
                return self._sample(state, observed), None

            logger.info(
                "tracker: title changed, closing previous session",
                previous_title=state.title,
                title=observed.title,
            )
            return await self._close(state)
        except FetchError as exc:
            logger.warning(
                "tracker: count lookup failed, transition abandoned",
                query=exc.query,
                channel=exc.channel,
                error=str(exc),
            )
            return state, None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _open(self, snapshot: Snapshot) -> SessionState:
        subscribers = await self.counts.subscriber_count()
        now = self.clock()
        logger.info(
            "tracker: new stream detected",
            title=snapshot.title,
            stream_id=snapshot.stream_id,
            viewers=snapshot.viewers,
        )
        return SessionState(
            active=True,
            stream_id=snapshot.stream_id,
            title=snapshot.title,
            start_time=now,
            initial_followers=snapshot.followers,
            initial_subscribers=subscribers,
            viewer_samples=(ViewerSample(now, snapshot.viewers),),
        )

    def _sample(self, state: SessionState, snapshot: Snapshot) -> SessionState:
        return dataclasses.replace(
            state,
            consecutive_misses=0,
            viewer_samples=state.viewer_samples
            + (ViewerSample(self.clock(), snapshot.viewers),),
        )

    async def _close(self, state: SessionState) -> StepResult:
        subscribers = await self.counts.subscriber_count()
        followers = await self.counts.follower_count()
        end_time = self.clock()
        counts = state.viewer_counts

        record = SessionRecord(
            stream_id=state.stream_id,
            title=state.title,
            start_time=state.start_time or end_time,
            end_time=end_time,
            initial_followers=state.initial_followers,
            initial_subscribers=state.initial_subscribers,
            final_followers=followers,
            final_subscribers=subscribers,
            average_viewers=average_viewers(counts),
            max_viewers=max_viewers(counts),
            created_at=end_time,
        )
        logger.info(
            "tracker: stream end detected",
            title=record.title,
            stream_id=record.stream_id,
            start_time=record.start_time.isoformat(),
            end_time=record.end_time.isoformat(),
            average_viewers=record.average_viewers,
            max_viewers=record.max_viewers,
            follower_delta=record.follower_delta,
            subscriber_delta=record.subscriber_delta,
        )
        return SessionState.idle(), record
