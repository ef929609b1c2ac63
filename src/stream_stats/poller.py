"""Fixed-interval poller wiring fetcher → tracker → sink.

The poller owns the single :class:`~stream_stats.tracker.state.SessionState`
of the monitored channel and drives one tick per interval from a single
asyncio task, so exactly one tick is in flight at any time.  When a tick
runs past one or more deadlines, those deadlines are dropped and the next
tick waits for the following deadline instead of firing back-to-back.

Typical usage::

    poller = Poller(settings, fetcher, SessionTracker(fetcher), sink)
    await poller.run()
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import TYPE_CHECKING, Any

import structlog

from stream_stats.core.exceptions import FetchError, PersistError
from stream_stats.tracker.state import SessionRecord, SessionState

if TYPE_CHECKING:
    from stream_stats.config.settings import Settings
    from stream_stats.storage.sink import SessionSink
    from stream_stats.tracker.machine import SessionTracker
    from stream_stats.twitch.fetcher import SnapshotFetcher

logger = structlog.get_logger(__name__)


class Poller:
    """Runs the monitoring loop for one channel.

    Args:
        settings: Monitor settings; ``monitor_interval`` sets the tick period.
        fetcher: Source of snapshots and subscriber/follower totals.
        tracker: The session state machine.
        sink: Storage for finished sessions.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: SnapshotFetcher,
        tracker: SessionTracker,
        sink: SessionSink,
    ) -> None:
        self.channel = settings.stream_channel
        self.interval = float(settings.monitor_interval)
        self.fetcher = fetcher
        self.tracker = tracker
        self.sink = sink
        self.state = SessionState.idle()
        self._log = logger.bind(channel=self.channel)

    async def tick(self) -> SessionRecord | None:
        """Poll once, advance the state machine and store a finished session.

        Fetch and persistence failures are logged and swallowed: a failed
        fetch leaves the state untouched, and a failed write still leaves the
        tracker idle so a single bad write cannot keep a session open.

        Returns:
            The record of the session that ended in this tick, if any.
        """
        observed = await self.fetcher.fetch()
        if isinstance(observed, FetchError):
            self._log.warning(
                "poller: fetch failed, tick skipped",
                query=observed.query,
                status_code=observed.status_code,
                error=str(observed),
            )

        self.state, record = await self.tracker.step(self.state, observed)
        if record is None:
            return None

        try:
            await self.sink.save(record)
        except PersistError as exc:
            self._log.error(
                "poller: failed to persist session, record dropped",
                stream_id=exc.stream_id,
                error=str(exc),
            )
        return record

    async def run(self, max_ticks: int | None = None) -> None:
        """Tick every ``interval`` seconds until cancelled.

        Deadlines are measured on the event loop's monotonic clock.  The
        first tick fires one interval after the call.

        Args:
            max_ticks: Stop after this many ticks.  ``None`` runs forever.
        """
        loop = asyncio.get_running_loop()
        next_deadline = loop.time() + self.interval
        ticks = 0

        self._log.info("poller: starting monitoring", interval=self.interval)
        while max_ticks is None or ticks < max_ticks:
            await asyncio.sleep(max(0.0, next_deadline - loop.time()))
            try:
                await self.tick()
            except Exception as exc:  # noqa: BLE001
                self._log.error("poller: unexpected error in tick", error=str(exc), exc_info=True)
            ticks += 1

            next_deadline += self.interval
            now = loop.time()
            if next_deadline <= now:
                dropped = int((now - next_deadline) // self.interval) + 1
                next_deadline += dropped * self.interval
                self._log.warning("poller: tick overran interval", dropped_ticks=dropped)

    async def report(self) -> dict[str, Any]:
        """Run one fetch-and-report cycle without touching storage.

        Queries the subscriber and follower totals and the stream status,
        then applies the snapshot to an idle state.

        Returns:
            Dict with ``channel``, ``subscribers``, ``followers`` (``None``
            when the query failed), ``snapshot`` and ``state``.
        """
        result: dict[str, Any] = {"channel": self.channel}

        for name, lookup in (
            ("subscribers", self.fetcher.subscriber_count),
            ("followers", self.fetcher.follower_count),
        ):
            try:
                result[name] = await lookup()
            except FetchError as exc:
                self._log.warning("poller: report lookup failed", query=exc.query, error=str(exc))
                result[name] = None

        observed = await self.fetcher.fetch()
        if isinstance(observed, FetchError):
            result["snapshot"] = {"error": str(observed), "query": observed.query}
        else:
            result["snapshot"] = {**dataclasses.asdict(observed), "live": observed.live}

        state, _ = await self.tracker.step(SessionState.idle(), observed)
        result["state"] = dataclasses.asdict(state)
        self._log.info("poller: report complete", live=state.active)
        return result
