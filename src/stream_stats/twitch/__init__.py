"""Twitch v3 API client used to take channel snapshots.

Implemented functionality:
    - ``SnapshotFetcher.fetch_snapshot``: live status, title, viewers and
      followers from ``GET /streams/{channel}``.
    - ``SnapshotFetcher.subscriber_count``: subscriber total (OAuth token).
    - ``SnapshotFetcher.follower_count``: follower total.
"""

from __future__ import annotations

from stream_stats.twitch.fetcher import SnapshotFetcher

__all__ = ["SnapshotFetcher"]
