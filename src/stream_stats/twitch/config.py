"""API constants for the Twitch snapshot fetcher.

Used by :class:`~stream_stats.twitch.fetcher.SnapshotFetcher`.  The monitor
talks to the legacy v3 ("kraken") REST API, whose stream endpoint reports
viewers and followers in one response.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

STREAM_ENDPOINT: str = "/streams/{channel}"
"""Live status of a channel.  ``{"stream": null}`` when offline."""

SUBSCRIPTIONS_ENDPOINT: str = "/channels/{channel}/subscriptions"
"""Subscriber total for a channel.  Requires the channel's OAuth token."""

FOLLOWS_ENDPOINT: str = "/channels/{channel}/follows"
"""Follower total for a channel."""

# ---------------------------------------------------------------------------
# Request constants
# ---------------------------------------------------------------------------

ACCEPT_HEADER: str = "application/vnd.twitchtv.v3+json"
"""Pins the API version on every request."""

USER_AGENT: str = "StreamStats/0.1 (stream-session monitor)"

HTTP_TIMEOUT_SECONDS: float = 30.0
"""Per-request timeout.  A timed-out request surfaces as a ``FetchError``."""

# ---------------------------------------------------------------------------
# Query names used in FetchError.query
# ---------------------------------------------------------------------------

QUERY_STREAM: str = "stream"
QUERY_SUBSCRIBERS: str = "subscribers"
QUERY_FOLLOWERS: str = "followers"
