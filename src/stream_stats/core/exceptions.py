"""Application-wide exception hierarchy for stream-stats.

All custom exceptions subclass ``StreamStatsError``, enabling consistent
error handling and structured logging across the poller.

Hierarchy::

    StreamStatsError
    ├── FetchError        (query, channel, status_code)
    ├── PersistError      (stream_id)
    └── ConfigError
"""

from __future__ import annotations


class StreamStatsError(Exception):
    """Base class for all stream-stats exceptions.

    Callers can catch the entire hierarchy with a single ``except`` clause
    when needed.
    """


# ---------------------------------------------------------------------------
# Upstream API exceptions
# ---------------------------------------------------------------------------


class FetchError(StreamStatsError):
    """Raised when one of the upstream API queries fails.

    Covers network errors, non-2xx responses and response bodies that cannot
    be decoded.  A fetch failure is never evidence that the channel went
    offline; the tracker treats it as "no data" for the current tick.

    Args:
        message: Human-readable description of the failure.
        query: Which upstream call failed: ``"stream"``, ``"subscribers"``
            or ``"followers"``.
        channel: Channel name the query was issued for.
        status_code: HTTP status code, or ``None`` when no response arrived.
    """

    def __init__(
        self,
        message: str,
        query: str | None = None,
        channel: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.query = query
        self.channel = channel
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Storage exceptions
# ---------------------------------------------------------------------------


class PersistError(StreamStatsError):
    """Raised when a completed session record cannot be written.

    Covers connection failures, statement failures and an unexpected
    affected-row count.

    Args:
        message: Description of the write failure.
        stream_id: Stream identifier of the record that was being saved.
    """

    def __init__(
        self,
        message: str,
        stream_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.stream_id = stream_id


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------


class ConfigError(StreamStatsError):
    """Raised when the configuration file or environment fails validation."""
