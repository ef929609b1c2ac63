"""Durable storage of finished stream sessions."""

from __future__ import annotations

from stream_stats.storage.sink import SessionSink

__all__ = ["SessionSink"]
