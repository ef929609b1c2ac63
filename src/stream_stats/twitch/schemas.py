"""Pydantic models for the upstream API response bodies.

Unknown fields are ignored and string values are passed through as-is.  A
JSON ``null`` in a scalar field decodes to that field's zero value, so a
live stream whose status is ``null`` reads as offline.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChannelPayload(BaseModel):
    """The ``channel`` object nested in a live stream."""

    model_config = ConfigDict(extra="ignore")

    status: str = ""
    followers: int = 0

    @field_validator("status", mode="before")
    @classmethod
    def _null_status(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("followers", mode="before")
    @classmethod
    def _null_followers(cls, value: Any) -> Any:
        return 0 if value is None else value


class StreamPayload(BaseModel):
    """A live stream object from ``GET /streams/{channel}``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    game: Optional[str] = None
    channel: ChannelPayload = Field(default_factory=ChannelPayload)
    stream_id: int = Field(default=0, alias="_id")
    viewers: int = 0

    @field_validator("channel", mode="before")
    @classmethod
    def _null_channel(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("stream_id", "viewers", mode="before")
    @classmethod
    def _null_count(cls, value: Any) -> Any:
        return 0 if value is None else value


class StreamResponse(BaseModel):
    """Envelope of ``GET /streams/{channel}``; ``stream`` is null when offline."""

    model_config = ConfigDict(extra="ignore")

    stream: Optional[StreamPayload] = None


class TotalResponse(BaseModel):
    """Body of the subscriptions and follows endpoints."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total: int = Field(alias="_total")
