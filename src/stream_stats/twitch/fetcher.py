"""Snapshot fetcher for the Twitch v3 ("kraken") REST API.

Three independent read calls are made per channel:

    - ``fetch_snapshot``: ``GET /streams/{channel}`` returns the live flag, title,
      stream id, viewers and followers in one response.
    - ``subscriber_count``: ``GET /channels/{channel}/subscriptions``,
      requires the channel's OAuth token.
    - ``follower_count``: ``GET /channels/{channel}/follows``.

Each call raises :class:`~stream_stats.core.exceptions.FetchError` on a
network error, a non-2xx status, or a body that does not decode, with
``FetchError.query`` naming the failing call.  Nothing is retried or logged
here; the poller logs failed polls and the session tracker decides what a
failed poll means.
"""

from __future__ import annotations

import json
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from stream_stats.config.settings import Settings
from stream_stats.core.exceptions import FetchError
from stream_stats.tracker.state import Snapshot
from stream_stats.twitch.config import (
    ACCEPT_HEADER,
    FOLLOWS_ENDPOINT,
    HTTP_TIMEOUT_SECONDS,
    QUERY_FOLLOWERS,
    QUERY_STREAM,
    QUERY_SUBSCRIBERS,
    STREAM_ENDPOINT,
    SUBSCRIPTIONS_ENDPOINT,
    USER_AGENT,
)
from stream_stats.twitch.schemas import StreamResponse, TotalResponse

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class SnapshotFetcher:
    """Reads channel status and totals from the upstream API.

    Also serves as the :class:`~stream_stats.tracker.machine.ChannelCounts`
    capability of the session tracker.

    Args:
        settings: Monitor settings (channel, token, API base URL).
        http_client: Optional injected :class:`httpx.AsyncClient` for testing.
            An injected client is not closed by :meth:`aclose`.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.channel = settings.stream_channel
        self._auth_token = settings.auth_token
        self._owns_client = http_client is None
        self._client = http_client or self._build_http_client(settings.api_base)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_snapshot(self) -> Snapshot:
        """Return the channel's current status.

        Returns:
            A :class:`Snapshot`; an offline channel yields an empty title.

        Raises:
            FetchError: If the stream query fails.
        """
        data = await self._get(
            STREAM_ENDPOINT.format(channel=self.channel),
            query=QUERY_STREAM,
            model=StreamResponse,
        )
        stream = data.stream
        if stream is None:
            return Snapshot.offline()
        return Snapshot(
            title=stream.channel.status,
            stream_id=stream.stream_id,
            viewers=stream.viewers,
            followers=stream.channel.followers,
            game=stream.game,
        )

    async def fetch(self) -> Snapshot | FetchError:
        """Like :meth:`fetch_snapshot`, but return the error instead of raising."""
        try:
            return await self.fetch_snapshot()
        except FetchError as exc:
            return exc

    async def subscriber_count(self) -> int:
        """Return the channel's subscriber total.

        Raises:
            FetchError: If the subscriptions query fails.
        """
        data = await self._get(
            SUBSCRIPTIONS_ENDPOINT.format(channel=self.channel),
            query=QUERY_SUBSCRIBERS,
            model=TotalResponse,
            headers={"Authorization": f"OAuth {self._auth_token}"},
        )
        return data.total

    async def follower_count(self) -> int:
        """Return the channel's follower total.

        Raises:
            FetchError: If the follows query fails.
        """
        data = await self._get(
            FOLLOWS_ENDPOINT.format(channel=self.channel),
            query=QUERY_FOLLOWERS,
            model=TotalResponse,
        )
        return data.total

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_http_client(api_base: str) -> httpx.AsyncClient:
        """Build an :class:`httpx.AsyncClient` pinned to the v3 API."""
        return httpx.AsyncClient(
            base_url=api_base,
            headers={
                "Accept": ACCEPT_HEADER,
                "User-Agent": USER_AGENT,
            },
            timeout=HTTP_TIMEOUT_SECONDS,
        )

    async def _get(
        self,
        path: str,
        query: str,
        model: type[_ModelT],
        headers: dict[str, str] | None = None,
    ) -> _ModelT:
        """GET *path* and decode the JSON body into *model*.

        Raises:
            FetchError: On network error, non-2xx status or undecodable body.
        """
        request_headers = {"Accept": ACCEPT_HEADER}
        if headers:
            request_headers.update(headers)

        try:
            response = await self._client.get(path, headers=request_headers)
        except httpx.RequestError as exc:
            raise FetchError(
                f"twitch: request error on {path}: {exc}",
                query=query,
                channel=self.channel,
            ) from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise FetchError(
                f"twitch: HTTP {status} on {path}",
                query=query,
                channel=self.channel,
                status_code=status,
            ) from exc

        try:
            return model.model_validate(response.json())
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            raise FetchError(
                f"twitch: malformed response body on {path}",
                query=query,
                channel=self.channel,
                status_code=response.status_code,
            ) from exc
