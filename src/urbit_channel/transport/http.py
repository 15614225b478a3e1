"""HTTP transport: commands as PUT requests, events over SSE."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

from ..config import DEFAULT_TIMEOUT
from ..errors import ChannelTransportError
from .sse import SSEEventStream

logger = logging.getLogger(__name__)


class HTTPChannelTransport:
    """Channel transport backed by one httpx.AsyncClient.

    The client is created lazily unless one is injected (tests pass a
    client built on httpx.MockTransport).
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None
        self._streams: list[SSEEventStream] = []

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, read=None),  # No read timeout for SSE
            )
        return self._http_client

    async def send(self, url: str, body: bytes, headers: Mapping[str, str]) -> None:
        """PUT a command batch to the channel."""
        client = self._ensure_client()
        try:
            response = await client.put(
                url,
                content=body,
                headers={"Content-Type": "application/json", **headers},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ChannelTransportError(
                f"Channel PUT rejected with HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ChannelTransportError(f"Channel PUT failed: {e}") from e

    def open_stream(self, url: str, headers: Mapping[str, str]) -> SSEEventStream:
        stream = SSEEventStream(self._ensure_client(), url, headers)
        self._streams.append(stream)
        return stream

    async def aclose(self) -> None:
        """Close open streams, and the client if this transport created it."""
        for stream in self._streams:
            await stream.close()
        self._streams.clear()
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
