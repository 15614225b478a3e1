"""Server-Sent Events stream consumer.

Parses the `text/event-stream` format:

    id: 4
    data: {"id": 2, "response": "diff", "json": {"update": 2}}

Fields are collected until a blank line, which dispatches the event.
Lines starting with ':' are comments (keep-alives) and are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping

import httpx

from .base import ServerEvent

logger = logging.getLogger(__name__)


async def parse_sse(lines: AsyncIterator[str]) -> AsyncIterator[ServerEvent]:
    """Turn a stream of SSE lines into ServerEvents."""
    event_id: int | None = None
    data_lines: list[str] = []

    async for raw in lines:
        line = raw.rstrip("\r\n")

        if not line:
            if data_lines:
                yield ServerEvent(event_id=event_id, data="\n".join(data_lines))
            event_id = None
            data_lines = []
            continue

        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            data_lines.append(value)
        elif field == "id":
            try:
                event_id = int(value)
            except ValueError:
                logger.debug(f"Ignoring non-numeric event id: {value!r}")
                event_id = None
        # "event" and "retry" carry nothing the channel uses

    # A final event without trailing blank line is still delivered
    if data_lines:
        yield ServerEvent(event_id=event_id, data="\n".join(data_lines))


class SSEEventStream:
    """Client-side SSE event stream over an httpx client.

    Opens one GET request and yields events until the server closes it.
    There is no reconnection: once the stream ends, it stays ended.
    """

    def __init__(self, client: httpx.AsyncClient, url: str, headers: Mapping[str, str]):
        self._client = client
        self._url = url
        self._headers = dict(headers)
        self._response: httpx.Response | None = None
        self._closed = False

    async def __aiter__(self) -> AsyncIterator[ServerEvent]:
        if self._closed:
            return

        request = self._client.build_request(
            "GET",
            self._url,
            headers={**self._headers, "Accept": "text/event-stream"},
        )
        response = await self._client.send(request, stream=True)
        self._response = response
        try:
            response.raise_for_status()
            logger.info(f"Event stream open: {self._url}")
            async for event in parse_sse(response.aiter_lines()):
                if self._closed:
                    break
                yield event
        finally:
            await response.aclose()

    async def close(self) -> None:
        """Stop reading and release the connection."""
        self._closed = True
        if self._response:
            await self._response.aclose()
