"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Mapping
from typing import Any

import pytest

from urbit_channel.channel import Channel
from urbit_channel.identity import UrbitConnection
from urbit_channel.transport.base import ServerEvent


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


class FakeTransport:
    """In-memory ChannelTransport.

    Records every PUT and serves the event stream from a queue. push()
    returns once the channel has finished handling the event.
    """

    def __init__(self) -> None:
        self.sent: list[tuple[str, list[dict[str, Any]], dict[str, str]]] = []
        self.opened: list[tuple[str, dict[str, str]]] = []
        self.fail_next_send: Exception | None = None
        # seconds each successive send waits before it is recorded
        self.send_delays: list[float] = []
        self.closed = False
        self._events: asyncio.Queue[ServerEvent | Exception | None] = asyncio.Queue()

    @property
    def batches(self) -> list[list[dict[str, Any]]]:
        return [batch for _, batch, _ in self.sent]

    async def send(self, url: str, body: bytes, headers: Mapping[str, str]) -> None:
        if self.fail_next_send is not None:
            error, self.fail_next_send = self.fail_next_send, None
            raise error
        if self.send_delays:
            await asyncio.sleep(self.send_delays.pop(0))
        self.sent.append((url, json.loads(body), dict(headers)))

    def open_stream(self, url: str, headers: Mapping[str, str]) -> AsyncIterator[ServerEvent]:
        self.opened.append((url, dict(headers)))
        return self._stream()

    async def _stream(self) -> AsyncIterator[ServerEvent]:
        while True:
            event = await self._events.get()
            try:
                if event is None:
                    return
                if isinstance(event, Exception):
                    raise event
                yield event
            finally:
                self._events.task_done()

    async def push(self, event_id: int | None, payload: dict[str, Any] | str) -> None:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        await self._events.put(ServerEvent(event_id=event_id, data=data))
        await asyncio.wait_for(self._events.join(), timeout=2.0)

    async def end_stream(self) -> None:
        await self._events.put(None)
        await asyncio.wait_for(self._events.join(), timeout=2.0)

    async def fail_stream(self, error: Exception) -> None:
        await self._events.put(error)
        await asyncio.wait_for(self._events.join(), timeout=2.0)

    async def wait_for_sends(self, count: int) -> None:
        async def poll() -> None:
            while len(self.sent) < count:
                await asyncio.sleep(0)

        await asyncio.wait_for(poll(), timeout=2.0)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def connection() -> UrbitConnection:
    return UrbitConnection(
        ship="zod",
        cookies="urbauth-~zod=0v1.abcde",
        url="http://localhost",
        port=8080,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def channel(connection: UrbitConnection, transport: FakeTransport) -> Channel:
    return Channel(connection, transport=transport, uid="1700000000000-abc123")


@pytest.fixture
def transport_factory() -> type[FakeTransport]:
    return FakeTransport
