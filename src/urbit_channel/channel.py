"""The channel: one session multiplexing pokes and subscriptions.

Commands go out as PUT requests to the channel URL; responses come back on
a single SSE stream opened against the same URL after the first send.
Requests and responses are matched by request id alone, so concurrent
PUTs may complete in any order.

Usage:
    connection = await connect("zod", "http://localhost", 8080, code)
    async with Channel(connection) as channel:
        await channel.poke("hood", Cage.json_({"x": 1}))

        async with await channel.watch("chat-store", "/updates") as sub:
            async for update in sub:
                print(update)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from .errors import ChannelClosedError, SubscriptionError
from .identity import UrbitConnection, channel_url, new_channel_uid
from .listener import EventStreamListener
from .marks import Cage
from .protocol.commands import (
    ChannelCommand,
    PokeCommand,
    SubscribeCommand,
    UnsubscribeCommand,
    encode_batch,
)
from .registry import OutstandingPoke, PokeRegistry, SubscriptionHandlers, SubscriptionRegistry
from .sequence import AckTracker, RequestIdAllocator
from .transport.base import ChannelTransport
from .transport.http import HTTPChannelTransport

logger = logging.getLogger(__name__)


class Channel:
    """An HTTP channel to a running ship.

    All state (request ids, registries, ack counters, the event stream) is
    per instance, so several channels can share a process.
    """

    def __init__(
        self,
        connection: UrbitConnection,
        transport: ChannelTransport | None = None,
        uid: str | None = None,
    ):
        self.connection = connection
        self.uid = uid or new_channel_uid()
        self._transport: ChannelTransport = transport or HTTPChannelTransport()
        self._ids = RequestIdAllocator()
        self._acks = AckTracker()
        self._pokes = PokeRegistry()
        self._subscriptions = SubscriptionRegistry()
        self._listener = EventStreamListener(self._pokes, self._subscriptions, self._acks)
        self._listener_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def url(self) -> str:
        return channel_url(self.connection, self.uid)

    @property
    def is_connected(self) -> bool:
        """Whether the event stream is open and being listened to.

        False again once the stream ends; the channel does not reopen it.
        """
        return self._listener_task is not None and not self._listener_task.done()

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def last_event_id(self) -> int:
        return self._acks.last_event_id

    @property
    def last_acknowledged_id(self) -> int:
        return self._acks.last_acknowledged_id

    def has_poke(self, request_id: int) -> bool:
        return request_id in self._pokes

    def has_subscription(self, request_id: int) -> bool:
        return request_id in self._subscriptions

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def poke(self, app: str, cage: Cage) -> None:
        """Poke an agent with a cage.

        Args:
            app: Name of the agent to poke
            cage: Marked data to poke it with

        Returns when the ship reports the poke succeeded. There is no
        timeout: a poke the ship never answers never returns.

        Raises:
            PokeError: The ship reported failure; `err` holds its payload
            ChannelTransportError: The PUT itself failed
        """
        request_id = self._ids.next_id()
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._pokes.add(request_id, OutstandingPoke.for_future(future))

        command = PokeCommand(
            id=request_id,
            ship=self.connection.ship,
            app=app,
            mark=cage.mark,
            data=cage.data,
        )
        try:
            await self._send(command)
        except Exception:
            self._pokes.pop(request_id)
            raise

        await future

    async def subscribe(self, app: str, path: str, handlers: SubscriptionHandlers) -> int:
        """Subscribe to `path` on an agent.

        The handlers are registered before the command is sent, so no
        response can arrive ahead of them.

        Returns:
            The subscription's request id, for unsubscribe()
        """
        request_id = self._ids.next_id()
        self._subscriptions.add(request_id, handlers)

        command = SubscribeCommand(
            id=request_id,
            ship=self.connection.ship,
            app=app,
            path=path,
        )
        try:
            await self._send(command)
        except Exception:
            self._subscriptions.pop(request_id)
            raise
        return request_id

    async def unsubscribe(self, subscription: int) -> int:
        """Ask the ship to end a subscription.

        Best effort: the handlers stay registered, and may still receive
        events, until the ship answers with `quit`.

        Returns:
            The request id of the unsubscribe command itself
        """
        request_id = self._ids.next_id()
        await self._send(UnsubscribeCommand(id=request_id, subscription=subscription))
        return request_id

    async def watch(self, app: str, path: str, mark: str = "json") -> Subscription:
        """Subscribe and consume events as an async iterator.

        See Subscription.
        """
        subscription = Subscription(self)
        subscription.request_id = await self.subscribe(
            app, path, subscription.handlers(mark)
        )
        return subscription

    # -------------------------------------------------------------------------
    # Sending and connection
    # -------------------------------------------------------------------------

    async def _send(self, command: ChannelCommand) -> None:
        """PUT a command, with an ack for unacknowledged events prepended."""
        if self._closed:
            raise ChannelClosedError("Channel is closed")

        ack = self._acks.reserve_ack()
        batch: list[ChannelCommand] = [ack, command] if ack else [command]
        body = encode_batch(batch)

        logger.debug(f"PUT {self.url}: {body.decode('utf-8')}")
        try:
            await self._transport.send(self.url, body, self._headers())
        except BaseException:
            if ack:
                self._acks.release_ack(ack.event_id)
            raise

        if ack:
            self._acks.confirm_ack(ack.event_id)
        self.ensure_connected()

    def ensure_connected(self) -> None:
        """Open the event stream unless it is already open.

        The stream is opened at most once per channel; after it ends it is
        not reopened.
        """
        if self._listener_task is not None:
            return
        if self._closed:
            raise ChannelClosedError("Channel is closed")

        headers = {**self._headers(), "Connection": "keep-alive"}
        stream = self._transport.open_stream(self.url, headers)
        self._listener_task = asyncio.create_task(self._listener.run(stream))
        logger.info(f"Channel {self.uid} connected to {self.connection.base_url}")

    def _headers(self) -> dict[str, str]:
        return {"Cookie": self.connection.cookies}

    async def aclose(self) -> None:
        """Stop the event stream and release the transport."""
        if self._closed:
            return
        self._closed = True

        try:
            if self._listener_task:
                self._listener_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._listener_task
        except Exception:
            logger.exception(f"Listener for channel {self.uid} failed")
        finally:
            await self._transport.aclose()
        logger.info(f"Channel {self.uid} closed")

    async def __aenter__(self) -> Channel:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


_QUIT = object()


class Subscription:
    """A subscription consumed as an async iterator.

    Iterating yields each `diff` payload. Iteration stops when the ship
    sends `quit` (its response is kept on `quit_payload`) and raises
    SubscriptionError if the ship rejects the subscription.

    If the event stream ends without a quit, iteration waits indefinitely;
    check Channel.is_connected or wrap it in a timeout.
    """

    def __init__(self, channel: Channel):
        self._channel = channel
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self.request_id: int | None = None
        self.quit_payload: dict[str, Any] | None = None
        self.finished = False
        self._cancelled = False

    def handlers(self, mark: str = "json") -> SubscriptionHandlers:
        return SubscriptionHandlers(
            on_event=self._queue.put_nowait,
            on_error=lambda err: self._queue.put_nowait(SubscriptionError(err)),
            on_quit=self._on_quit,
            mark=mark,
        )

    def _on_quit(self, payload: dict[str, Any]) -> None:
        self.quit_payload = payload
        self._queue.put_nowait(_QUIT)

    async def cancel(self) -> None:
        """Ask the ship to end the subscription. Iteration ends on its quit.

        Sends at most one unsubscribe, and none once the subscription has
        finished or the channel is closed.
        """
        if self.request_id is None or self.finished or self._cancelled:
            return
        if self._channel.is_closed:
            return
        self._cancelled = True
        await self._channel.unsubscribe(self.request_id)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        if self.finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _QUIT:
            self.finished = True
            raise StopAsyncIteration
        if isinstance(item, SubscriptionError):
            self.finished = True
            raise item
        return item

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.cancel()
