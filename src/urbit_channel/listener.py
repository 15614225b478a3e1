"""Routes events from the channel's event stream to waiting callers.

Events are handled strictly one at a time: the next event is not looked at
until the handlers for the current one have returned (or, for coroutine
handlers, finished).
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import AsyncIterable
from typing import Any

import httpx
from pydantic import ValidationError

from .errors import ChannelError
from .protocol.responses import ChannelResponse, ResponseType
from .registry import PokeRegistry, SubscriptionRegistry
from .sequence import AckTracker
from .transport.base import ServerEvent

logger = logging.getLogger(__name__)


async def _invoke(handler: Any, *args: Any) -> None:
    """Run a caller handler; a failing handler must not kill the stream."""
    try:
        result = handler(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception(f"Handler {handler!r} raised")


class EventStreamListener:
    """Consumes ServerEvents and settles the matching registry entries."""

    def __init__(
        self,
        pokes: PokeRegistry,
        subscriptions: SubscriptionRegistry,
        acks: AckTracker,
    ):
        self._pokes = pokes
        self._subscriptions = subscriptions
        self._acks = acks

    async def run(self, stream: AsyncIterable[ServerEvent]) -> None:
        """Handle every event from `stream` until it ends or fails.

        A failed stream is logged and not reopened. Registry and ack state
        are left as they were after the last handled event.
        """
        try:
            async for event in stream:
                await self.handle(event)
        except (httpx.HTTPError, httpx.StreamError, ChannelError) as e:
            logger.error(f"Event stream failed: {e}")
            return
        logger.info("Event stream closed by server")

    async def handle(self, event: ServerEvent) -> None:
        """Record the event's sequence id, then route its response."""
        if event.event_id is not None:
            self._acks.observe(event.event_id)
        else:
            logger.debug("Event without sequence id; ack state unchanged")

        try:
            raw = json.loads(event.data)
            response = ChannelResponse.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Skipping malformed event {event.event_id}: {e}")
            return

        kind = response.response_type
        logger.debug(f"Event {event.event_id}: {response.response} for request {response.id}")

        if kind is ResponseType.POKE:
            await self._on_poke(response)
        elif kind is ResponseType.SUBSCRIBE:
            await self._on_subscribe(response)
        elif kind is ResponseType.DIFF:
            await self._on_diff(response)
        elif kind is ResponseType.QUIT:
            await self._on_quit(response)
        else:
            logger.debug(f"Ignoring unknown response kind: {response.response}")

    async def _on_poke(self, response: ChannelResponse) -> None:
        poke = self._pokes.pop(response.id)
        if poke is None:
            logger.debug(f"No outstanding poke {response.id}")
            return

        if response.has_ok:
            await _invoke(poke.on_success)
        elif response.has_err:
            await _invoke(poke.on_failure, response.err)
        else:
            logger.warning(f"Poke response {response.id} has neither ok nor err")

    async def _on_subscribe(self, response: ChannelResponse) -> None:
        # A successful subscribe ack carries no data; only errors matter
        if not response.has_err:
            return

        handlers = self._subscriptions.pop(response.id)
        if handlers is None:
            logger.debug(f"No subscription {response.id} for subscribe error")
            return
        await _invoke(handlers.on_error, response.err)

    async def _on_diff(self, response: ChannelResponse) -> None:
        handlers = self._subscriptions.get(response.id)
        if handlers is None:
            logger.debug(f"No subscription {response.id} for diff")
            return
        await _invoke(handlers.on_event, response.payload)

    async def _on_quit(self, response: ChannelResponse) -> None:
        handlers = self._subscriptions.pop(response.id)
        if handlers is None:
            logger.debug(f"No subscription {response.id} for quit")
            return
        await _invoke(handlers.on_quit, response.to_dict())
