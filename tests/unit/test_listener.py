"""Unit tests for EventStreamListener routing edge cases."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import httpx
import pytest

from urbit_channel.listener import EventStreamListener
from urbit_channel.registry import (
    OutstandingPoke,
    PokeRegistry,
    SubscriptionHandlers,
    SubscriptionRegistry,
)
from urbit_channel.sequence import AckTracker
from urbit_channel.transport.base import ServerEvent


@pytest.fixture
def pokes() -> PokeRegistry:
    return PokeRegistry()


@pytest.fixture
def subscriptions() -> SubscriptionRegistry:
    return SubscriptionRegistry()


@pytest.fixture
def acks() -> AckTracker:
    return AckTracker()


@pytest.fixture
def listener(pokes, subscriptions, acks) -> EventStreamListener:
    return EventStreamListener(pokes, subscriptions, acks)


def event(event_id: int | None, payload: dict) -> ServerEvent:
    return ServerEvent(event_id=event_id, data=json.dumps(payload))


def mock_handlers() -> SubscriptionHandlers:
    return SubscriptionHandlers(on_event=MagicMock(), on_error=MagicMock(), on_quit=MagicMock())


class TestSequenceTracking:
    """Every event updates the last observed sequence id."""

    @pytest.mark.asyncio
    async def test_observes_event_id(self, listener, acks) -> None:
        await listener.handle(event(12, {"id": 1, "response": "diff", "json": 1}))
        assert acks.last_event_id == 12

    @pytest.mark.asyncio
    async def test_malformed_body_still_observed(self, listener, acks) -> None:
        await listener.handle(ServerEvent(event_id=4, data="not json"))
        assert acks.last_event_id == 4

    @pytest.mark.asyncio
    async def test_event_without_id_leaves_state(self, listener, acks) -> None:
        acks.observe(3)
        await listener.handle(ServerEvent(event_id=None, data='{"id": 1, "response": "diff"}'))
        assert acks.last_event_id == 3


class TestLookupMisses:
    """Responses for unknown request ids are no-ops."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"id": 9, "response": "poke", "ok": "ok"},
            {"id": 9, "response": "poke", "err": "x"},
            {"id": 9, "response": "subscribe", "err": "x"},
            {"id": 9, "response": "diff", "json": {}},
            {"id": 9, "response": "quit"},
        ],
    )
    async def test_miss_is_ignored(self, listener, pokes, subscriptions, payload) -> None:
        handlers = mock_handlers()
        subscriptions.add(1, handlers)

        await listener.handle(event(1, payload))

        assert len(pokes) == 0
        assert 1 in subscriptions
        handlers.on_event.assert_not_called()
        handlers.on_quit.assert_not_called()
        handlers.on_error.assert_not_called()


class TestRouting:
    """Response kinds reach the right continuation."""

    @pytest.mark.asyncio
    async def test_unknown_response_kind_ignored(self, listener, subscriptions) -> None:
        handlers = mock_handlers()
        subscriptions.add(1, handlers)

        await listener.handle(event(1, {"id": 1, "response": "kick"}))

        assert 1 in subscriptions
        handlers.on_quit.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_object_body_skipped(self, listener, acks) -> None:
        await listener.handle(ServerEvent(event_id=2, data="[1, 2]"))
        assert acks.last_event_id == 2

    @pytest.mark.asyncio
    async def test_poke_without_outcome_removed(self, listener, pokes) -> None:
        on_success, on_failure = MagicMock(), MagicMock()
        pokes.add(1, OutstandingPoke(on_success=on_success, on_failure=on_failure))

        await listener.handle(event(1, {"id": 1, "response": "poke"}))

        assert 1 not in pokes
        on_success.assert_not_called()
        on_failure.assert_not_called()

    @pytest.mark.asyncio
    async def test_poke_failure_gets_err_payload(self, listener, pokes) -> None:
        on_success, on_failure = MagicMock(), MagicMock()
        pokes.add(5, OutstandingPoke(on_success=on_success, on_failure=on_failure))

        await listener.handle(event(1, {"id": 5, "response": "poke", "err": ["trace", "line"]}))

        on_failure.assert_called_once_with(["trace", "line"])
        on_success.assert_not_called()

    @pytest.mark.asyncio
    async def test_diff_with_null_payload(self, listener, subscriptions) -> None:
        handlers = mock_handlers()
        subscriptions.add(2, handlers)

        await listener.handle(event(1, {"id": 2, "response": "diff", "json": None}))

        handlers.on_event.assert_called_once_with(None)


class TestRun:
    """run() consumes a stream until it ends or fails."""

    @pytest.mark.asyncio
    async def test_handles_all_events(self, listener, subscriptions, acks) -> None:
        handlers = mock_handlers()
        subscriptions.add(1, handlers)

        async def stream():
            yield event(1, {"id": 1, "response": "diff", "json": "a"})
            yield event(2, {"id": 1, "response": "diff", "json": "b"})

        await listener.run(stream())

        assert handlers.on_event.call_count == 2
        assert acks.last_event_id == 2

    @pytest.mark.asyncio
    async def test_transport_error_ends_quietly(self, listener, subscriptions, acks) -> None:
        handlers = mock_handlers()
        subscriptions.add(1, handlers)

        async def stream():
            yield event(1, {"id": 1, "response": "diff", "json": "a"})
            raise httpx.ReadError("connection reset")

        await listener.run(stream())

        handlers.on_event.assert_called_once_with("a")
        assert 1 in subscriptions
        assert acks.last_event_id == 1
