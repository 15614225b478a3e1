"""Unit tests for request ids, ack tracking and registries."""

from __future__ import annotations

import asyncio

import pytest

from urbit_channel.errors import PokeError
from urbit_channel.protocol import AckCommand
from urbit_channel.registry import OutstandingPoke, PokeRegistry, SubscriptionRegistry
from urbit_channel.sequence import AckTracker, RequestIdAllocator


class TestRequestIdAllocator:
    def test_starts_at_one_and_increments(self) -> None:
        ids = RequestIdAllocator()
        assert [ids.next_id() for _ in range(4)] == [1, 2, 3, 4]

    def test_peek_does_not_consume(self) -> None:
        ids = RequestIdAllocator()
        assert ids.peek() == 1
        assert ids.next_id() == 1
        assert ids.peek() == 2


class TestAckTracker:
    def test_nothing_pending_initially(self) -> None:
        assert AckTracker().pending_ack() is None

    def test_pending_after_observe(self) -> None:
        acks = AckTracker()
        acks.observe(3)
        assert acks.pending_ack() == AckCommand(event_id=3)

    def test_mark_acknowledged_clears_pending(self) -> None:
        acks = AckTracker()
        acks.observe(7)
        acks.mark_acknowledged(7)
        assert acks.pending_ack() is None
        assert acks.last_acknowledged_id == 7

    def test_new_event_after_ack(self) -> None:
        acks = AckTracker()
        acks.observe(7)
        acks.mark_acknowledged(7)
        acks.observe(8)
        assert acks.pending_ack() == AckCommand(event_id=8)

    def test_reserved_ack_not_handed_out_twice(self) -> None:
        acks = AckTracker()
        acks.observe(5)
        assert acks.reserve_ack() == AckCommand(event_id=5)
        assert acks.reserve_ack() is None

    def test_release_makes_ack_pending_again(self) -> None:
        acks = AckTracker()
        acks.observe(5)
        acks.reserve_ack()
        acks.release_ack(5)
        assert acks.last_acknowledged_id == 0
        assert acks.pending_ack() == AckCommand(event_id=5)

    def test_release_after_later_reservation_keeps_later_ack(self) -> None:
        acks = AckTracker()
        acks.observe(5)
        acks.reserve_ack()
        acks.observe(6)
        acks.reserve_ack()
        acks.release_ack(5)
        assert acks.last_acknowledged_id == 6

    def test_release_falls_back_to_delivered_ack(self) -> None:
        acks = AckTracker()
        acks.observe(2)
        acks.confirm_ack(acks.reserve_ack().event_id)
        acks.observe(5)
        acks.reserve_ack()
        acks.observe(6)
        acks.reserve_ack()
        acks.release_ack(6)
        acks.release_ack(5)
        assert acks.last_acknowledged_id == 2
        assert acks.pending_ack() == AckCommand(event_id=6)

    def test_mark_acknowledged_never_moves_backwards(self) -> None:
        acks = AckTracker()
        acks.observe(9)
        acks.mark_acknowledged(9)
        acks.mark_acknowledged(4)
        assert acks.last_acknowledged_id == 9


class TestRegistries:
    def test_duplicate_id_rejected(self) -> None:
        registry = SubscriptionRegistry()
        registry.add(1, object())
        with pytest.raises(ValueError):
            registry.add(1, object())

    def test_pop_missing_returns_none(self) -> None:
        assert PokeRegistry().pop(42) is None

    def test_ids_and_len(self) -> None:
        registry = SubscriptionRegistry()
        registry.add(1, object())
        registry.add(3, object())
        registry.pop(1)
        assert registry.ids() == [3]
        assert len(registry) == 1
        assert 3 in registry


class TestOutstandingPokeForFuture:
    @pytest.mark.asyncio
    async def test_success_resolves(self) -> None:
        future = asyncio.get_running_loop().create_future()
        OutstandingPoke.for_future(future).on_success()
        assert await future is None

    @pytest.mark.asyncio
    async def test_failure_raises_poke_error(self) -> None:
        future = asyncio.get_running_loop().create_future()
        OutstandingPoke.for_future(future).on_failure({"msg": "nope"})
        with pytest.raises(PokeError) as exc_info:
            await future
        assert exc_info.value.err == {"msg": "nope"}

    @pytest.mark.asyncio
    async def test_cancelled_future_untouched(self) -> None:
        future = asyncio.get_running_loop().create_future()
        future.cancel()
        poke = OutstandingPoke.for_future(future)
        poke.on_success()
        poke.on_failure("late")
        assert future.cancelled()
