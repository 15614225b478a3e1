"""Bookkeeping for requests still waiting on the server.

Pokes wait for exactly one `poke` response. Subscriptions receive any
number of `diff` events and end with one `quit` or one subscribe error.
Both registries are keyed by request id and owned by a single Channel.

Entries whose response never arrives stay forever. Channels live as long
as the process, so this is accepted rather than evicted.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .errors import PokeError

# Handlers may be plain functions or coroutine functions.
Handler = Callable[..., Awaitable[None] | None]

T = TypeVar("T")


@dataclass
class OutstandingPoke:
    """Continuations for a poke. Exactly one of them runs."""

    on_success: Callable[[], Any]
    on_failure: Callable[[Any], Any]

    @classmethod
    def for_future(cls, future: asyncio.Future[None]) -> OutstandingPoke:
        """Resolve `future` on success, fail it with PokeError on failure.

        A future that is already done (e.g. its awaiter was cancelled) is
        left alone.
        """

        def on_success() -> None:
            if not future.done():
                future.set_result(None)

        def on_failure(err: Any) -> None:
            if not future.done():
                future.set_exception(PokeError(err))

        return cls(on_success=on_success, on_failure=on_failure)


@dataclass
class SubscriptionHandlers:
    """Callbacks for a subscription.

    - on_event(data): once per `diff`, any number of times
    - on_error(err): the server rejected the subscription (terminal)
    - on_quit(response): the server ended the subscription (terminal)
    """

    on_event: Handler
    on_error: Handler
    on_quit: Handler
    mark: str = "json"


class RequestRegistry(Generic[T]):
    """Request id -> record. Ids are never reused, so a duplicate is a bug."""

    def __init__(self) -> None:
        self._entries: dict[int, T] = {}

    def add(self, request_id: int, record: T) -> None:
        if request_id in self._entries:
            raise ValueError(f"Request {request_id} is already registered")
        self._entries[request_id] = record

    def get(self, request_id: int) -> T | None:
        return self._entries.get(request_id)

    def pop(self, request_id: int) -> T | None:
        """Remove and return the record, or None if there is none."""
        return self._entries.pop(request_id, None)

    def ids(self) -> list[int]:
        return list(self._entries)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._entries))


class PokeRegistry(RequestRegistry[OutstandingPoke]):
    """Pokes awaiting their `poke` response."""


class SubscriptionRegistry(RequestRegistry[SubscriptionHandlers]):
    """Open subscriptions, until `quit` or a subscribe error."""
