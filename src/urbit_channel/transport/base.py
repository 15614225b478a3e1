"""Transport abstraction for channels.

A channel needs two things from its transport: a way to PUT a command
batch, and a one-way event stream. Anything satisfying ChannelTransport
works, which is how tests drive a Channel without a network.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Mapping
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class ServerEvent(BaseModel):
    """One event received on the channel's event stream.

    `event_id` is the stream's sequence number (the SSE `id:` field), used
    for acks. `data` is the raw body.
    """

    event_id: int | None = None
    data: str


@runtime_checkable
class ChannelTransport(Protocol):
    """Protocol for the HTTP side of a channel.

    Implementations:
    - HTTPChannelTransport: httpx PUT + SSE
    """

    async def send(self, url: str, body: bytes, headers: Mapping[str, str]) -> None:
        """Deliver a command batch.

        Raises:
            ChannelTransportError: If the request fails or is rejected
        """
        ...

    def open_stream(self, url: str, headers: Mapping[str, str]) -> AsyncIterable[ServerEvent]:
        """Open the event stream. Events are yielded in arrival order."""
        ...

    async def aclose(self) -> None:
        """Release connections."""
        ...
