"""Exceptions raised by the channel client."""

from __future__ import annotations

from typing import Any


class ChannelError(Exception):
    """Base class for all channel client errors."""


class PokeError(ChannelError):
    """The server reported a failed poke.

    The server's error payload is kept verbatim on `err`.
    """

    def __init__(self, err: Any):
        self.err = err
        super().__init__(f"Poke failed: {err}")


class SubscriptionError(ChannelError):
    """The server rejected a subscription."""

    def __init__(self, err: Any):
        self.err = err
        super().__init__(f"Subscription failed: {err}")


class LoginError(ChannelError):
    """Authentication against the ship did not yield a session cookie."""


class ChannelTransportError(ChannelError):
    """An outbound request failed at the HTTP level."""


class ChannelClosedError(ChannelError):
    """The channel was closed and cannot send anymore."""
