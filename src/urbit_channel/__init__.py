"""Asyncio client for the Urbit HTTP channel protocol.

Poke agents and subscribe to their paths over one channel: commands are
PUT to the ship, responses stream back over Server-Sent Events.
"""

from .channel import Channel, Subscription
from .config import ChannelConfig
from .errors import (
    ChannelClosedError,
    ChannelError,
    ChannelTransportError,
    LoginError,
    PokeError,
    SubscriptionError,
)
from .identity import UrbitConnection
from .login import connect, connect_with_config
from .marks import Cage, Mark
from .registry import SubscriptionHandlers

__all__ = [
    "Channel",
    "Subscription",
    "SubscriptionHandlers",
    "ChannelConfig",
    "UrbitConnection",
    "connect",
    "connect_with_config",
    "Cage",
    "Mark",
    "ChannelError",
    "PokeError",
    "SubscriptionError",
    "LoginError",
    "ChannelTransportError",
    "ChannelClosedError",
]
