"""Channel wire protocol: outbound commands and inbound responses."""

from .commands import (
    AckCommand,
    Action,
    ChannelCommand,
    PokeCommand,
    SubscribeCommand,
    UnsubscribeCommand,
    encode_batch,
)
from .responses import ChannelResponse, ResponseType

__all__ = [
    "Action",
    "ChannelCommand",
    "PokeCommand",
    "SubscribeCommand",
    "UnsubscribeCommand",
    "AckCommand",
    "encode_batch",
    "ChannelResponse",
    "ResponseType",
]
