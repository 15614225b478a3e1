"""Outbound command definitions.

Every PUT to a channel carries a JSON array of commands. A batch holds one
command, optionally preceded by an ack:

    [
        {"action": "ack", "event-id": 7},
        {"id": 3, "action": "poke", "ship": "zod", "app": "hood",
         "mark": "json", "json": {"x": 1}}
    ]

All but the ack carry an `id` the server echoes back in its responses.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Action(str, Enum):
    """Command actions understood by the channel."""

    POKE = "poke"
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    ACK = "ack"


class ChannelCommand(BaseModel):
    """Base for all outbound commands."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON object the ship expects."""
        return self.model_dump(mode="json", by_alias=True)


class PokeCommand(ChannelCommand):
    """Poke an agent with a cage."""

    id: int
    action: Literal["poke"] = "poke"
    ship: str
    app: str
    mark: str
    data: Any = Field(default=None, alias="json")


class SubscribeCommand(ChannelCommand):
    """Subscribe to a path on an agent."""

    id: int
    action: Literal["subscribe"] = "subscribe"
    ship: str
    app: str
    path: str


class UnsubscribeCommand(ChannelCommand):
    """Cancel the subscription opened by request `subscription`."""

    id: int
    action: Literal["unsubscribe"] = "unsubscribe"
    subscription: int


class AckCommand(ChannelCommand):
    """Acknowledge every server event up to and including `event_id`."""

    action: Literal["ack"] = "ack"
    event_id: int = Field(alias="event-id")


def encode_batch(commands: Sequence[ChannelCommand]) -> bytes:
    """Encode commands as the JSON array body of a channel PUT."""
    return json.dumps([c.to_wire() for c in commands]).encode("utf-8")
