"""Inbound response definitions.

Each SSE event on a channel carries one JSON object:

    {"id": 1, "response": "poke", "ok": "ok"}
    {"id": 1, "response": "poke", "err": "bad-request"}
    {"id": 2, "response": "subscribe", "ok": "ok"}
    {"id": 2, "response": "diff", "json": {"update": 2}}
    {"id": 2, "response": "quit"}

`id` is the request id of the command the response belongs to. `ok` and
`err` are told apart by key presence, not by value: `"ok": null` is still a
success.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ResponseType(str, Enum):
    """Response kinds the client routes."""

    POKE = "poke"
    SUBSCRIBE = "subscribe"
    DIFF = "diff"
    QUIT = "quit"


class ChannelResponse(BaseModel):
    """A response pushed by the ship on the event stream."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | None = None
    response: str
    ok: Any = None
    err: Any = None
    payload: Any = Field(default=None, alias="json")

    @property
    def has_ok(self) -> bool:
        return "ok" in self.model_fields_set

    @property
    def has_err(self) -> bool:
        return "err" in self.model_fields_set

    @property
    def response_type(self) -> ResponseType | None:
        """The routed kind, or None for kinds this client does not know."""
        try:
            return ResponseType(self.response)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        """The response as received, including unknown fields."""
        data = self.model_dump(by_alias=True, exclude_unset=True)
        data.update(self.model_extra or {})
        return data

    @classmethod
    def from_json(cls, data: str) -> ChannelResponse:
        """Parse an event body.

        Raises:
            json.JSONDecodeError: If data is not JSON
            pydantic.ValidationError: If data is not a response object
        """
        return cls.model_validate(json.loads(data))
