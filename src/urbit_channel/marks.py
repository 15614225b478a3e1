"""Marks and cages.

A cage is a piece of data tagged with its mark (the name of its shape).
The channel only speaks the `json` mark: the ship converts it to whatever
the agent expects.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

Mark = Literal["json"]


class Cage(BaseModel):
    """Data tagged with a mark."""

    mark: Mark = "json"
    data: Any = None

    @classmethod
    def json_(cls, data: Any) -> Cage:
        """Create a `json`-marked cage."""
        return cls(mark="json", data=data)
