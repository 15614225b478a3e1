"""Channel identity and addressing."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class UrbitConnection:
    """An authenticated connection to a ship.

    Produced by `urbit_channel.login.connect`. The channel never looks
    inside `cookies`; it is forwarded as the Cookie header.
    """

    ship: str
    cookies: str
    url: str
    port: int

    @property
    def base_url(self) -> str:
        return f"{self.url.rstrip('/')}:{self.port}"


def new_channel_uid() -> str:
    """Generate a channel uid: current time in ms plus a random hex suffix."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def channel_url(connection: UrbitConnection, uid: str) -> str:
    return f"{connection.base_url}/~/channel/{uid}"
