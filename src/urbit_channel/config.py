"""Client configuration.

Values come from explicit arguments first, then environment variables,
then defaults:

    URBIT_URL      Base URL of the ship, without port (default: http://localhost)
    URBIT_PORT     HTTP port of the ship (default: 8080)
    URBIT_SHIP     Ship name, with or without leading ~ (default: zod)
    URBIT_CODE     +code used to log in
    URBIT_TIMEOUT  Timeout in seconds for PUT and login requests (default: 30)
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from typing import Any

DEFAULT_URL = "http://localhost"
DEFAULT_PORT = 8080
DEFAULT_SHIP = "zod"
DEFAULT_TIMEOUT = 30.0


@dataclass
class ChannelConfig:
    """Connection settings for a ship."""

    url: str = DEFAULT_URL
    port: int = DEFAULT_PORT
    ship: str = DEFAULT_SHIP
    code: str | None = None

    # Applies to PUT and login requests. The event stream never times out.
    timeout: float = DEFAULT_TIMEOUT

    @property
    def base_url(self) -> str:
        return f"{self.url.rstrip('/')}:{self.port}"

    @classmethod
    def from_env(cls, **overrides: Any) -> ChannelConfig:
        """Build a config from the environment.

        Keyword overrides that are not None take precedence.

        Raises:
            ValueError: If URBIT_PORT or URBIT_TIMEOUT is not a number
        """
        values: dict[str, Any] = {
            "url": os.getenv("URBIT_URL", DEFAULT_URL),
            "port": _parse_number("URBIT_PORT", int, DEFAULT_PORT),
            "ship": os.getenv("URBIT_SHIP", DEFAULT_SHIP),
            "code": os.getenv("URBIT_CODE") or None,
            "timeout": _parse_number("URBIT_TIMEOUT", float, DEFAULT_TIMEOUT),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self, redact: bool = True) -> dict[str, Any]:
        """Serialize for display. The login code is hidden unless redact=False."""
        data = asdict(self)
        if redact and data["code"]:
            data["code"] = "********"
        return data


def _parse_number(env_var: str, kind: type, default: Any) -> Any:
    raw = os.getenv(env_var)
    if not raw:
        return default
    try:
        return kind(raw)
    except ValueError as e:
        raise ValueError(f"Invalid {env_var}: {raw!r}") from e
