"""Log in to a ship and obtain the session cookie a channel needs."""

from __future__ import annotations

import logging

import httpx

from .config import DEFAULT_TIMEOUT, ChannelConfig
from .errors import LoginError
from .identity import UrbitConnection

logger = logging.getLogger(__name__)


async def connect(
    ship: str,
    url: str,
    port: int,
    code: str,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> UrbitConnection:
    """Authenticate to a ship over HTTP.

    Args:
        ship: Ship name; a leading ~ is dropped
        url: Base URL of the ship, without port
        port: HTTP port of the ship
        code: The ship's +code
        http_client: Client to use instead of a fresh one

    Raises:
        LoginError: If the ship is unreachable or sets no cookie
    """
    base_url = f"{url.rstrip('/')}:{port}"
    client = http_client or httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.post(f"{base_url}/~/login", data={"password": code})
    except httpx.RequestError as e:
        raise LoginError(f"Unable to reach {base_url}: {e}") from e
    finally:
        if http_client is None:
            await client.aclose()

    set_cookies = response.headers.get_list("set-cookie")
    if not set_cookies:
        raise LoginError(f"Unable to connect to {base_url}: HTTP {response.status_code}, no cookie")

    # Only the name=value pair goes back in Cookie headers
    cookies = set_cookies[0].split(";", 1)[0].strip()
    logger.info(f"Logged in to ~{ship.lstrip('~')} at {base_url}")
    return UrbitConnection(ship=ship.lstrip("~"), cookies=cookies, url=url, port=port)


async def connect_with_config(
    config: ChannelConfig,
    http_client: httpx.AsyncClient | None = None,
) -> UrbitConnection:
    """connect() using settings from a ChannelConfig.

    Raises:
        LoginError: If no code is configured or the login fails
    """
    if not config.code:
        raise LoginError("No login code configured (set URBIT_CODE or pass --code)")
    return await connect(
        config.ship,
        config.url,
        config.port,
        config.code,
        http_client=http_client,
        timeout=config.timeout,
    )
