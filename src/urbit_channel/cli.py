"""urbit-channel CLI.

Usage:
    urbit-channel poke hood '{"x": 1}'           # Poke an agent
    urbit-channel watch chat-store /updates      # Print events until quit
    urbit-channel watch graph-store /updates -n 5 --format json
    urbit-channel config                         # Show configuration

Connection settings come from options or URBIT_URL, URBIT_PORT,
URBIT_SHIP, URBIT_CODE and URBIT_TIMEOUT.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

import click

from .channel import Channel
from .config import ChannelConfig
from .errors import ChannelError, PokeError, SubscriptionError
from .login import connect_with_config
from .marks import Cage
from .transport.http import HTTPChannelTransport

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"


def truncate(text: str, max_len: int = 70) -> str:
    """Truncate text for display."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


@click.group()
@click.option("--url", default=None, help="Ship URL without port [env: URBIT_URL]")
@click.option("--port", type=int, default=None, help="Ship HTTP port [env: URBIT_PORT]")
@click.option("--ship", default=None, help="Ship name [env: URBIT_SHIP]")
@click.option("--code", default=None, help="Login +code [env: URBIT_CODE]")
@click.option("--verbose", "-v", is_flag=True, help="Log protocol traffic to stderr")
@click.pass_context
def main(
    ctx: click.Context,
    url: str | None,
    port: int | None,
    ship: str | None,
    code: str | None,
    verbose: bool,
) -> None:
    """Talk to agents on a running ship over an HTTP channel."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        ctx.obj = ChannelConfig.from_env(url=url, port=port, ship=ship, code=code)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


# =============================================================================
# Poke
# =============================================================================


@main.command("poke")
@click.argument("app")
@click.argument("data")
@click.option("--mark", default="json", type=click.Choice(["json"]), help="Mark of the data")
@click.pass_obj
def poke(config: ChannelConfig, app: str, data: str, mark: str) -> None:
    """Poke APP with DATA (a JSON document).

    Examples:

        urbit-channel poke hood '"hi"'
        urbit-channel --ship zod poke chat-hook '{"add": {"path": "/x"}}'
    """
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="DATA") from e

    async def run() -> None:
        connection = await connect_with_config(config)
        async with Channel(connection, HTTPChannelTransport(config.timeout)) as channel:
            await channel.poke(app, Cage(mark=mark, data=payload))

    try:
        asyncio.run(run())
    except PokeError as e:
        click.echo(f"Poke failed: {_render(e.err)}", err=True)
        sys.exit(1)
    except ChannelError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(click.style("ok", fg="green"))


# =============================================================================
# Watch
# =============================================================================


@main.command("watch")
@click.argument("app")
@click.argument("path")
@click.option("--count", "-n", type=int, default=None, help="Stop after N events")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
@click.pass_obj
def watch(
    config: ChannelConfig,
    app: str,
    path: str,
    count: int | None,
    output_format: str,
) -> None:
    """Subscribe to PATH on APP and print each event.

    Runs until the ship ends the subscription, or until --count events
    have arrived (then unsubscribes). If the event stream drops without
    the ship ending the subscription, it keeps waiting; stop it with Ctrl-C.

    Examples:

        urbit-channel watch chat-store /updates
        urbit-channel watch graph-store /updates -n 1 --format json
    """

    async def run() -> dict[str, Any] | None:
        connection = await connect_with_config(config)
        async with Channel(connection, HTTPChannelTransport(config.timeout)) as channel:
            subscription = await channel.watch(app, path)
            seen = 0
            async for event in subscription:
                seen += 1
                if output_format == FORMAT_JSON:
                    click.echo(json.dumps(event))
                else:
                    click.echo(f"{seen:>5}  {truncate(_render(event))}")
                if count is not None and seen >= count:
                    await subscription.cancel()
                    return None
            return subscription.quit_payload

    try:
        quit_payload = asyncio.run(run())
    except SubscriptionError as e:
        click.echo(f"Subscription failed: {_render(e.err)}", err=True)
        sys.exit(1)
    except ChannelError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if quit_payload is not None:
        click.echo("Subscription ended by ship", err=True)


# =============================================================================
# Config Command
# =============================================================================


@main.command("config")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def show_config(config: ChannelConfig, output_json: bool) -> None:
    """Show current configuration.

    Examples:

        urbit-channel config
        urbit-channel --port 8081 config --json
    """
    data = config.to_dict()

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("urbit-channel Configuration")
    click.echo("-" * 40)
    click.echo(f"Ship:     ~{config.ship.lstrip('~')}")
    click.echo(f"Base URL: {config.base_url}")
    click.echo(f"Code:     {data['code'] or 'not set'}")
    click.echo(f"Timeout:  {config.timeout}s")


def _render(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


if __name__ == "__main__":
    main()
