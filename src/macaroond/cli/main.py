"""CLI entry point for macaroond.

Invoked as::

    macaroond [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m macaroond.cli.main

Commands
--------
version     Show version information
serve       Run the root key daemon
login       Log in to the daemon and print an access token
passwd      Change the daemon password
root-key    Fetch a root key using MACAROON_ACCESS_TOKEN
new         Mint a macaroon granting operations
show        Print macaroons
caveat      Add a first-party caveat to a macaroon
check       Check that macaroons authorize operations
"""
from __future__ import annotations

import base64
import datetime
import logging
import re
import sys

import click
from rich.console import Console

from macaroond.config import ACCESS_TOKEN_ENV, get_settings

console = Console()


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="macaroond")
def cli() -> None:
    """Root key custody daemon for macaroon minting"""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from macaroond import __version__

    console.print(f"[bold]macaroond[/bold] v{__version__}")


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.argument("directory", type=click.Path(file_okay=False), required=False)
@click.option(
    "--network",
    "-t",
    type=click.Choice(["tcp", "unix"]),
    default=None,
    help="Network type (default: tcp).",
)
@click.option("--addr", default=None, help="host:port for tcp or a socket path for unix.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging level.",
)
def serve_command(
    directory: str | None,
    network: str | None,
    addr: str | None,
    log_level: str | None,
) -> None:
    """Serve root keys sealed in DIRECTORY."""
    from macaroond.server.app import run_server

    settings = get_settings()
    if directory is None:
        if settings.directory is None:
            console.print("[red]Error:[/red] no directory given (argument or MACAROOND_DIRECTORY)")
            sys.exit(2)
        directory = str(settings.directory)

    logging.basicConfig(level=getattr(logging, (log_level or settings.log_level).upper()))
    try:
        run_server(
            directory,
            network=network or settings.network,
            address=addr or settings.address,
            token_ttl_seconds=settings.token_ttl_seconds,
        )
    except (OSError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


# ------------------------------------------------------------------
# login / passwd
# ------------------------------------------------------------------


def _prompt(message: str) -> str:
    return click.prompt(message, hide_input=True, default="", show_default=False)


def _client(network: str | None, addr: str | None):  # type: ignore[no-untyped-def]
    from macaroond.client import MacaroondClient

    settings = get_settings()
    return MacaroondClient(
        network or settings.network,
        addr or settings.address,
        timeout=settings.request_timeout,
    )


_network_option = click.option(
    "--network",
    "-t",
    type=click.Choice(["tcp", "unix"]),
    default=None,
    help="Network type of the daemon (default: tcp).",
)
_addr_option = click.option("--addr", default=None, help="Address of the daemon.")


@cli.command(name="login")
@_network_option
@_addr_option
def login_command(network: str | None, addr: str | None) -> None:
    """Log in to the daemon, setting a first password if none exists."""
    from macaroond.client import login
    from macaroond.errors import MacaroondError
    from macaroond.token import encode_token_set

    with _client(network, addr) as client:
        try:
            token = login(client, _prompt)
        except MacaroondError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            sys.exit(1)

    click.echo(f"export {ACCESS_TOKEN_ENV}={encode_token_set([token])}")


@cli.command(name="passwd")
@_network_option
@_addr_option
def passwd_command(network: str | None, addr: str | None) -> None:
    """Change the daemon password."""
    from macaroond.client import change_password
    from macaroond.errors import MacaroondError

    with _client(network, addr) as client:
        try:
            change_password(client, _prompt)
        except MacaroondError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            sys.exit(1)

    console.print("[green]Password changed[/green]")


# ------------------------------------------------------------------
# root-key
# ------------------------------------------------------------------


@cli.command(name="root-key")
@click.option("--id", "key_id", default=None, help="Look up this key id instead of the current key.")
def root_key_command(key_id: str | None) -> None:
    """Print a root key, using the store named by MACAROON_ACCESS_TOKEN."""
    from macaroond.errors import MacaroondError
    from macaroond.store.selection import root_key_store_from_env

    try:
        store = root_key_store_from_env(timeout=get_settings().request_timeout)
        if key_id is None:
            record = store.root_key()
            key_id, key = record.id, record.key
        else:
            key = store.get(key_id)
    except MacaroondError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    console.print(f"  Key ID:   {key_id}")
    console.print(f"  Root key: {base64.b64encode(key).decode('ascii')}")


# ------------------------------------------------------------------
# new / show / caveat / check
# ------------------------------------------------------------------

_DURATION_PART = re.compile(r"(\d+)(h|m|s)")
_DURATION_UNITS = {"h": "hours", "m": "minutes", "s": "seconds"}


def _parse_duration(text: str) -> datetime.timedelta:
    """Parse ``1h30m``-style durations; a bare number means seconds."""
    if text.isdigit():
        return datetime.timedelta(seconds=int(text))
    parts = _DURATION_PART.findall(text)
    if not parts or "".join(n + u for n, u in parts) != text:
        raise click.BadParameter(f"invalid duration {text!r}", param_hint="--expiry")
    delta = datetime.timedelta()
    for number, unit in parts:
        delta += datetime.timedelta(**{_DURATION_UNITS[unit]: int(number)})
    return delta


def _oven():  # type: ignore[no-untyped-def]
    from macaroond.minting import Oven
    from macaroond.store.selection import root_key_store_from_env

    return Oven(root_key_store_from_env(timeout=get_settings().request_timeout))


@cli.command(name="new")
@click.argument("operations", nargs=-1, required=True)
@click.option("--expiry", default=None, help="Lifetime of the macaroon, e.g. 3600 or 1h.")
def new_command(operations: tuple[str, ...], expiry: str | None) -> None:
    """Mint a macaroon granting OPERATIONS (each in action:entity form)."""
    from macaroond.errors import MacaroondError
    from macaroond.minting import serialize_macaroon
    from macaroond.token import Operation

    lifetime = _parse_duration(expiry) if expiry is not None else None
    try:
        ops = [Operation.parse(text) for text in operations]
        macaroon = _oven().new_macaroon(ops, expiry=lifetime)
    except (MacaroondError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    click.echo(serialize_macaroon(macaroon))


@cli.command(name="show")
@click.argument("macaroons", nargs=-1, required=True)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["inspect", "json", "binary"]),
    default="inspect",
    help="Output format (default: inspect).",
)
def show_command(macaroons: tuple[str, ...], fmt: str) -> None:
    """Print MACAROONS in a readable or serialized form."""
    from macaroond.errors import MacaroondError
    from macaroond.minting import parse_macaroon, serialize_macaroon

    try:
        parsed = [parse_macaroon(text) for text in macaroons]
    except MacaroondError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    for macaroon in parsed:
        click.echo(macaroon.inspect() if fmt == "inspect" else serialize_macaroon(macaroon, fmt))


@cli.command(name="caveat")
@click.argument("macaroon")
@click.argument("condition")
def caveat_command(macaroon: str, condition: str) -> None:
    """Add the first-party CONDITION to MACAROON and print the result."""
    from macaroond.errors import MacaroondError
    from macaroond.minting import parse_macaroon, serialize_macaroon

    try:
        parsed = parse_macaroon(macaroon)
    except MacaroondError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    parsed.add_first_party_caveat(condition)
    click.echo(serialize_macaroon(parsed))


@cli.command(name="check")
@click.argument("args", nargs=-1, required=True)
def check_command(args: tuple[str, ...]) -> None:
    """Check that macaroons authorize operations.

    Leading arguments containing ``:`` are operations; the first one
    without is the macaroon to check and any after it are discharges.
    """
    from macaroond.errors import MacaroondError
    from macaroond.minting import parse_macaroon
    from macaroond.token import Operation

    split = next((i for i, arg in enumerate(args) if ":" not in arg), len(args))
    try:
        ops = [Operation.parse(text) for text in args[:split]]
        if split == len(args):
            raise ValueError("no macaroon given")
        macaroon = parse_macaroon(args[split])
        discharges = [parse_macaroon(text) for text in args[split + 1:]]
        unknown = _oven().check(macaroon, ops, discharges)
    except (MacaroondError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    for condition in unknown:
        click.echo(f"caveat: {condition}")


if __name__ == "__main__":
    cli()
