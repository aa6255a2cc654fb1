"""python-hilink cli tool."""

from __future__ import annotations

import logging
import sys
from functools import wraps
from typing import Any, NoReturn

import asyncclick as click

from hilink.credentials import DEFAULT_USERNAME, Credentials
from hilink.deviceconfig import DeviceConfig
from hilink.exceptions import HilinkException
from hilink.json import dumps as json_dumps
from hilink.session import Session
from hilink.sessionmanager import SessionManager

pass_manager = click.make_pass_decorator(SessionManager)


def _json_output() -> bool:
    ctx = click.get_current_context().find_root()
    return bool(ctx.params.get("json"))


def echo(*args, **kwargs) -> None:
    """Print a message, unless json output was requested."""
    if not _json_output():
        click.echo(*args, **kwargs)


def error(msg: str) -> NoReturn:
    """Print an error and exit."""
    click.echo(click.style(msg, fg="red", bold=True))
    sys.exit(1)


def catch_library_errors(func):
    """Turn library exceptions into an error message and exit code 1."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except HilinkException as ex:
            error(f"{ex.__class__.__name__}: {ex}")

    return wrapper


def _session_to_dict(session: Session) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "token": session.token,
        "is_authenticated": session.is_authenticated,
        "expires_at": session.expires_at.isoformat() if session.expires_at else None,
    }


@click.group()
@click.option(
    "--host",
    envvar="HILINK_HOST",
    required=True,
    help="The host name or IP address of the device to connect to.",
)
@click.option(
    "--port",
    envvar="HILINK_PORT",
    required=False,
    type=int,
    help="The port of the device web interface.",
)
@click.option(
    "--https/--no-https",
    envvar="HILINK_HTTPS",
    default=False,
    is_flag=True,
    type=bool,
    help="Set flag if the device web interface uses https.",
)
@click.option(
    "--timeout",
    envvar="HILINK_TIMEOUT",
    default=DeviceConfig.DEFAULT_TIMEOUT,
    required=False,
    show_default=True,
    type=int,
    help="Timeout for each request to the device.",
)
@click.option(
    "--username",
    default=DEFAULT_USERNAME,
    required=False,
    show_default=True,
    envvar="HILINK_USERNAME",
    help="Username to authenticate to the device.",
)
@click.option(
    "--password",
    default=None,
    required=False,
    envvar="HILINK_PASSWORD",
    help="Password to use to authenticate to the device.",
)
@click.option(
    "-d",
    "--debug",
    envvar="HILINK_DEBUG",
    default=False,
    is_flag=True,
    help="Print debug output",
)
@click.option(
    "--json/--no-json",
    envvar="HILINK_JSON",
    default=False,
    is_flag=True,
    help="Output the session as JSON.",
)
@click.version_option(package_name="python-hilink")
@click.pass_context
async def cli(ctx, host, port, https, timeout, username, password, debug, json):
    """A tool for logging in to HiLink cellular routers and modems."""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)

    if password is None:
        raise click.BadOptionUsage(
            "password", "Logging in requires --password or HILINK_PASSWORD"
        )

    config = DeviceConfig(
        host=host,
        port_override=port,
        https=https,
        timeout=timeout,
        credentials=Credentials(username=username, password=password),
    )
    ctx.obj = await ctx.with_async_resource(SessionManager(config))


@cli.command()
@pass_manager
@catch_library_errors
async def login(manager: SessionManager):
    """Log in and print the session."""
    session = await manager.login()
    if _json_output():
        click.echo(json_dumps(_session_to_dict(session), indent=True))
        return session

    echo(f"Logged in to {manager.config.host}")
    echo(f"\tSession: {session.session_id}")
    echo(f"\tToken: {session.token}")
    if session.expires_at:
        echo(f"\tExpires: {session.expires_at.isoformat()}")
    return session


@cli.command()
@pass_manager
@catch_library_errors
async def logout(manager: SessionManager):
    """Log in, then end the session on the device."""
    await manager.login()
    await manager.logout()
    echo(f"Logged out of {manager.config.host}")


if __name__ == "__main__":
    cli()
