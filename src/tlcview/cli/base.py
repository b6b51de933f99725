import asyncio

import click

from tlcview.server.bg_killer import kill_tlcview_servers, list_running_servers
from tlcview.server.server import start_server
from tlcview.util import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
)


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


@click.group()
@tree_option
def cli():
    """tlcview - TLC video and DAQ alignment front end.

    - GUI for configuring a case and synchronising video frames with DAQ rows

    - Reference engine for running without the computation engine

    - Tools for managing background engines
    """
    pass


@cli.command()
@click.option(
    "--host-address",
    "-ha",
    default=DEFAULT_HOST_ADDR,
    help="Network address to bind the engine to (default: localhost)",
)
@click.option(
    "--msg-port",
    "-mp",
    default=DEFAULT_PORT,
    type=int,
    help=f"Port for command/response messages (default: {DEFAULT_PORT})",
)
@click.option(
    "--log-to-file/--no-log-to-file",
    "-ltf/",
    default=True,
    help="Enable/disable logging to file (default: enabled)",
)
@click.option(
    "--log-to-stdout/--no-log-to-stdout",
    "-lts/",
    default=True,
    help="Enable/disable console logging (default: enabled)",
)
@click.option(
    "--log-path",
    "-lp",
    default="",
    help="Custom path for log file (default: ~/.tlcview/engine.log)",
)
@click.option(
    "--clear-prev-log/--no-clear-prev-log",
    "-c/",
    default=True,
    help="Clear previous log file on startup (default: enabled)",
)
@click.option(
    "--log-level",
    "-ll",
    default=DEFAULT_LOGLEVEL,
    help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR) (default: INFO)",
)
@click.option(
    "--default-config",
    "-dc",
    "default_config_path",
    default=DEFAULT_CONFIG_PATH,
    help="Config loaded by 'reset' and overwritten by 'save'",
)
def engine(**kwargs):
    """Start the reference engine.

    Serves the engine command protocol with the engine's configuration rules,
    a synthetic video source and a real DAQ file reader.
    """
    kwargs["host"] = kwargs.pop("host_address")
    asyncio.run(start_server(**kwargs))


@cli.command()
@click.option(
    "--host-address",
    "-ha",
    default=DEFAULT_HOST_ADDR,
    help="Engine address to connect to (default: localhost)",
)
@click.option(
    "--msg-port",
    "-mp",
    default=DEFAULT_PORT,
    type=int,
    help=f"Engine message port to connect to (default: {DEFAULT_PORT})",
)
@click.option(
    "--start-engine/--no-start-engine",
    "-s/",
    default=False,
    help="Start a local reference engine and stop it on exit (default: disabled)",
)
@click.option(
    "--log-to-file/--no-log-to-file",
    "-ltf/",
    default=True,
    help="Enable/disable logging to file (default: enabled)",
)
@click.option(
    "--log-to-stdout/--no-log-to-stdout",
    "-lts/",
    default=True,
    help="Enable/disable console logging (default: enabled)",
)
@click.option(
    "--log-path", "-lp", help="Custom path for log file (default: ~/.tlcview/client.log)"
)
@click.option(
    "--clear-prev-log/--no-clear-prev-log",
    "-c/",
    default=True,
    help="Clear previous log file on startup (default: enabled)",
)
@click.option(
    "--log-level",
    "-ll",
    default=DEFAULT_LOGLEVEL,
    help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR) (default: INFO)",
)
def gui(**kwargs):
    """Start the tlcview GUI.

    Connects to a running engine, or starts a local reference engine with
    --start-engine.
    """
    from tlcview.gui.main_gui import main_gui

    kwargs["host"] = kwargs.pop("host_address")
    main_gui(**kwargs)


@cli.command()
@click.option("--host-address", "-ha", default=DEFAULT_HOST_ADDR)
@click.option("--msg-port", "-mp", default=DEFAULT_PORT, type=int)
@click.option("--timeout", "-t", default=DEFAULT_TIMEOUT, type=float)
def ping(host_address: str, msg_port: int, timeout: float):
    """Check that an engine answers, and print its version."""
    from tlcview.server import ConnectionManager
    from tlcview.types import CommsError

    async def _ping():
        manager = ConnectionManager()
        await manager.connect(host_address, msg_port, timeout)
        try:
            return manager.engine_version
        finally:
            manager.disconnect()

    try:
        version = asyncio.run(_ping())
    except CommsError as e:
        raise click.ClickException(e.message)
    click.echo(f"Engine at {host_address}:{msg_port} answers, version {version}")


@cli.command()
def list():
    """List all background tlcview engines.

    Displays the PID, running status, start time and address of each.
    """
    servers = list_running_servers()

    click.echo("\nRunning tlcview engines:")
    click.echo("------------------------")

    if not servers:
        click.echo("No engines found")
        click.echo("")
        return

    for server in servers:
        status = "(RUNNING)" if server.get("running", False) else "(NOT RUNNING)"
        click.echo(f"\nPID: {server['pid']} {status}")
        click.echo(f"Started: {server['timestamp']}")
        click.echo(f"Host: {server['host']}")
        click.echo(f"Port: {server['ports']['msg']}")
    click.echo("")


@cli.command()
def kill():
    """Kill all background tlcview engines.

    Useful for cleaning up orphaned processes or resolving port conflicts.
    """
    killed = kill_tlcview_servers()
    if killed:
        click.echo(f"Killed {killed} tlcview engine(s)")
    else:
        click.echo("No running tlcview engines found")
    click.echo("")
