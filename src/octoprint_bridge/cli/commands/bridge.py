"""Commands running the bridge against an in-memory state tree."""

import asyncio
import sys
import typing

import cyclopts

from octoprint_bridge import MemoryStateTree, OctoPrintBridge, Settings
from octoprint_bridge.cli import common
from octoprint_bridge.models import StateChange


def _print_change(change: StateChange) -> None:
    if change.ack:
        common.output_message(f"[cyan]{change.path}[/cyan] = [green]{common.format_value(change.value)}[/green]")


async def _run(settings: Settings, tree: MemoryStateTree) -> bool:
    bridge = OctoPrintBridge(settings, tree)
    if not await bridge.start():
        return False
    try:
        await asyncio.Event().wait()
    finally:
        await bridge.stop()
    return True


def run_command(
    watch: typing.Annotated[
        bool, cyclopts.Parameter(name=["--watch", "-w"], help="Print acknowledged state changes")
    ] = False,
):
    """Poll OctoPrint until interrupted."""
    common.logger.debug("Command started", command="run", watch=watch)
    settings = common.get_settings()
    tree = MemoryStateTree()
    if watch:
        tree.subscribe(_print_change)

    common.output_message(f"Polling [bold]{settings.base_url}[/bold], press Ctrl+C to stop.")
    try:
        started = asyncio.run(_run(settings, tree))
    except KeyboardInterrupt:
        common.output_message("Stopped.")
        return
    if not started:
        sys.exit(1)


async def _snapshot(settings: Settings, tree: MemoryStateTree) -> tuple[bool, list[list[str]]]:
    bridge = OctoPrintBridge(settings, tree)
    try:
        await bridge.prepare_tree()
        await bridge.refresh_once(include_file_listing=True)
        rows = [
            [path, common.format_value(state.val), "yes" if state.ack else "no"]
            for path, state in tree.snapshot().items()
        ]
        return bridge.state.api_connected, rows
    finally:
        await bridge.stop()


def snapshot_command(
    prefix: typing.Annotated[
        str | None, cyclopts.Parameter(name=["--prefix", "-p"], help="Only show states below this path")
    ] = None,
):
    """Run one refresh cycle and print the mirrored states."""
    common.logger.debug("Command started", command="snapshot", prefix=prefix)
    settings = common.get_settings()
    connected, rows = asyncio.run(_snapshot(settings, MemoryStateTree()))

    if prefix:
        rows = [row for row in rows if row[0] == prefix or row[0].startswith(f"{prefix}.")]
    common.output_table("OctoPrint state", ["Path", "Value", "Ack"], rows, column_styles=["cyan", "green", "dim"])

    if not connected:
        common.output_message("OctoPrint is not reachable.", error=True)
        sys.exit(1)


async def _send(settings: Settings, tree: MemoryStateTree, path: str, value: typing.Any) -> bool:
    bridge = OctoPrintBridge(settings, tree)
    try:
        await bridge.prepare_tree()
        bridge.listen()
        await bridge.refresh_once(include_file_listing=path.startswith("files."))
        tree.set_state(path, value)
        await bridge.dispatcher.wait_idle()
        state = tree.get_state(path)
        return state is not None and state.ack
    finally:
        await bridge.stop()


def send_command(
    path: typing.Annotated[str, cyclopts.Parameter(help="State path, e.g. command.printjob")],
    value: typing.Annotated[str, cyclopts.Parameter(help="Value to write (JSON numbers/booleans are parsed)")],
):
    """Write a control state as a user would and report whether OctoPrint accepted it."""
    common.logger.debug("Command started", command="send", path=path, value=value)
    settings = common.get_settings()
    parsed = common.parse_value(value)

    if asyncio.run(_send(settings, MemoryStateTree(), path, parsed)):
        common.output_message(f"[green]Acknowledged[/green]: {path} = {common.format_value(parsed)}")
    else:
        common.output_message(f"[red]Not acknowledged[/red]: {path} = {common.format_value(parsed)}", error=True)
        sys.exit(1)
