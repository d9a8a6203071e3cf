"""Translation of user-issued state writes into OctoPrint commands.

How to use the most important parts:
- `CommandDispatcher.on_change`: Subscribe it to the state tree. Every unacknowledged write to a
  control state is dispatched in its own task.
- `CommandDispatcher.handle`: Dispatch one change and wait for the outcome (used by the CLI and
  the tests). Successful commands are written back acknowledged; rejected ones stay unacknowledged.
"""

import asyncio
import collections.abc
import re
import typing

import structlog

from octoprint_bridge import consts, exceptions
from octoprint_bridge.models import StateChange, SyncEngineState
from octoprint_bridge.services import OctoPrintApi
from octoprint_bridge.store import StateTreeAdapter

__all__ = [
    "CONNECTION_COMMANDS",
    "JOB_COMMANDS",
    "PRINTHEAD_COMMANDS",
    "SD_COMMANDS",
    "CommandDispatcher",
]

logger = structlog.get_logger(__name__)

CONNECTION_COMMANDS = ("connect", "disconnect", "fake_ack")
PRINTHEAD_COMMANDS = ("home",)
JOB_COMMANDS = ("start", "pause", "resume", "cancel", "restart")
SD_COMMANDS = ("init", "refresh", "release")

type RefreshHook = collections.abc.Callable[[str], None]
type Handler = collections.abc.Callable[..., collections.abc.Awaitable[bool]]


class CommandDispatcher:
    """Routes control-state writes to the matching API call.

    Handlers return True when the command changes what the next refresh would report, in which
    case an out-of-cycle refresh is requested through ``refresh_hook``.
    """

    def __init__(
        self,
        state: SyncEngineState,
        tree: StateTreeAdapter,
        api: OctoPrintApi,
        refresh_hook: RefreshHook | None = None,
    ):
        """Initialize the dispatcher.

        Args:
            state: Shared engine state (connectivity and the system command registry).
            tree: The state tree, used for acknowledgements and file path lookups.
            api: OctoPrint services.
            refresh_hook: Called with a source label to request an immediate refresh.
        """
        self._state = state
        self._tree = tree
        self._api = api
        self.refresh_hook = refresh_hook
        self._tasks: set[asyncio.Task[bool]] = set()
        self._routes: list[tuple[re.Pattern[str], Handler]] = [
            (re.compile(rf"{consts.TOOLS_NAMESPACE}\.(?P<tool>tool\d+)\.targetTemperature"), self._tool_target),
            (re.compile(rf"{consts.TOOLS_NAMESPACE}\.(?P<tool>tool\d+)\.extrude"), self._tool_extrude),
            (re.compile(rf"{consts.TOOLS_NAMESPACE}\.bed\.targetTemperature"), self._bed_target),
            (re.compile(r"command\.printer"), self._printer_command),
            (re.compile(r"command\.printjob"), self._job_command),
            (re.compile(r"command\.sd"), self._sd_command),
            (re.compile(r"command\.custom"), self._custom_command),
            (re.compile(r"command\.system"), self._system_command),
            (re.compile(r"command\.jog\.(?P<axis>[xyz])"), self._jog),
            (re.compile(rf"{consts.FILES_NAMESPACE}\.(?P<file_id>\w+)\.(?P<action>select|print)"), self._file_action),
        ]

    def on_change(self, change: StateChange) -> None:
        """Change listener: dispatch user writes in the background."""
        if change.ack:
            return
        task = asyncio.get_running_loop().create_task(self.handle(change))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait until every dispatch started by `on_change` has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def handle(self, change: StateChange) -> bool:
        """Dispatch one change.

        Returns:
            True if the command was accepted and acknowledged.
        """
        if change.ack:
            return False

        route = self._match(change.path)
        if route is None:
            return False
        handler, params = route

        if not self._state.api_connected:
            logger.debug("Ignoring command, OctoPrint API not connected", path=change.path, value=change.value)
            return False

        try:
            refresh = await handler(change.value, **params)
        except exceptions.CommandNotAllowed as e:
            logger.error("Command not allowed", path=e.path, value=e.value, allowed=e.allowed)
            return False
        except exceptions.PrinterApiError as e:
            logger.error("Command rejected", path=change.path, status_code=e.status_code, body=e.response_body)
            return False
        except exceptions.PrinterNetworkError as e:
            logger.debug("Command failed", path=change.path, error=str(e))
            return False
        except exceptions.BridgeError as e:
            logger.error("Command failed", path=change.path, error=str(e))
            return False

        await self._tree.write_if_changed(change.path, change.value, ack=True)
        if refresh and self.refresh_hook is not None:
            self.refresh_hook(f"command {change.path}")
        return True

    def _match(self, path: str) -> tuple[Handler, dict[str, str]] | None:
        for pattern, handler in self._routes:
            match = pattern.fullmatch(path)
            if match:
                return handler, match.groupdict()
        return None

    async def _tool_target(self, value: typing.Any, tool: str) -> bool:
        logger.debug("Changing tool target temperature", tool=tool, target=value)
        await self._api.printer.set_tool_target(tool, value)
        return False

    async def _tool_extrude(self, value: typing.Any, tool: str) -> bool:
        logger.debug("Extruding", tool=tool, amount=value)
        await self._api.printer.extrude(value)
        return False

    async def _bed_target(self, value: typing.Any) -> bool:
        logger.debug("Changing bed target temperature", target=value)
        await self._api.printer.set_bed_target(value)
        return False

    async def _printer_command(self, value: typing.Any) -> bool:
        if value in CONNECTION_COMMANDS:
            logger.debug("Sending connection command", command=value)
            await self._api.connection.command(value)
            return True
        if value in PRINTHEAD_COMMANDS:
            logger.debug("Sending printhead command", command=value)
            await self._api.printer.home()
            return False
        raise exceptions.CommandNotAllowed("command.printer", value, CONNECTION_COMMANDS + PRINTHEAD_COMMANDS)

    async def _job_command(self, value: typing.Any) -> bool:
        if value not in JOB_COMMANDS:
            raise exceptions.CommandNotAllowed("command.printjob", value, JOB_COMMANDS)
        logger.debug("Sending job command", command=value)
        await self._api.job.command(value)
        return False

    async def _sd_command(self, value: typing.Any) -> bool:
        if value not in SD_COMMANDS:
            raise exceptions.CommandNotAllowed("command.sd", value, SD_COMMANDS)
        logger.debug("Sending SD card command", command=value)
        await self._api.printer.sd_command(value)
        return False

    async def _custom_command(self, value: typing.Any) -> bool:
        logger.debug("Sending custom command", command=value)
        await self._api.printer.send_gcode(str(value))
        return False

    async def _system_command(self, value: typing.Any) -> bool:
        if value not in self._state.system_commands:
            raise exceptions.CommandNotAllowed("command.system", value, self._state.system_commands)
        logger.debug("Sending system command", command=value)
        await self._api.system.execute(value)
        return False

    async def _jog(self, value: typing.Any, axis: str) -> bool:
        if not isinstance(value, bool) and value == 0:
            raise exceptions.CommandNotAllowed(f"command.jog.{axis}", value, ["any non-zero distance"])
        logger.debug("Sending jog command", axis=axis, distance=value)
        await self._api.printer.jog(axis, value)
        return False

    async def _file_action(self, value: typing.Any, file_id: str, action: str) -> bool:
        path = await self._tree.read_value(f"{consts.FILES_NAMESPACE}.{file_id}.path")
        if not path:
            raise exceptions.BridgeError(f"No stored path for file {file_id}")
        logger.debug("Selecting file", path=path, action=action)
        await self._api.files.select(path, print_after_select=action == "print")
        return True
