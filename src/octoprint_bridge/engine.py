"""One refresh cycle: probe OctoPrint and mirror what it reports into the state tree.

How to use the most important parts:
- `StateSyncEngine.refresh`: Runs the version probe, the connection-status probe and then, depending
  on the printer phase, the printer/system-command, job, plugin and file queries. Failures of a
  single query are logged and only skip that query's updates.
"""

import asyncio
import collections.abc
import re
import time

import pydantic
import structlog

from octoprint_bridge import consts, exceptions, nodes
from octoprint_bridge.config import Settings
from octoprint_bridge.files import FileTreeReconciler
from octoprint_bridge.formatting import is_newer_version
from octoprint_bridge.models import PrinterPhase, PrintJob, SyncEngineState, VersionInfo
from octoprint_bridge.models import tree as spec
from octoprint_bridge.monitor import ConnectionMonitor
from octoprint_bridge.plugins import display_layer_progress, slicer_thumbnails
from octoprint_bridge.services import OctoPrintApi
from octoprint_bridge.store import StateTreeAdapter

__all__ = ["JOB_THUMBNAIL_PATH", "StateSyncEngine"]

logger = structlog.get_logger(__name__)

_TOOL_KEY = re.compile(r"tool\d+")

JOB_THUMBNAIL_PATH = "printjob.file.thumbnail_url"


class StateSyncEngine:
    """Maps upstream resources onto tree nodes, one refresh cycle at a time."""

    def __init__(
        self,
        state: SyncEngineState,
        tree: StateTreeAdapter,
        api: OctoPrintApi,
        monitor: ConnectionMonitor,
        settings: Settings,
        clock: collections.abc.Callable[[], float] = time.time,
        retry_hook: collections.abc.Callable[[], None] | None = None,
    ):
        """Initialize the engine.

        Args:
            state: Shared engine state.
            tree: The state tree.
            api: OctoPrint services.
            monitor: Receives probe outcomes and phase updates.
            settings: Bridge settings (plugin flags, date format, thumbnail directory).
            clock: Returns the current epoch time in seconds.
            retry_hook: Called when the printer is still detecting its serial connection.
        """
        self._state = state
        self._tree = tree
        self._api = api
        self._monitor = monitor
        self._settings = settings
        self._clock = clock
        self.retry_hook = retry_hook
        self._job_fields = nodes.printjob_fields(settings.date_format)
        self._reconciler = FileTreeReconciler(tree, settings.base_url, thumbnails=settings.plugin_slicer_thumbnails)

    async def refresh(self, source: str = "manual", include_file_listing: bool | None = None) -> None:
        """Run one refresh cycle.

        Args:
            source: What triggered the cycle (logged only).
            include_file_listing: Reconcile the file list. Defaults to "not printing", the file list
                rarely changes mid-print.
        """
        logger.debug("Refresh cycle started", source=source)

        version = await self._probe_version()
        if version is None:
            return
        await self._monitor.observe(version)
        await self._publish_version(version)

        if not await self._probe_connection():
            return

        if include_file_listing is None:
            include_file_listing = not self._state.printing

        steps: list[tuple[str, collections.abc.Awaitable[None]]] = []
        if self._state.operational:
            steps.append(("printer", self._refresh_printer()))
        else:
            steps.append(("system/commands", self._refresh_system_commands()))
        steps.append(("plugin/DisplayLayerProgress", self._refresh_layer_progress()))
        steps.append(("job", self._refresh_job()))
        if include_file_listing:
            steps.append(("files", self._refresh_files()))

        await asyncio.gather(*(self._guarded(name, step) for name, step in steps))
        logger.debug("Refresh cycle finished", source=source)

    async def _probe_version(self) -> VersionInfo | None:
        try:
            return await self._api.connection.version()
        except exceptions.BridgeError as e:
            await self._monitor.observe(e)
        except pydantic.ValidationError as e:
            logger.warning("Invalid version response", error=str(e))
            await self._monitor.observe(exceptions.BridgeError(f"Invalid version response: {e}"))
        return None

    async def _publish_version(self, version: VersionInfo) -> None:
        await self._tree.write_if_changed("meta.version", version.server)
        await self._tree.write_if_changed("meta.api_version", version.api)

        if not self._state.version_warning_shown and is_newer_version(version.server, consts.SUPPORTED_VERSION):
            logger.warning(
                "OctoPrint version is older than the supported minimum",
                version=version.server,
                supported=consts.SUPPORTED_VERSION,
            )
            self._state.version_warning_shown = True

    async def _probe_connection(self) -> bool:
        """Update the printer phase; False ends the cycle.

        Any failure of this probe marks the API disconnected, so the status states never keep a
        phase from an earlier cycle.
        """
        try:
            connection = await self._api.connection.status()
        except exceptions.PrinterApiError as e:
            logger.error("Query rejected", query="connection", status_code=e.status_code, body=e.response_body)
            await self._monitor.observe(e)
            return False
        except exceptions.BridgeError as e:
            await self._monitor.observe(e)
            return False
        except pydantic.ValidationError as e:
            logger.warning("Invalid connection response", error=str(e))
            await self._monitor.observe(exceptions.BridgeError(f"Invalid connection response: {e}"))
            return False

        await self._monitor.observe_phase(connection.current.state)
        if self._state.printer_phase == PrinterPhase.DETECTING and self.retry_hook is not None:
            logger.debug("Printer is detecting its serial connection, retrying soon")
            self.retry_hook()
        return True

    async def _guarded(self, name: str, step: collections.abc.Awaitable[None]) -> None:
        try:
            await step
        except exceptions.PrinterApiError as e:
            logger.error("Query rejected", query=name, status_code=e.status_code, body=e.response_body)
        except exceptions.BridgeError as e:
            logger.debug("Query failed", query=name, error=str(e))
        except pydantic.ValidationError as e:
            logger.warning("Unexpected query response", query=name, error=str(e))

    async def _refresh_printer(self) -> None:
        details = await self._api.printer.details()
        for key, reading in details.heaters().items():
            prefix = f"{consts.TOOLS_NAMESPACE}.{key}"
            await self._tree.ensure_node(prefix, spec.channel(key))
            await nodes.apply_fields(self._tree, prefix, nodes.TOOL_FIELDS, reading)
            if _TOOL_KEY.fullmatch(key):
                await self._tree.ensure_node(f"{prefix}.{nodes.EXTRUDE_FIELD.suffix}", nodes.EXTRUDE_FIELD.spec)

    async def _refresh_system_commands(self) -> None:
        commands = await self._api.system.list_commands()
        self._state.system_commands = [command.key for command in commands]
        logger.debug("Registered system commands", commands=self._state.system_commands)

    async def _refresh_layer_progress(self) -> None:
        if not self._settings.plugin_display_layer_progress:
            await display_layer_progress.remove(self._tree)
            return
        await display_layer_progress.refresh(self._tree, self._api)

    async def _refresh_job(self) -> None:
        if not self._state.operational:
            await self._write_job(PrintJob(), None)
            return

        response = await self._api.job.current()
        if response.error:
            logger.warning("Print job error", error=response.error)

        job_path = None
        if response.job is not None and response.job.file.name is not None:
            job_path = response.job.file.full_path
        await self._write_job(PrintJob.from_response(response, self._clock()), job_path)

    async def _write_job(self, job: PrintJob, job_path: str | None) -> None:
        await nodes.apply_fields(self._tree, "printjob", self._job_fields, job)

        if not self._settings.plugin_slicer_thumbnails:
            await self._tree.delete_subtree(JOB_THUMBNAIL_PATH)
            return

        url = await slicer_thumbnails.find_job_thumbnail(self._tree, job_path) if job_path else None
        await nodes.ensure_and_set(self._tree, JOB_THUMBNAIL_PATH, nodes.PRINTJOB_THUMBNAIL_URL, url)

    async def _refresh_files(self) -> None:
        listing = await self._api.files.list_recursive()
        await self._reconciler.reconcile(listing)
        if self._settings.plugin_slicer_thumbnails:
            await slicer_thumbnails.download_thumbnails(self._tree, self._api.executor, self._settings.thumbnail_dir)
