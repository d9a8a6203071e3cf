"""Bridge between an OctoPrint server and a state tree.

How to use the most important parts:
- `OctoPrintBridge.start`: Validates the settings, prepares the tree, subscribes to user writes and
  starts adaptive polling on the running event loop.
- `OctoPrintBridge.stop`: Cancels polling and marks the API disconnected. Never raises.
- `OctoPrintBridge.refresh_once`: One full refresh cycle, without the scheduler.

Usage Example:
```python
    >>> bridge = OctoPrintBridge(Settings(host="octopi.local", api_key="ABC"), MemoryStateTree())
    >>> await bridge.start()
    >>> ...
    >>> await bridge.stop()
```
"""

import structlog

from octoprint_bridge import consts, nodes
from octoprint_bridge.commands import CommandDispatcher
from octoprint_bridge.config import Settings
from octoprint_bridge.engine import StateSyncEngine
from octoprint_bridge.executor import OctoPrintExecutor, RequestExecutor
from octoprint_bridge.models import SyncEngineState
from octoprint_bridge.monitor import ConnectionMonitor
from octoprint_bridge.scheduler import PollIntervals, PollingScheduler
from octoprint_bridge.services import OctoPrintApi
from octoprint_bridge.store import StateTreeAdapter

__all__ = ["OctoPrintBridge"]

logger = structlog.get_logger(__name__)


class OctoPrintBridge:
    """Wires the executor, services, monitor, engine, scheduler and dispatcher together."""

    def __init__(self, settings: Settings, tree: StateTreeAdapter, executor: RequestExecutor | None = None):
        """Initialize the bridge.

        Args:
            settings: Bridge settings.
            tree: The state tree to mirror into.
            executor: Request executor; built from ``settings`` if omitted.
        """
        self.settings = settings
        self.tree = tree
        self.executor = executor if executor is not None else OctoPrintExecutor.from_settings(settings)
        self.state = SyncEngineState()
        self.api = OctoPrintApi(self.executor)
        self.monitor = ConnectionMonitor(self.state, tree)
        self.engine = StateSyncEngine(self.state, tree, self.api, self.monitor, settings)
        self.scheduler = PollingScheduler(
            self.state, PollIntervals.from_settings(settings), self._scheduled_refresh, self.monitor
        )
        self.dispatcher = CommandDispatcher(self.state, tree, self.api, refresh_hook=self.scheduler.trigger)
        self.engine.retry_hook = self.scheduler.schedule_retry
        self._listening = False

    async def start(self) -> bool:
        """Prepare the tree and start polling.

        Returns:
            False if required settings are missing; the bridge then stays idle.
        """
        await self.monitor.mark_disconnected()

        missing = self.settings.missing_required()
        if missing:
            logger.warning("Required settings missing, not polling", missing=missing)
            return False

        await self.prepare_tree()
        self.listen()
        self.scheduler.start()
        logger.info("Bridge started", url=self.settings.base_url)
        return True

    async def prepare_tree(self) -> None:
        """Write the printer name, remove nodes of earlier releases and create the static nodes."""
        await nodes.ensure_and_set(self.tree, "name", nodes.NAME, self.settings.custom_name or "")
        for path in consts.LEGACY_STATES + consts.LEGACY_SUBTREES:
            await self.tree.delete_subtree(path)
        await nodes.ensure_skeleton(self.tree, self.settings.date_format)

    def listen(self) -> None:
        """Subscribe the command dispatcher to tree changes (once)."""
        if not self._listening:
            self.tree.subscribe(self.dispatcher.on_change)
            self._listening = True

    async def refresh_once(self, include_file_listing: bool | None = None) -> None:
        """Run a single refresh cycle now."""
        await self.engine.refresh("manual", include_file_listing=include_file_listing)

    async def stop(self) -> None:
        """Stop polling and mark the API disconnected; safe to call repeatedly."""
        await self.scheduler.stop()
        await self.dispatcher.wait_idle()
        close = getattr(self.executor, "close", None)
        if close is not None:
            close()

    async def _scheduled_refresh(self, source: str) -> None:
        await self.engine.refresh(source)
