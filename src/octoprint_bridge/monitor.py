"""Connectivity and printer phase tracking."""

import structlog

from octoprint_bridge import exceptions
from octoprint_bridge.models import PrinterPhase, SyncEngineState, VersionInfo, parse_phase
from octoprint_bridge.store import StateTreeAdapter

logger = structlog.get_logger(__name__)

type ProbeResult = VersionInfo | exceptions.BridgeError


def error_kind(error: exceptions.BridgeError) -> str:
    """Short classification of a failed probe, kept in `SyncEngineState.last_error_kind`."""
    if isinstance(error, exceptions.PrinterNetworkError):
        return error.error_code
    if isinstance(error, exceptions.PrinterApiError):
        return f"HTTP {error.status_code}"
    return type(error).__name__


class ConnectionMonitor:
    """Tracks whether OctoPrint answers and which phase the printer is in.

    The four status states (``info.connection``, ``printer_status``, ``operational``, ``printing``)
    are recomputed together after every observation and written set-if-changed, so repeated
    identical probes cause no writes.
    """

    def __init__(self, state: SyncEngineState, tree: StateTreeAdapter):
        """Initialize the monitor."""
        self._state = state
        self._tree = tree

    @property
    def state(self) -> SyncEngineState:
        """The shared engine state."""
        return self._state

    async def observe(self, result: ProbeResult) -> None:
        """Record the outcome of a version probe."""
        if isinstance(result, exceptions.BridgeError):
            await self.mark_disconnected(result)
            return

        if not self._state.api_connected:
            logger.info("Connected to OctoPrint API", server=result.server, api=result.api)
        self._state.api_connected = True
        self._state.last_error_kind = None
        self._state.server_version = result.server
        self._state.api_version = result.api
        await self.publish()

    async def observe_phase(self, raw_phase: str) -> None:
        """Record the printer phase reported by the connection resource."""
        phase = parse_phase(raw_phase)
        if phase != self._state.printer_phase:
            logger.debug("Printer phase changed", previous=str(self._state.printer_phase), current=str(phase))
        self._state.printer_phase = phase
        logger.debug(
            "Printer status",
            printer_status=str(phase),
            operational=self._state.operational,
            printing=self._state.printing,
        )
        await self.publish()

    async def mark_disconnected(self, error: exceptions.BridgeError | None = None) -> None:
        """Mark the API offline and reset the phase."""
        if self._state.api_connected:
            logger.debug("API is offline", error=str(error) if error else None)
        self._state.api_connected = False
        self._state.printer_phase = PrinterPhase.API_NOT_CONNECTED
        self._state.last_error_kind = error_kind(error) if error else None
        await self.publish()

    async def publish(self) -> None:
        """Write the status states (no-op for unchanged values)."""
        for path, value in self._state.snapshot().items():
            await self._tree.write_if_changed(path, value, ack=True)
