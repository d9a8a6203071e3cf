"""Connection and printer phase state owned by the sync engine."""

import typing
from enum import StrEnum

import pydantic


class PrinterPhase(StrEnum):
    """Printer states reported by OctoPrint's connection resource.

    Unknown upstream strings are kept verbatim by `parse_phase`.
    """

    API_NOT_CONNECTED = "API not connected"
    OFFLINE = "Offline"
    OPENING_SERIAL = "Opening serial connection"
    DETECTING = "Detecting serial connection"
    CONNECTING = "Connecting"
    OPERATIONAL = "Operational"
    STARTING = "Starting"
    STARTING_SD_PRINT = "Starting print from SD"
    STARTING_SD_TRANSFER = "Starting to send file to SD"
    PRINTING = "Printing"
    PRINTING_FROM_SD = "Printing from SD"
    SENDING_TO_SD = "Sending file to SD"
    PAUSED = "Paused"
    PAUSING = "Pausing"
    RESUMING = "Resuming"
    CANCELLING = "Cancelling"
    FINISHING = "Finishing"
    TRANSFERRING_TO_SD = "Transferring file to SD"
    ERROR = "Error"
    OFFLINE_AFTER_ERROR = "Offline after error"


_STARTING = {PrinterPhase.STARTING, PrinterPhase.STARTING_SD_PRINT, PrinterPhase.STARTING_SD_TRANSFER}

PRINTING_PHASES: frozenset[PrinterPhase] = frozenset(
    _STARTING
    | {
        PrinterPhase.PRINTING,
        PrinterPhase.PRINTING_FROM_SD,
        PrinterPhase.SENDING_TO_SD,
        PrinterPhase.CANCELLING,
        PrinterPhase.PAUSING,
        PrinterPhase.RESUMING,
        PrinterPhase.FINISHING,
    }
)

OPERATIONAL_PHASES: frozenset[PrinterPhase] = PRINTING_PHASES | {
    PrinterPhase.OPERATIONAL,
    PrinterPhase.PAUSED,
    PrinterPhase.TRANSFERRING_TO_SD,
}


def parse_phase(raw: str) -> PrinterPhase | str:
    """Map an upstream state string to a `PrinterPhase`, passing unknown strings through."""
    try:
        return PrinterPhase(raw)
    except ValueError:
        return raw


def is_operational(phase: PrinterPhase | str) -> bool:
    """True if the printer accepts temperature and job queries in this phase."""
    return phase in OPERATIONAL_PHASES


def is_printing(phase: PrinterPhase | str) -> bool:
    """True while a job is starting, running or winding down."""
    return phase in PRINTING_PHASES


class SyncEngineState(pydantic.BaseModel):
    """Mutable state shared by the connection monitor, scheduler and sync engine.

    Never persisted; a fresh instance starts disconnected.
    """

    model_config = pydantic.ConfigDict(validate_assignment=True)

    api_connected: bool = False
    printer_phase: PrinterPhase | str = PrinterPhase.API_NOT_CONNECTED
    last_error_kind: str | None = None

    server_version: str | None = None
    api_version: str | None = None
    version_warning_shown: bool = False

    system_commands: list[str] = pydantic.Field(default_factory=list)

    @property
    def operational(self) -> bool:
        """Phase is operational-classified."""
        return is_operational(self.printer_phase)

    @property
    def printing(self) -> bool:
        """Phase is printing-classified."""
        return is_printing(self.printer_phase)

    def snapshot(self) -> dict[str, typing.Any]:
        """The values mirrored into the status states."""
        return {
            "info.connection": self.api_connected,
            "printer_status": str(self.printer_phase),
            "operational": self.operational,
            "printing": self.printing,
        }
