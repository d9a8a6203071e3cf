"""Adaptive polling.

How to use the most important parts:
- `next_interval`: Pure mapping from connectivity and printer phase to the delay before the next
  refresh cycle.
- `PollingScheduler`: Keeps exactly one refresh timer outstanding on the running event loop.
  Every trigger (timer, command, retry) cancels the pending timer, starts a cycle and re-arms.
  At most one cycle runs at a time; triggers arriving meanwhile are folded into one follow-up cycle.
"""

import asyncio
import collections.abc
import typing
from enum import StrEnum

import pydantic
import structlog

from octoprint_bridge import consts
from octoprint_bridge.models import PrinterPhase, SyncEngineState, is_operational, is_printing

if typing.TYPE_CHECKING:
    from octoprint_bridge.config import Settings
    from octoprint_bridge.monitor import ConnectionMonitor

logger = structlog.get_logger(__name__)

type RefreshCycle = collections.abc.Callable[[str], collections.abc.Awaitable[None]]


class SchedulerStatus(StrEnum):
    """Lifecycle of the scheduler."""

    IDLE = "idle"
    ARMED = "armed"
    FIRING = "firing"
    STOPPED = "stopped"


class PollIntervals(pydantic.BaseModel):
    """Configured poll intervals in seconds."""

    default: int = consts.DEFAULT_REFRESH_INTERVAL
    operational: int = consts.DEFAULT_REFRESH_INTERVAL_OPERATIONAL
    printing: int = consts.DEFAULT_REFRESH_INTERVAL_PRINTING
    not_connected: int = consts.NOT_CONNECTED_INTERVAL

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PollIntervals":
        """Intervals configured in ``settings``."""
        return cls(
            default=settings.refresh_interval,
            operational=settings.refresh_interval_operational,
            printing=settings.refresh_interval_printing,
        )


def select_interval(connected: bool, phase: PrinterPhase | str, intervals: PollIntervals) -> tuple[int, str]:
    """Return the delay until the next cycle and the rule that chose it (first match wins)."""
    if not connected:
        return intervals.not_connected, "API not connected"
    if is_printing(phase):
        return intervals.printing, "printing"
    if is_operational(phase):
        return intervals.operational, "operational"
    return intervals.default, "default"


def next_interval(connected: bool, phase: PrinterPhase | str, intervals: PollIntervals) -> int:
    """Delay in seconds until the next refresh cycle.

    Usage Example:
    ```python
        >>> next_interval(False, PrinterPhase.PRINTING, PollIntervals())
        10
        >>> next_interval(True, PrinterPhase.OPERATIONAL, PollIntervals())
        30
    ```
    """
    return select_interval(connected, phase, intervals)[0]


class PollingScheduler:
    """Single-timer scheduler driving refresh cycles.

    Cycles run as a task, so a slow cycle never delays the next timer. A trigger that arrives while
    a cycle is running is queued; any number of queued triggers run as one cycle afterwards.
    """

    def __init__(
        self,
        state: SyncEngineState,
        intervals: PollIntervals,
        cycle: RefreshCycle,
        monitor: "ConnectionMonitor",
    ):
        """Initialize the scheduler.

        Args:
            state: Shared engine state, read when choosing the next interval.
            intervals: Configured poll intervals.
            cycle: Coroutine function running one refresh cycle; receives the trigger source.
            monitor: Used to mark the API disconnected on shutdown.
        """
        self._state = state
        self._intervals = intervals
        self._cycle = cycle
        self._monitor = monitor
        self._timer: asyncio.TimerHandle | None = None
        self._retry: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._pending: str | None = None
        self._stopped = False

    @property
    def status(self) -> SchedulerStatus:
        """Current lifecycle state."""
        if self._stopped:
            return SchedulerStatus.STOPPED
        if self._running:
            return SchedulerStatus.FIRING
        if self._timer is not None:
            return SchedulerStatus.ARMED
        return SchedulerStatus.IDLE

    @property
    def pending_delay(self) -> float | None:
        """Seconds until the armed timer fires, if one is armed."""
        if self._timer is None:
            return None
        return max(self._timer.when() - asyncio.get_running_loop().time(), 0)

    def start(self) -> None:
        """Run a first cycle immediately and arm the recurring timer."""
        if self._timer is None and not self._tasks:
            self.trigger("start")

    def trigger(self, source: str) -> None:
        """Start a refresh cycle now and re-arm the timer."""
        if self._stopped:
            logger.debug("Ignoring refresh trigger after shutdown", source=source)
            return

        logger.debug("Refresh requested", source=source)
        if self._timer is not None:
            logger.debug("Refresh timer cleared", source=source)
            self._timer.cancel()
            self._timer = None

        if self._running:
            logger.debug("Refresh already running, queued", source=source)
            self._pending = source
        else:
            task = asyncio.get_running_loop().create_task(self._run(source))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        # Start a new timer in any case
        delay, reason = select_interval(self._state.api_connected, self._state.printer_phase, self._intervals)
        self._timer = asyncio.get_running_loop().call_later(delay, self._fire, reason)
        logger.debug("Refresh timer armed", reason=reason, seconds=delay)

    def schedule_retry(self, delay: float = consts.DETECTING_RETRY_DELAY) -> None:
        """Schedule one extra, early cycle (used while the serial connection is being detected).

        Ignored unless the scheduler is running.
        """
        if self._stopped or (self._timer is None and not self._tasks):
            return
        if self._retry is not None:
            self._retry.cancel()
        self._retry = asyncio.get_running_loop().call_later(delay, self._fire_retry)

    async def stop(self) -> None:
        """Cancel timers and running cycles, then mark the API disconnected.

        Safe to call more than once; never raises.
        """
        if self._stopped:
            return
        self._stopped = True

        for handle in (self._timer, self._retry):
            if handle is not None:
                handle.cancel()
        self._timer = None
        self._retry = None
        self._pending = None

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

        try:
            await self._monitor.mark_disconnected()
        except Exception as e:
            logger.warning("Failed to mark API disconnected during shutdown", error=str(e))
        logger.debug("Scheduler stopped")

    def _fire(self, reason: str) -> None:
        self._timer = None
        self.trigger(f"timeout ({reason})")

    def _fire_retry(self) -> None:
        self._retry = None
        self.trigger("detecting serial connection")

    @property
    def _running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def _run(self, source: str) -> None:
        while True:
            try:
                await self._cycle(source)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Refresh cycle failed", source=source)

            if self._pending is None or self._stopped:
                return
            source, self._pending = self._pending, None
