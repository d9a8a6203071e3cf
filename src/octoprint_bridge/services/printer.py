"""Service for printer operations (heaters, print head, SD card, raw G-code)."""

import typing

from octoprint_bridge import models
from octoprint_bridge.services.base import BaseService


class PrinterService(BaseService):
    """Service for the ``printer`` resource and its sub-resources."""

    async def details(self) -> models.PrinterDetails:
        """Fetch printer state including temperatures (``GET /api/printer``)."""
        return await self._get("printer", models.PrinterDetails)

    async def set_tool_target(self, tool: str, target: float) -> None:
        """Set the target temperature of one tool (e.g. ``tool0``)."""
        await self._command("printer/tool", {"command": "target", "targets": {tool: target}})

    async def extrude(self, amount: float) -> None:
        """Extrude (or retract, if negative) ``amount`` millimetres with the active tool."""
        await self._command("printer/tool", {"command": "extrude", "amount": amount})

    async def set_bed_target(self, target: float) -> None:
        """Set the target temperature of the heated bed."""
        await self._command("printer/bed", {"command": "target", "target": target})

    async def home(self, axes: typing.Sequence[str] = ("x", "y", "z")) -> None:
        """Home the given axes."""
        await self._command("printer/printhead", {"command": "home", "axes": list(axes)})

    async def jog(self, axis: str, distance: float) -> None:
        """Move the print head ``distance`` millimetres along ``axis``."""
        await self._command("printer/printhead", {"command": "jog", axis: distance})

    async def sd_command(self, command: str) -> None:
        """Issue an SD card command (``init``, ``refresh``, ``release``)."""
        await self._command("printer/sd", {"command": command})

    async def send_gcode(self, command: str) -> None:
        """Send an arbitrary command to the printer."""
        await self._command("printer/command", {"command": command})
