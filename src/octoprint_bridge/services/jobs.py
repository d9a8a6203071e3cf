"""Service for the current print job."""

from octoprint_bridge import models
from octoprint_bridge.services.base import BaseService


class JobService(BaseService):
    """Service for ``/api/job``."""

    async def current(self) -> models.JobResponse:
        """Fetch the current job and its progress."""
        return await self._get("job", models.JobResponse)

    async def command(self, command: str) -> None:
        """Issue a job command.

        OctoPrint has no resume verb: ``resume`` is sent as ``pause`` with ``action=resume``,
        and ``pause`` always carries ``action=pause`` so it never toggles.
        """
        body = {"command": command}
        if command == "pause":
            body["action"] = "pause"
        elif command == "resume":
            body = {"command": "pause", "action": "resume"}
        await self._command("job", body)
