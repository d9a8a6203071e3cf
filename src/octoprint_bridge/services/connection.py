"""Service for the version and connection resources."""

from octoprint_bridge import models
from octoprint_bridge.services.base import BaseService


class ConnectionService(BaseService):
    """Reachability probes and serial connection control."""

    async def version(self) -> models.VersionInfo:
        """Fetch server and API version (``GET /api/version``)."""
        return await self._get("version", models.VersionInfo)

    async def status(self) -> models.ConnectionInfo:
        """Fetch the current serial connection state (``GET /api/connection``)."""
        return await self._get("connection", models.ConnectionInfo)

    async def command(self, command: str) -> None:
        """Issue ``connect``, ``disconnect`` or ``fake_ack``."""
        await self._command("connection", {"command": command})
