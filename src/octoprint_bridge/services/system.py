"""Service for registered system commands."""

from octoprint_bridge import models
from octoprint_bridge.services.base import BaseService


class SystemService(BaseService):
    """Service for ``/api/system/commands``."""

    async def list_commands(self) -> list[models.SystemCommand]:
        """Fetch all registered commands of every source (core, custom, ...)."""
        listing = await self._get("system/commands", models.SystemCommandListing)
        return [command for commands in listing.values() for command in commands]

    async def execute(self, key: str) -> None:
        """Execute a command given as ``source/action``."""
        await self._command(f"system/commands/{key}", {})
