"""Service for file operations."""

from octoprint_bridge import models
from octoprint_bridge.services.base import BaseService


class FileService(BaseService):
    """Service for ``/api/files``."""

    async def list_recursive(self) -> models.FileListing:
        """Fetch the complete file tree, folders included."""
        return await self._get("files?recursive=true", models.FileListing)

    async def select(self, path: str, print_after_select: bool = False) -> None:
        """Select a file (``origin/path``) and optionally start printing it."""
        await self._command(f"files/{path}", {"command": "select", "print": print_after_select})
