"""Service for third-party plugin endpoints."""

from octoprint_bridge import models
from octoprint_bridge.services.base import BaseService


class PluginService(BaseService):
    """Service for ``/plugin/*`` endpoints."""

    prefix = "/plugin"

    async def layer_progress(self) -> models.LayerProgress:
        """Fetch DisplayLayerProgress values."""
        return await self._get("DisplayLayerProgress/values", models.LayerProgress)
