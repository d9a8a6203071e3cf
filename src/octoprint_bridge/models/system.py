"""System command models."""

import pydantic

from .common import ApiModel


class SystemCommand(ApiModel):
    """A registered system command (``GET /api/system/commands``)."""

    action: str
    source: str
    name: str | None = None
    confirm: str | None = None

    @property
    def key(self) -> str:
        """The ``source/action`` form used to address the command."""
        return f"{self.source}/{self.action}"


SystemCommandListing = pydantic.TypeAdapter(dict[str, list[SystemCommand]])
