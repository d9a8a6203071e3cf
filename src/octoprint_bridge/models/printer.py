"""Models for the version, connection and printer endpoints."""

import typing

import pydantic

from .common import ApiModel


class VersionInfo(ApiModel):
    """Response of ``GET /api/version``."""

    server: str
    api: str
    text: str | None = None


class ConnectionCurrent(ApiModel):
    """Current serial connection as reported by ``GET /api/connection``."""

    state: str = "Unknown"
    port: str | None = None
    baudrate: int | None = None
    printer_profile: str | None = pydantic.Field(default=None, alias="printerProfile")


class ConnectionInfo(ApiModel):
    """Response of ``GET /api/connection``."""

    current: ConnectionCurrent = pydantic.Field(default_factory=ConnectionCurrent)


class TemperatureReading(ApiModel):
    """One heater entry of the printer temperature block."""

    actual: float | None = None
    target: float | None = None
    offset: float | None = 0


class PrinterDetails(ApiModel):
    """Response of ``GET /api/printer`` (only the temperature block is mirrored)."""

    temperature: dict[str, TemperatureReading] = pydantic.Field(default_factory=dict)

    @pydantic.field_validator("temperature", mode="before")
    @classmethod
    def drop_non_heaters(cls, v: typing.Any) -> typing.Any:
        """Ignore entries that are not heater readings (e.g. ``history`` lists)."""
        if isinstance(v, dict):
            return {key: value for key, value in v.items() if isinstance(value, dict)}
        return v

    def heaters(self) -> dict[str, TemperatureReading]:
        """Return tool and bed readings, in upstream order."""
        return {key: value for key, value in self.temperature.items() if "tool" in key or key == "bed"}
