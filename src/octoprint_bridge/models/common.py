"""Common models for the OctoPrint bridge."""

import typing

import pydantic
import structlog

logger = structlog.get_logger(__name__)


class ApiModel(pydantic.BaseModel):
    """Base model for OctoPrint payloads.

    OctoPrint responses carry far more fields than the bridge mirrors, so unknown
    fields are dropped silently instead of being reported.
    """

    model_config = pydantic.ConfigDict(extra="ignore", populate_by_name=True)


def as_number(value: typing.Any) -> float | None:
    """Return ``value`` if it is a real number (bools excluded), else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return value
    return None
