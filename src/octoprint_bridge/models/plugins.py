"""Models for third-party plugin endpoints."""

import pydantic

from .common import ApiModel

PluginValue = str | int | float | None


class LayerInfo(ApiModel):
    """Layer block of the DisplayLayerProgress plugin."""

    current: PluginValue = None
    total: PluginValue = None
    average_duration: PluginValue = pydantic.Field(default=None, alias="averageLayerDurationInSeconds")
    last_duration: PluginValue = pydantic.Field(default=None, alias="lastLayerDurationInSeconds")


class LayerProgress(ApiModel):
    """Response of ``GET /plugin/DisplayLayerProgress/values``."""

    layer: LayerInfo = pydantic.Field(default_factory=LayerInfo)
    feedrate: PluginValue = None
    fan_speed: PluginValue = pydantic.Field(default=None, alias="fanSpeed")
