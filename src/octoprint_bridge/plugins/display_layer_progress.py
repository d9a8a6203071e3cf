"""OctoPrint-DisplayLayerProgress integration.

The plugin reports most values as strings (``"39"``, ``"69%"``, ``"953.8"``) and ``"-"`` when a
value is not known yet; unknown values leave the stored state untouched.
"""

import re
import typing

import structlog

from octoprint_bridge import consts, nodes
from octoprint_bridge.models import LayerProgress
from octoprint_bridge.models import tree as spec
from octoprint_bridge.services import OctoPrintApi
from octoprint_bridge.store import StateTreeAdapter

logger = structlog.get_logger(__name__)

_LEADING_INT = re.compile(r"\d+")

CHANNELS = [
    (consts.LAYER_PROGRESS_NAMESPACE, spec.channel("Display Layer Progress")),
    (f"{consts.LAYER_PROGRESS_NAMESPACE}.layer", spec.channel("Layer")),
]

FIELDS: list[nodes.Field] = [
    nodes.Field("layer.current", spec.number("Current layer", default=-1), lambda p: p.layer.current),
    nodes.Field("layer.total", spec.number("Total layers", default=-1), lambda p: p.layer.total),
    nodes.Field(
        "layer.averageDuration", spec.number("Average layer duration", unit="s"), lambda p: p.layer.average_duration
    ),
    nodes.Field("layer.lastDuration", spec.number("Last layer duration", unit="s"), lambda p: p.layer.last_duration),
    nodes.Field("feedrate", spec.number("Feedrate"), lambda p: p.feedrate),
    nodes.Field("fanSpeed", spec.number("Fan speed", unit="%"), lambda p: p.fan_speed),
]


def parse_value(value: typing.Any) -> int | None:
    """Integer part of a plugin value, or None for ``"-"`` and unparseable values.

    Usage Example:
    ```python
        >>> parse_value("69%")
        69
        >>> parse_value("953.8")
        953
        >>> parse_value("-") is None
        True
    ```
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return int(value)
    match = _LEADING_INT.match(re.sub(r"[^\d.]", "", str(value)))
    return int(match.group()) if match else None


async def refresh(tree: StateTreeAdapter, api: OctoPrintApi) -> None:
    """Fetch the plugin values and mirror them below ``plugins.displayLayerProgress``."""
    for path, node_spec in CHANNELS:
        await tree.ensure_node(path, node_spec)
    await nodes.apply_fields(tree, consts.LAYER_PROGRESS_NAMESPACE, FIELDS, None)

    progress: LayerProgress = await api.plugins.layer_progress()
    for field in FIELDS:
        value = parse_value(field.value(progress))
        if value is not None:
            await tree.write_if_changed(f"{consts.LAYER_PROGRESS_NAMESPACE}.{field.suffix}", value)


async def remove(tree: StateTreeAdapter) -> None:
    """Delete the plugin's nodes (integration disabled)."""
    await tree.delete_subtree(consts.LAYER_PROGRESS_NAMESPACE)
