"""Declarative tables of the nodes the bridge maintains.

Each leaf is described once (path suffix, metadata, value accessor) and written through
`ensure_and_set`, so every leaf has exactly one producer.
"""

import collections.abc
import typing

from octoprint_bridge.formatting import format_timestamp, printtime_string
from octoprint_bridge.models import NodeSpec
from octoprint_bridge.models import tree as spec
from octoprint_bridge.store import StateTreeAdapter


class Field(typing.NamedTuple):
    """One leaf of a node table.

    ``value`` is None for leaves that are only created (buttons, writable inputs).
    """

    suffix: str
    spec: NodeSpec
    value: collections.abc.Callable[[typing.Any], typing.Any] | None = None


async def ensure_and_set(tree: StateTreeAdapter, path: str, node_spec: NodeSpec, value: typing.Any) -> None:
    """Create ``path`` if absent, then write ``value`` if it changed."""
    await tree.ensure_node(path, node_spec)
    await tree.write_if_changed(path, value, ack=True)


async def apply_fields(
    tree: StateTreeAdapter, prefix: str, fields: collections.abc.Iterable[Field], source: typing.Any
) -> None:
    """Materialize a table below ``prefix``.

    With ``source`` None only the nodes are ensured; no values are written.
    """
    for field in fields:
        path = f"{prefix}.{field.suffix}"
        if field.value is None or source is None:
            await tree.ensure_node(path, field.spec)
        else:
            await ensure_and_set(tree, path, field.spec, field.value(source))


TOOL_FIELDS: list[Field] = [
    Field("actualTemperature", spec.number("Actual temperature", "value.temperature", "°C"), lambda t: t.actual),
    Field(
        "targetTemperature",
        spec.number("Target temperature", "level.temperature", "°C", write=True, default=None),
        lambda t: t.target,
    ),
    Field("offsetTemperature", spec.number("Offset temperature", "value.temperature", "°C"), lambda t: t.offset),
]

EXTRUDE_FIELD: Field = Field("extrude", spec.number("Extrude", "value", "mm", write=True))

FILE_FIELDS: list[Field] = [
    Field("name", spec.text("File name"), lambda f: f.display_name),
    Field("path", spec.text("File path"), lambda f: f.path),
    Field("size", spec.number("File size", unit="KiB", default=None), lambda f: f.size_kib),
    Field("date", spec.number("File date", "date", default=None), lambda f: f.date),
    Field("select", spec.button("Select")),
    Field("print", spec.button("Print")),
]

THUMBNAIL_CHANNEL = spec.channel("Thumbnail")
THUMBNAIL_URL = spec.text("Thumbnail URL", role="url")


def printjob_fields(date_format: str) -> list[Field]:
    """Leaves below ``printjob``; ``date_format`` renders the estimated finish time."""
    return [
        Field("file.name", spec.text("File name"), lambda j: j.file_name),
        Field("file.origin", spec.text("File origin"), lambda j: j.origin),
        Field("file.size", spec.number("File size", unit="KiB"), lambda j: j.size_kib),
        Field("file.date", spec.number("File date", "date"), lambda j: j.date),
        Field("filament.length", spec.number("Filament length", unit="m"), lambda j: j.filament_length_m),
        Field("filament.volume", spec.number("Filament volume", unit="cm³"), lambda j: j.filament_volume_cm3),
        Field("progress.completion", spec.number("Completion", unit="%"), lambda j: j.completion),
        Field("progress.filepos", spec.number("File position", unit="KiB"), lambda j: j.filepos_kib),
        Field("progress.printtime", spec.number("Print time", unit="s"), lambda j: j.print_time),
        Field("progress.printtimeLeft", spec.number("Print time left", unit="s"), lambda j: j.print_time_left),
        Field("progress.printtimeFormat", spec.text("Print time"), lambda j: printtime_string(j.print_time)),
        Field(
            "progress.printtimeLeftFormat", spec.text("Print time left"), lambda j: printtime_string(j.print_time_left)
        ),
        Field("progress.finishedAt", spec.number("Finished at", "date"), lambda j: j.finished_at),
        Field(
            "progress.finishedAtFormat",
            spec.text("Finished at"),
            lambda j: format_timestamp(j.finished_at, date_format),
        ),
    ]


PRINTJOB_THUMBNAIL_URL = spec.text("Thumbnail URL", role="url")

NAME = spec.text("Printer name", role="info.name")

STATIC_NODES: list[tuple[str, NodeSpec]] = [
    ("name", NAME),
    ("info", spec.channel("Information")),
    ("info.connection", spec.flag("Connected to OctoPrint", role="indicator.connected")),
    ("meta", spec.channel("Meta")),
    ("meta.version", spec.text("OctoPrint version")),
    ("meta.api_version", spec.text("API version")),
    ("printer_status", spec.text("Printer status")),
    ("operational", spec.flag("Printer operational")),
    ("printing", spec.flag("Printer printing")),
    ("command", spec.channel("Commands")),
    ("command.printer", spec.text("Printer command", role="state", write=True)),
    ("command.printjob", spec.text("Print job command", role="state", write=True)),
    ("command.sd", spec.text("SD card command", role="state", write=True)),
    ("command.custom", spec.text("Custom G-code command", role="state", write=True)),
    ("command.system", spec.text("System command", role="state", write=True)),
    ("command.jog", spec.channel("Jog")),
    ("command.jog.x", spec.number("Jog X axis", "level", "mm", write=True)),
    ("command.jog.y", spec.number("Jog Y axis", "level", "mm", write=True)),
    ("command.jog.z", spec.number("Jog Z axis", "level", "mm", write=True)),
    ("tools", spec.channel("Tools")),
    ("files", spec.channel("Files")),
    ("printjob", spec.channel("Print job")),
    ("printjob.file", spec.channel("File")),
    ("printjob.filament", spec.channel("Filament")),
    ("printjob.progress", spec.channel("Progress")),
]


async def ensure_skeleton(tree: StateTreeAdapter, date_format: str) -> None:
    """Create the nodes that exist independent of what the printer reports."""
    for path, node_spec in STATIC_NODES:
        await tree.ensure_node(path, node_spec)
    await apply_fields(tree, "printjob", printjob_fields(date_format), None)
