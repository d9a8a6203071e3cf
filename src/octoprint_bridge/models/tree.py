"""Models describing nodes of the hierarchical state tree."""

import typing
from enum import StrEnum

import pydantic


class NodeKind(StrEnum):
    """Structural kind of a tree node."""

    CHANNEL = "channel"
    STATE = "state"


class NodeSpec(pydantic.BaseModel):
    """Metadata a node is created with.

    ``native`` holds bridge-private attributes (e.g. the upstream path of a file channel).
    """

    model_config = pydantic.ConfigDict(frozen=True)

    kind: NodeKind = NodeKind.STATE
    name: str = ""
    type: typing.Literal["number", "string", "boolean", "mixed"] | None = None
    role: str | None = None
    unit: str | None = None
    read: bool = True
    write: bool = False
    default: typing.Any = None
    native: dict[str, typing.Any] = pydantic.Field(default_factory=dict)


class TreeNode(pydantic.BaseModel):
    """A node returned by ``list_children``."""

    id: str
    spec: NodeSpec

    @property
    def name(self) -> str:
        """Last path segment."""
        return self.id.rsplit(".", 1)[-1]


class StateValue(pydantic.BaseModel):
    """Stored value of a state node."""

    model_config = pydantic.ConfigDict(frozen=True)

    val: typing.Any = None
    ack: bool = False


class StateChange(pydantic.BaseModel):
    """Notification delivered to subscribers for every write."""

    path: str
    value: typing.Any = None
    ack: bool = False


def channel(name: str, **native: typing.Any) -> NodeSpec:
    """Spec for a channel node."""
    return NodeSpec(kind=NodeKind.CHANNEL, name=name, native=native)


def number(
    name: str, role: str = "value", unit: str | None = None, write: bool = False, default: typing.Any = 0
) -> NodeSpec:
    """Spec for a numeric state."""
    return NodeSpec(name=name, type="number", role=role, unit=unit, write=write, default=default)


def text(name: str, role: str = "text", write: bool = False) -> NodeSpec:
    """Spec for a string state."""
    return NodeSpec(name=name, type="string", role=role, write=write)


def flag(name: str, role: str = "indicator") -> NodeSpec:
    """Spec for a read-only boolean state."""
    return NodeSpec(name=name, type="boolean", role=role, default=False)


def button(name: str) -> NodeSpec:
    """Spec for a write-only boolean trigger."""
    return NodeSpec(name=name, type="boolean", role="button", read=False, write=True)
