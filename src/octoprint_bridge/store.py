"""State tree access.

How to use the most important parts:
- `StateTreeAdapter`: The small capability surface the bridge needs from a home-automation state
  store: create-if-absent nodes, set-if-changed writes, recursive deletes, child listing and change
  notifications. Implement it on top of your platform's object database.
- `MemoryStateTree`: An in-process implementation used by the CLI and the tests. It counts mutating
  calls so callers can verify that unchanged polls produce no writes.
"""

import collections.abc
import typing

import structlog

from octoprint_bridge.models import NodeSpec, StateChange, StateValue, TreeNode

__all__ = ["ChangeListener", "MemoryStateTree", "StateTreeAdapter"]

logger = structlog.get_logger(__name__)

type ChangeListener = collections.abc.Callable[[StateChange], None]


class StateTreeAdapter(typing.Protocol):
    """Protocol for the hierarchical object/state store."""

    async def ensure_node(self, path: str, spec: NodeSpec) -> None:
        """Create the node if it does not exist yet; no-op otherwise."""
        ...

    async def read_value(self, path: str) -> typing.Any:
        """Return the stored value of a state, or None if it has none."""
        ...

    async def write_if_changed(self, path: str, value: typing.Any, ack: bool = True) -> bool:
        """Store a value unless it equals the stored one.

        Returns:
            True if the value was written (and subscribers notified).
        """
        ...

    async def delete_subtree(self, path: str) -> None:
        """Delete a node and everything below it."""
        ...

    async def list_children(self, prefix: str) -> list[TreeNode]:
        """List the direct children of ``prefix``."""
        ...

    def subscribe(self, listener: ChangeListener) -> None:
        """Register a callback invoked for every write."""
        ...


class MemoryStateTree:
    """Dictionary-backed `StateTreeAdapter`.

    Attributes:
        writes: Number of value writes that changed something.
        creates: Number of nodes created.
        deletes: Number of nodes removed.
    """

    def __init__(self) -> None:
        """Initialize an empty tree."""
        self._nodes: dict[str, NodeSpec] = {}
        self._values: dict[str, StateValue] = {}
        self._listeners: list[ChangeListener] = []
        self.writes = 0
        self.creates = 0
        self.deletes = 0

    @property
    def mutations(self) -> int:
        """Total number of mutating operations performed so far."""
        return self.writes + self.creates + self.deletes

    async def ensure_node(self, path: str, spec: NodeSpec) -> None:
        """Create the node if absent."""
        if path in self._nodes:
            return
        self._nodes[path] = spec
        self.creates += 1

    async def read_value(self, path: str) -> typing.Any:
        """Return the stored value or None."""
        state = self._values.get(path)
        return state.val if state else None

    async def write_if_changed(self, path: str, value: typing.Any, ack: bool = True) -> bool:
        """Store ``value`` unless value and ack flag are unchanged."""
        new = StateValue(val=value, ack=ack)
        if self._values.get(path) == new:
            return False
        self._store(path, new)
        return True

    def set_state(self, path: str, value: typing.Any, ack: bool = False) -> None:
        """Unconditional write, as issued by a user pressing a button twice."""
        self._store(path, StateValue(val=value, ack=ack))

    async def delete_subtree(self, path: str) -> None:
        """Remove ``path`` and every node below it."""
        doomed = [key for key in self._nodes.keys() | self._values.keys() if key == path or key.startswith(f"{path}.")]
        for key in doomed:
            if self._nodes.pop(key, None) is not None:
                self.deletes += 1
            self._values.pop(key, None)

    async def list_children(self, prefix: str) -> list[TreeNode]:
        """Direct children of ``prefix`` in path order."""
        depth = prefix.count(".") + 1
        return [
            TreeNode(id=path, spec=spec)
            for path, spec in sorted(self._nodes.items())
            if path.startswith(f"{prefix}.") and path.count(".") == depth
        ]

    def subscribe(self, listener: ChangeListener) -> None:
        """Register a change listener."""
        self._listeners.append(listener)

    def get_spec(self, path: str) -> NodeSpec | None:
        """Metadata of a node, if it exists."""
        return self._nodes.get(path)

    def get_state(self, path: str) -> StateValue | None:
        """Value and ack flag of a state, if set."""
        return self._values.get(path)

    def snapshot(self) -> dict[str, StateValue]:
        """All stored values in path order."""
        return dict(sorted(self._values.items()))

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def _store(self, path: str, state: StateValue) -> None:
        self._values[path] = state
        self.writes += 1
        change = StateChange(path=path, value=state.val, ack=state.ack)
        for listener in self._listeners:
            listener(change)
