"""Change subscription trees — path-qualified change events for nested objects.

A ChangeSubscriptionTree watches one root object and every nested object
that can announce its own changes, down to a fixed depth, and re-announces
each change under its full dotted path:

    tree = ChangeSubscriptionTree(Person, depth=2, obj=person)
    tree.subscribe(print)
    person.Address.City = City()     # prints "Address.City", then its descendants

The set of paths needing a live subscription is planned once per
(root type, depth). At runtime each of those paths owns a SubscriptionNode
observing whatever object currently sits there. When an intermediate link is
replaced the nodes at and beneath it are rewired to the new objects, so no
node keeps listening to a replaced object.

With cascade on (the default), replacing a link also announces every known
path beneath it, since the values reachable there changed without any
lower-level notification.

Changes deeper than the planned paths have nothing to announce and are
dropped.
"""

from __future__ import annotations

import functools
import logging
from types import MappingProxyType
from typing import Any, Callable, Generic, Mapping, TypeVar

from nestfx._anchor import NodeArena
from nestfx.errors import InvalidArgument
from nestfx.notify import NotifiesPropertyChanged, supports_change_notification
from nestfx.path import SEPARATOR, NestedProperty, enumerate_paths
from nestfx.stream import Disposer, EventStream

logger = logging.getLogger("nestfx.subscription")

T = TypeVar("T")


@functools.lru_cache(maxsize=None)
def _plan(root_type: type, depth: int) -> tuple[Mapping[str, NestedProperty], tuple[NestedProperty, ...]]:
    paths = {prop.name: prop for prop in enumerate_paths(root_type, depth)}
    watched = tuple(
        prop
        for prop in paths.values()
        if prop.depth < depth and supports_change_notification(prop.value_type)
    )
    logger.debug(
        "Planned %s at depth %d: %d paths, %d watched",
        root_type.__name__, depth, len(paths), len(watched),
    )
    return MappingProxyType(paths), watched


def watched_paths(root_type: type, depth: int) -> tuple[str, ...]:
    """Path prefixes that get a live SubscriptionNode for (root_type, depth)."""
    return tuple(prop.name for prop in _plan(root_type, depth)[1])


class SubscriptionNode:
    """Observes the object at one path prefix of a tree's root.

    State lives in the owning tree's NodeArena; the node is a thin handle
    holding an _id. The root node has no path and observes the root object
    itself.
    """

    __slots__ = ("_id", "_tree", "path")

    def __init__(self, tree: ChangeSubscriptionTree, path: NestedProperty | None) -> None:
        self._id = tree._arena.new_id()
        self._tree = tree
        self.path = path

    @property
    def prefix(self) -> str:
        return self.path.name if self.path is not None else ""

    @property
    def observed(self) -> Any:
        return self._tree._arena.observed.get(self._id)

    @property
    def generation(self) -> int:
        return self._tree._arena.generations.get(self._id, -1)

    @property
    def attached(self) -> bool:
        return self._tree._arena.disposers.get(self._id) is not None

    def update(self, root: Any) -> None:
        """Observe the object currently found at this node's prefix of root."""
        value = root if self.path is None else self.path.get(root)
        if value is self.observed:
            return
        self._rewire(value)

    def _rewire(self, value: Any) -> None:
        arena = self._tree._arena
        node_id = self._id
        generation = arena.generations[node_id] + 1
        arena.generations[node_id] = generation
        old_disposer = arena.disposers[node_id]
        arena.observed[node_id] = value
        new_disposer = None
        if isinstance(value, NotifiesPropertyChanged):
            new_disposer = value.subscribe_property_changed(functools.partial(self._on_changed, generation))
        arena.disposers[node_id] = new_disposer
        # Subscribe first, then drop the old object, so the swap is atomic.
        if old_disposer is not None:
            old_disposer()
        logger.debug("Node %r now observes %s", self.prefix, type(value).__name__)

    def _on_changed(self, generation: int, name: str) -> None:
        if self._tree._arena.generations.get(self._id) != generation:
            logger.debug("Ignoring stale change %r at node %r", name, self.prefix)
            return
        self._tree._node_changed(self, name)

    def dispose(self) -> None:
        arena = self._tree._arena
        disposer = arena.disposers.get(self._id)
        arena.release(self._id)
        if disposer is not None:
            disposer()

    def __repr__(self) -> str:
        return f"SubscriptionNode({self.prefix!r}, gen={self.generation})"


class ChangeSubscriptionTree(Generic[T]):
    """Re-announces changes anywhere beneath a root object as dotted paths."""

    def __init__(self, root_type: type[T], depth: int = 1, obj: T | None = None, *, cascade: bool = True) -> None:
        if root_type is None:
            raise InvalidArgument("root_type is required")
        if depth < 0:
            raise InvalidArgument(f"depth must be >= 0, got {depth}")
        self._root_type = root_type
        self._depth = depth
        self._paths, watched = _plan(root_type, depth)
        self._arena = NodeArena()
        self._root_node = SubscriptionNode(self, None)
        # Parent prefixes precede their descendants (depth-first plan order).
        self._nodes: dict[str, SubscriptionNode] = {prop.name: SubscriptionNode(self, prop) for prop in watched}
        self._obj: T | None = None
        self._disposed = False
        self.cascade = cascade
        self.property_changed: EventStream[str] = EventStream()
        if obj is not None:
            self.obj = obj

    @property
    def root_type(self) -> type[T]:
        return self._root_type

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def paths(self) -> Mapping[str, NestedProperty]:
        """Every path this tree can announce, by dotted name."""
        return self._paths

    @property
    def watched_paths(self) -> tuple[str, ...]:
        return tuple(self._nodes)

    @property
    def obj(self) -> T | None:
        return self._obj

    @obj.setter
    def obj(self, value: T | None) -> None:
        if value is self._obj:
            return
        if self._disposed:
            raise InvalidArgument("cannot attach a disposed ChangeSubscriptionTree")
        self._obj = value
        self._root_node.update(value)
        for node in self._nodes.values():
            node.update(value)

    def node(self, prefix: str) -> SubscriptionNode | None:
        """The node watching prefix ("" for the root object itself)."""
        return self._root_node if prefix == "" else self._nodes.get(prefix)

    def subscribe(self, callback: Callable[[str], None]) -> Disposer:
        """Call callback(dotted_name) for every announced change."""
        return self.property_changed.subscribe(callback)

    def dispose(self) -> None:
        """Detach from every observed object. The tree cannot be reused."""
        if self._disposed:
            return
        self._disposed = True
        self._root_node.dispose()
        for node in self._nodes.values():
            node.dispose()
        self.property_changed.dispose()
        self._obj = None

    def _node_changed(self, node: SubscriptionNode, name: str) -> None:
        full = f"{node.prefix}{SEPARATOR}{name}" if node.prefix else name
        self._rewire(full)
        if full not in self._paths:
            logger.debug("No path %r at depth %d; change not announced", full, self._depth)
            return
        self.property_changed.emit(full)
        if self.cascade:
            below = full + SEPARATOR
            for path in self._paths:
                if path.startswith(below):
                    self.property_changed.emit(path)

    def _rewire(self, changed: str) -> None:
        below = changed + SEPARATOR
        for prefix, node in self._nodes.items():
            if prefix == changed or prefix.startswith(below):
                node.update(self._obj)

    def __repr__(self) -> str:
        return f"ChangeSubscriptionTree({self._root_type.__name__}, depth={self._depth}, watched={len(self._nodes)})"
