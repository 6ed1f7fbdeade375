"""Dotted property paths resolved against a type graph.

A NestedProperty is one resolved path such as ``"Address.City.Name"``: a
chain of PropertyInfo links, each bound to the type that declares it. It reads
and writes the value at the end of the chain for any root object of its
component type.

    name = resolve(Person, "Address.City.Name")
    name.depth                # 2
    name.get(person)          # person.Address.City.Name, or None if a link is absent
    name.set(person, "Perth")

enumerate_paths() lists every path reachable from a type up to a depth.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Iterator

from nestfx.comparer import Ordering, ordering_for
from nestfx.errors import InvalidArgument, NotAllowed, UnknownPath
from nestfx.properties import PropertyInfo, describe, is_value_like
from nestfx.stream import EventStream

logger = logging.getLogger("nestfx.path")

SEPARATOR = "."


class NestedProperty:
    """A resolved, immutable property path rooted at component_type."""

    __slots__ = ("_info", "_parent", "_component_type", "_name", "_depth", "_ordering", "value_changed")

    def __init__(self, info: PropertyInfo, parent: NestedProperty | None = None, component_type: type | None = None) -> None:
        self._info = info
        self._parent = parent
        if parent is not None:
            self._component_type = parent.component_type
            self._name = f"{parent.name}{SEPARATOR}{info.name}"
            self._depth = parent.depth + 1
        else:
            self._component_type = component_type if component_type is not None else info.declaring_type
            self._name = info.name
            self._depth = 0
        self._ordering = ordering_for(info.value_type)
        # Fires with the root object after every set().
        self.value_changed: EventStream[Any] = EventStream()

    @property
    def name(self) -> str:
        return self._name

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self._name.split(SEPARATOR))

    @property
    def depth(self) -> int:
        """Nested hops from the component; a direct property has depth 0."""
        return self._depth

    @property
    def parent(self) -> NestedProperty | None:
        return self._parent

    @property
    def component_type(self) -> type:
        return self._component_type

    @property
    def value_type(self) -> type:
        return self._info.value_type

    @property
    def declaring_type(self) -> type:
        return self._info.declaring_type

    @property
    def read_only(self) -> bool:
        return self._info.read_only

    @property
    def ordering(self) -> Ordering | None:
        return self._ordering

    def is_ancestor_of(self, name: str) -> bool:
        return name.startswith(self._name + SEPARATOR)

    def get(self, component: Any) -> Any:
        """The value at this path, or None if component or any link is absent."""
        if self._parent is not None:
            component = self._parent.get(component)
        if component is None:
            return None
        return self._info.getter(component)

    def set(self, component: Any, value: Any) -> None:
        if self.read_only:
            raise NotAllowed(f"{self._name!r} is read-only")
        target = component if self._parent is None else self._parent.get(component)
        if target is None:
            absent = "the component" if self._parent is None else repr(self._parent.name)
            raise InvalidArgument(f"cannot set {self._name!r}: {absent} is absent")
        self._info.setter(target, value)
        self.value_changed.emit(component)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NestedProperty):
            return NotImplemented
        return self._component_type is other._component_type and self._name == other._name

    def __hash__(self) -> int:
        return hash((self._component_type, self._name))

    def __str__(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"NestedProperty({self._component_type.__name__}, {self._name!r})"


def _find(tp: type, segment: str, ignore_case: bool) -> PropertyInfo | None:
    infos = describe(tp)
    for info in infos:
        if info.name == segment:
            return info
    if ignore_case:
        folded = segment.casefold()
        for info in infos:
            if info.name.casefold() == folded:
                return info
    return None


def resolve(component_type: type, name: str, *, ignore_case: bool = False) -> NestedProperty:
    """Resolve a dotted name against component_type.

    Raises InvalidArgument for a missing type or blank name and UnknownPath
    naming the first segment its owning type does not declare.
    """
    if component_type is None:
        raise InvalidArgument("component_type is required")
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgument("property name must be a non-empty string")
    if ignore_case:
        name = _canonical_name(component_type, name)
    return _resolve(component_type, name)


def _canonical_name(component_type: type, name: str) -> str:
    segments = []
    owner = component_type
    for segment in name.split(SEPARATOR):
        info = _find(owner, segment, True)
        if info is None:
            raise UnknownPath(name, segment, owner)
        segments.append(info.name)
        owner = info.value_type
    return SEPARATOR.join(segments)


@functools.lru_cache(maxsize=None)
def _resolve(component_type: type, name: str) -> NestedProperty:
    # One shared instance per (type, name) so value_changed reaches every writer.
    prefix, _, segment = name.rpartition(SEPARATOR)
    parent = None
    owner = component_type
    if prefix:
        try:
            parent = _resolve(component_type, prefix)
        except UnknownPath as exc:
            raise UnknownPath(name, exc.segment, exc.owner_type) from None
        owner = parent.value_type
    info = _find(owner, segment, False)
    if info is None:
        raise UnknownPath(name, segment, owner)
    logger.debug("Resolved %s.%s", component_type.__name__, name)
    return NestedProperty(info, parent, component_type)


class PathEnumeration:
    """Lazy, restartable listing of every path under a type.

    Iteration is depth-first in declaration order: each property is followed
    immediately by the paths beneath it.
    """

    __slots__ = ("component_type", "max_depth", "include_value_like")

    def __init__(self, component_type: type, max_depth: int, include_value_like: bool) -> None:
        self.component_type = component_type
        self.max_depth = max_depth
        self.include_value_like = include_value_like

    def __iter__(self) -> Iterator[NestedProperty]:
        return _walk(self.component_type, self.max_depth, self.include_value_like, None, self.component_type)

    def find(self, name: str, ignore_case: bool = False) -> NestedProperty | None:
        folded = name.casefold()
        for prop in self:
            if prop.name == name or (ignore_case and prop.name.casefold() == folded):
                return prop
        return None

    def __repr__(self) -> str:
        return f"PathEnumeration({self.component_type.__name__}, max_depth={self.max_depth})"


def enumerate_paths(component_type: type, max_depth: int = 1, include_value_like: bool = False) -> PathEnumeration:
    """Every path of component_type up to max_depth, including all prefixes.

    max_depth=0 lists the direct properties only. Value-like types (numbers,
    strings, enums) are only descended into when include_value_like is set.
    """
    if component_type is None:
        raise InvalidArgument("component_type is required")
    if max_depth < 0:
        raise InvalidArgument(f"max_depth must be >= 0, got {max_depth}")
    return PathEnumeration(component_type, max_depth, include_value_like)


def _walk(
    tp: type,
    depth: int,
    include_value_like: bool,
    parent: NestedProperty | None,
    component_type: type,
) -> Iterator[NestedProperty]:
    if not include_value_like and is_value_like(tp):
        return
    for info in describe(tp):
        name = info.name if parent is None else f"{parent.name}{SEPARATOR}{info.name}"
        prop = _resolve(component_type, name)
        yield prop
        if depth > 0:
            yield from _walk(info.value_type, depth - 1, include_value_like, prop, component_type)
