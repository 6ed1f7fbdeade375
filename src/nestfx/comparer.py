"""Ordering of collection items by the value found at a nested property path.

Each value type gets one ordering strategy, decided once when a path is
built:

- NATURAL: the type defines its own ordering (``__lt__``), e.g. numbers,
  strings, dates, ``@dataclass(order=True)`` classes.
- ENUM_VALUE: enums whose member values are mutually ordered, compared by
  ``.value`` (declaration values, not member names).
- CANONICAL_STRING: no ordering, but a deterministic text form (member name of
  an enum with unorderable values, or a class-defined ``__str__``/``__repr__``),
  compared case-insensitively.

Types with neither cannot be sorted on. Absent values (None, or a path whose
intermediate link is None) sort before everything else when ascending.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping, Set
from typing import TYPE_CHECKING, Any

from nestfx.errors import NotSortable

if TYPE_CHECKING:
    from nestfx.path import NestedProperty


class SortDirection(enum.Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


class Ordering(enum.Enum):
    NATURAL = "natural"
    ENUM_VALUE = "enum_value"
    CANONICAL_STRING = "canonical_string"


def ordering_for(tp: object) -> Ordering | None:
    """The ordering strategy for values of tp, or None if they cannot be ordered."""
    if not isinstance(tp, type) or tp is object:
        return None
    if _has_natural_order(tp):
        return Ordering.NATURAL
    if issubclass(tp, enum.Enum) and _values_ordered(tp):
        return Ordering.ENUM_VALUE
    if issubclass(tp, enum.Enum) or tp.__str__ is not object.__str__ or tp.__repr__ is not object.__repr__:
        return Ordering.CANONICAL_STRING
    return None


def can_compare(tp: object) -> bool:
    return ordering_for(tp) is not None


def canonical_string(value: Any) -> str:
    if isinstance(value, enum.Enum):
        return value.name.casefold()
    return str(value).casefold()


def _values_ordered(tp: type[enum.Enum]) -> bool:
    try:
        sorted(member.value for member in tp)
    except TypeError:
        return False
    return True


def _has_natural_order(tp: type) -> bool:
    # Mappings and sets define __lt__ but not a total order.
    if issubclass(tp, (Mapping, Set)):
        return False
    return getattr(tp, "__lt__", object.__lt__) is not object.__lt__


def _three_way(left: Any, right: Any) -> int:
    if left is None:
        return 0 if right is None else -1
    if right is None:
        return 1
    return (left > right) - (left < right)


class PropertyComparer:
    """Compares two root objects by the value each holds at a path.

    Usage:
        comparer = PropertyComparer(resolve(Person, "Address.City.Name"))
        people.sort(key=comparer.sort_key)
    """

    __slots__ = ("_path", "_direction", "_ordering")

    def __init__(self, path: NestedProperty, direction: SortDirection = SortDirection.ASCENDING) -> None:
        ordering = path.ordering
        if ordering is None:
            raise NotSortable(f"{path.name!r} has type {path.value_type.__name__}, which has no ordering")
        self._path = path
        self._direction = direction
        self._ordering = ordering

    @property
    def path(self) -> NestedProperty:
        return self._path

    @property
    def direction(self) -> SortDirection:
        return self._direction

    def compare(self, left: Any, right: Any) -> int:
        """-1, 0 or 1 as left sorts before, with or after right."""
        left_value = self._path.get(left)
        right_value = self._path.get(right)
        if self._ordering is Ordering.CANONICAL_STRING:
            left_value = canonical_string(left_value) if left_value is not None else None
            right_value = canonical_string(right_value) if right_value is not None else None
        elif self._ordering is Ordering.ENUM_VALUE:
            left_value = left_value.value if left_value is not None else None
            right_value = right_value.value if right_value is not None else None
        result = _three_way(left_value, right_value)
        return result if self._direction is SortDirection.ASCENDING else -result

    __call__ = compare

    def sort_key(self, item: Any) -> _SortKey:
        return _SortKey(self, item)

    def __repr__(self) -> str:
        return f"PropertyComparer({self._path.name!r}, {self._direction.value})"


class _SortKey:
    """Adapts PropertyComparer.compare to list.sort(key=...)."""

    __slots__ = ("_comparer", "_item")

    def __init__(self, comparer: PropertyComparer, item: Any) -> None:
        self._comparer = comparer
        self._item = item

    def __lt__(self, other: _SortKey) -> bool:
        return self._comparer.compare(self._item, other._item) < 0
