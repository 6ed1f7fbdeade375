"""ObservableSortableCollection — a list that a display layer can bind to.

The collection wraps a plain list and announces every structural change
(item added, deleted, changed, or a full reset) on ``list_changed``. Each item
gets its own ChangeSubscriptionTree, so assigning ``item.Address.City.Name``
is announced as an ITEM_CHANGED event carrying the dotted path.

An optional sort key keeps the list ordered by a nested property. The sort
is reapplied after insertions, replacements and changes to the sorted path,
and structural events report the item's post-sort index. Whenever a re-sort
moves items other than the one being reported on, a RESET precedes the
item's own event so a bound view can resynchronise.

Items can also be added tentatively:

    item = people.begin_add()        # appended, not sorted yet
    item.Name = "Emily"              # still not sorted
    people.commit_add(len(people) - 1)   # now moved into place

Only one tentative add exists at a time; any other structural change commits
it first, with a RESET if committing moves the item.
"""

from __future__ import annotations

import enum
import functools
import inspect
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Iterator, TypeVar, overload

from nestfx.comparer import PropertyComparer, SortDirection, can_compare
from nestfx.errors import InvalidArgument, NotAllowed, NotSortable, ReentrancyError
from nestfx.notify import supports_change_notification
from nestfx.path import SEPARATOR, NestedProperty, enumerate_paths, resolve
from nestfx.stream import Disposer, EventStream
from nestfx.subscription import ChangeSubscriptionTree, watched_paths

logger = logging.getLogger("nestfx.collection")

T = TypeVar("T")

# Nested emits beyond this mean subscribers keep mutating the collection
# from inside their own notifications.
MAX_REENTRANT_EMITS = 32


class ListChangedType(enum.Enum):
    RESET = "reset"
    ITEM_ADDED = "item_added"
    ITEM_DELETED = "item_deleted"
    ITEM_CHANGED = "item_changed"


@dataclass(frozen=True)
class ListChanged:
    """One change event. index is -1 for RESET; path is set for property changes."""

    kind: ListChangedType
    index: int = -1
    path: str | None = None


@dataclass(frozen=True)
class CollectionConfig:
    """Construction options for ObservableSortableCollection.

    allow_new=None derives the permission: new items are allowed when the item
    type can be built without arguments or a new-item factory is registered.
    """

    allow_edit: bool = True
    allow_remove: bool = True
    allow_new: bool | None = None
    traversal_depth: int = 1
    cascade_nested_notifications: bool = True

    def __post_init__(self) -> None:
        if self.traversal_depth < 0:
            raise InvalidArgument(f"traversal_depth must be >= 0, got {self.traversal_depth}")


@dataclass(frozen=True)
class SortKey:
    path: NestedProperty
    direction: SortDirection
    comparer: PropertyComparer

    def affected_by(self, changed: str | None) -> bool:
        """Whether a change at path changed (None: unknown) can move this key."""
        if changed is None:
            return True
        return changed == self.path.name or self.path.name.startswith(changed + SEPARATOR)


@dataclass(frozen=True)
class PendingAdd:
    index: int


def _constructible(item_type: type) -> bool:
    try:
        signature = inspect.signature(item_type)
    except (TypeError, ValueError):
        return False
    return all(
        p.default is not inspect.Parameter.empty or p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        for p in signature.parameters.values()
    )


class ObservableSortableCollection(Generic[T]):
    """Observable, optionally sorted list of item_type objects.

    items, when given, is wrapped rather than copied: the collection mutates
    that list in place.
    """

    def __init__(
        self,
        item_type: type[T],
        items: list[T] | None = None,
        config: CollectionConfig | None = None,
        *,
        new_item_factory: Callable[[], T | None] | None = None,
    ) -> None:
        if item_type is None:
            raise InvalidArgument("item_type is required")
        config = config if config is not None else CollectionConfig()
        self._item_type = item_type
        self._items: list[T] = items if items is not None else []
        self._allow_edit = config.allow_edit
        self._allow_remove = config.allow_remove
        self._allow_new = config.allow_new
        self._depth = config.traversal_depth
        self._cascade = config.cascade_nested_notifications
        self._constructible = _constructible(item_type)
        self._new_item_factory = new_item_factory
        self._item_properties: tuple[NestedProperty, ...] | None = None
        self._sort: SortKey | None = None
        self._pending: PendingAdd | None = None
        self._adding_new = False
        self._raise_events = True
        self._emit_depth = 0
        self.list_changed: EventStream[ListChanged] = EventStream()
        self._trees: list[ChangeSubscriptionTree[T]] = [self._attach(item) for item in self._items]

    # --- Configuration ---

    @property
    def item_type(self) -> type[T]:
        return self._item_type

    @property
    def list_name(self) -> str:
        return self._item_type.__name__

    @property
    def allow_edit(self) -> bool:
        return self._allow_edit

    @allow_edit.setter
    def allow_edit(self, value: bool) -> None:
        if value != self._allow_edit:
            self._allow_edit = value
            self._reset()

    @property
    def allow_remove(self) -> bool:
        return self._allow_remove

    @allow_remove.setter
    def allow_remove(self, value: bool) -> None:
        if value != self._allow_remove:
            self._allow_remove = value
            self._reset()

    @property
    def allow_new(self) -> bool:
        if self._allow_new is not None:
            return self._allow_new
        return self._constructible or self._new_item_factory is not None

    @allow_new.setter
    def allow_new(self, value: bool) -> None:
        if value != self.allow_new:
            self._allow_new = value
            self._reset()

    @property
    def new_item_factory(self) -> Callable[[], T | None] | None:
        return self._new_item_factory

    @new_item_factory.setter
    def new_item_factory(self, factory: Callable[[], T | None] | None) -> None:
        self._new_item_factory = factory

    @property
    def cascade_nested_notifications(self) -> bool:
        return self._cascade

    @cascade_nested_notifications.setter
    def cascade_nested_notifications(self, value: bool) -> None:
        self._cascade = value
        for tree in self._trees:
            tree.cascade = value

    @property
    def raise_list_changed_events(self) -> bool:
        return self._raise_events

    @raise_list_changed_events.setter
    def raise_list_changed_events(self, value: bool) -> None:
        self._raise_events = value

    @property
    def raises_item_changed_events(self) -> bool:
        return supports_change_notification(self._item_type) or bool(watched_paths(self._item_type, self._depth))

    @property
    def traversal_depth(self) -> int:
        return self._depth

    @traversal_depth.setter
    def traversal_depth(self, depth: int) -> None:
        self.set_traversal_depth(depth)

    def set_traversal_depth(self, depth: int) -> None:
        """Observe and enumerate nested properties down to depth (0 = direct only)."""
        if depth is None or depth < 0:
            raise InvalidArgument(f"traversal depth must be >= 0, got {depth}")
        if depth == self._depth:
            return
        logger.info("%s traversal depth %d -> %d", self.list_name, self._depth, depth)
        self._depth = depth
        self._item_properties = None
        for tree in self._trees:
            tree.dispose()
        self._trees = [self._attach(item) for item in self._items]
        self._reset()

    @property
    def item_properties(self) -> tuple[NestedProperty, ...]:
        """The bindable paths of item_type at the current traversal depth."""
        if self._item_properties is None:
            self._item_properties = tuple(enumerate_paths(self._item_type, self._depth))
        return self._item_properties

    # --- Sorting ---

    @property
    def is_sorted(self) -> bool:
        return self._sort is not None

    @property
    def sort_property(self) -> NestedProperty | None:
        return self._sort.path if self._sort is not None else None

    @property
    def sort_direction(self) -> SortDirection | None:
        return self._sort.direction if self._sort is not None else None

    def set_sort(self, path: NestedProperty | str, direction: SortDirection = SortDirection.ASCENDING) -> None:
        """Order the items by path and keep them ordered. Emits RESET."""
        prop = self._resolve(path)
        if not can_compare(prop.value_type):
            raise NotSortable(f"cannot sort {self.list_name} by {prop.name!r} ({prop.value_type.__name__})")
        self._pending = None
        self._sort = SortKey(prop, direction, PropertyComparer(prop, direction))
        logger.info("%s sorted by %s %s", self.list_name, prop.name, direction.value)
        self._apply_sort()
        self._reset()

    def sort_by(self, name: str, ignore_case: bool = False, ascending: bool = True) -> None:
        if not name:
            raise InvalidArgument("sort property name must not be empty")
        prop = resolve(self._item_type, name, ignore_case=ignore_case)
        self.set_sort(prop, SortDirection.ASCENDING if ascending else SortDirection.DESCENDING)

    def clear_sort(self) -> None:
        """Stop keeping the items sorted. The current order is left as it is."""
        if self._sort is None:
            return
        self._sort = None
        self._reset()

    # --- Tentative adds ---

    @property
    def pending_add_index(self) -> int | None:
        return self._pending.index if self._pending is not None else None

    def begin_add(self) -> T:
        """Append a freshly built item without sorting it, pending commit or cancel."""
        if not self.allow_new:
            raise NotAllowed(f"adding new {self.list_name} items is disabled")
        item = self._new_item_factory() if self._new_item_factory is not None else None
        if item is None:
            if not self._constructible:
                raise NotAllowed(f"{self.list_name} cannot be built without arguments and no factory supplied one")
            item = self._item_type()
        self._end_pending()
        self._adding_new = True
        try:
            self.append(item)
        finally:
            self._adding_new = False
        self._pending = PendingAdd(len(self._items) - 1)
        return item

    def commit_add(self, index: int) -> None:
        """Accept the pending item at index. Any other index is ignored."""
        if self._pending is None or self._pending.index != index:
            return
        self._pending = None
        if self._sort is not None:
            self._apply_sort()
            self._reset()

    def cancel_add(self, index: int) -> None:
        """Discard the pending item at index. Any other index is ignored."""
        if self._pending is None or self._pending.index != index:
            return
        self._pending = None
        del self._items[index]
        self._trees.pop(index).dispose()
        self._emit(ListChanged(ListChangedType.ITEM_DELETED, index))

    # --- Read operations ---

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> list[T]: ...

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __bool__(self) -> bool:
        return bool(self._items)

    def index(self, item: T) -> int:
        """Position of item, preferring the identical object over an equal one."""
        for position, candidate in enumerate(self._items):
            if candidate is item:
                return position
        return self._items.index(item)

    def find(self, path: NestedProperty | str, key: Any) -> int:
        """Index of the first item whose value at path equals key, else -1."""
        prop = self._resolve(path)
        for position, item in enumerate(self._items):
            if prop.get(item) == key:
                return position
        return -1

    # --- Write operations ---

    def append(self, item: T) -> None:
        self.insert(len(self._items), item)

    def extend(self, items: Iterable[T]) -> None:
        for item in items:
            self.append(item)

    def insert(self, index: int, item: T) -> None:
        """Insert item. When sorted, it lands at its sorted position instead."""
        self._end_pending()
        tree = self._attach(item)
        self._items.insert(index, item)
        self._trees.insert(index, tree)
        if self._sort is not None and not self._adding_new and self._resort(tree):
            # Other items moved too; a single ITEM_ADDED cannot describe that.
            self._reset()
            return
        self._emit(ListChanged(ListChangedType.ITEM_ADDED, self._position_of(tree)))

    def replace(self, index: int, item: T) -> None:
        if not self._allow_edit:
            raise NotAllowed(f"editing {self.list_name} items is disabled")
        old_tree = self._trees[index]
        self._end_pending()
        position = self._position_of(old_tree)
        old_tree.dispose()
        tree = self._attach(item)
        self._items[position] = item
        self._trees[position] = tree
        if self._sort is not None:
            self._resort_around(tree, position)
        self._emit(ListChanged(ListChangedType.ITEM_CHANGED, self._position_of(tree)))

    def __setitem__(self, index: int, item: T) -> None:
        self.replace(index, item)

    def pop(self, index: int = -1) -> T:
        if not self._allow_remove:
            raise NotAllowed(f"removing {self.list_name} items is disabled")
        tree = self._trees[index]
        self._end_pending()
        position = self._position_of(tree)
        item = self._items.pop(position)
        self._trees.pop(position)
        tree.dispose()
        self._emit(ListChanged(ListChangedType.ITEM_DELETED, position))
        return item

    def remove_at(self, index: int) -> None:
        self.pop(index)

    def __delitem__(self, index: int) -> None:
        self.pop(index)

    def remove(self, item: T) -> None:
        self.pop(self.index(item))

    def clear(self) -> None:
        if not self._allow_remove:
            raise NotAllowed(f"removing {self.list_name} items is disabled")
        self._pending = None
        for tree in self._trees:
            tree.dispose()
        self._trees.clear()
        self._items.clear()
        self._reset()

    # --- Events ---

    def subscribe(self, callback: Callable[[ListChanged], None]) -> Disposer:
        return self.list_changed.subscribe(callback)

    @contextmanager
    def suspend_events(self):
        """Batch mutations: no events inside the block, one RESET after it.

        Usage:
            with people.suspend_events():
                people.extend(loaded)
            # subscribers see a single RESET here
        """
        previous = self._raise_events
        self._raise_events = False
        try:
            yield self
        finally:
            self._raise_events = previous
        self._reset()

    def dispose(self) -> None:
        """Detach from every item and drop all subscribers."""
        for tree in self._trees:
            tree.dispose()
        self._trees = []
        self.list_changed.dispose()

    # --- Internals ---

    def _attach(self, item: T) -> ChangeSubscriptionTree[T]:
        tree = ChangeSubscriptionTree(self._item_type, self._depth, item, cascade=self._cascade)
        tree.subscribe(functools.partial(self._on_item_changed, tree))
        return tree

    def _position_of(self, tree: ChangeSubscriptionTree[T]) -> int:
        for position, candidate in enumerate(self._trees):
            if candidate is tree:
                return position
        raise ValueError("tree is not attached to this collection")

    def _on_item_changed(self, tree: ChangeSubscriptionTree[T], path: str) -> None:
        try:
            position = self._position_of(tree)
        except ValueError:
            logger.warning("Change %r from an item no longer in %s; detaching", path, self.list_name)
            tree.dispose()
            return
        if self._pending is None and self._sort is not None and self._sort.affected_by(path):
            self._resort_around(tree, position)
            position = self._position_of(tree)
        self._emit(ListChanged(ListChangedType.ITEM_CHANGED, position, path))

    def _resolve(self, path: NestedProperty | str) -> NestedProperty:
        if path is None:
            raise InvalidArgument("a property path is required")
        if isinstance(path, str):
            return resolve(self._item_type, path)
        if not issubclass(self._item_type, path.component_type):
            raise InvalidArgument(f"{path!r} does not apply to {self.list_name}")
        return path

    def _apply_sort(self) -> None:
        comparer = self._sort.comparer
        pairs = sorted(zip(self._items, self._trees), key=lambda pair: comparer.sort_key(pair[0]))
        self._items[:] = [item for item, _ in pairs]
        self._trees[:] = [tree for _, tree in pairs]

    def _resort(self, tree: ChangeSubscriptionTree[T] | None = None) -> bool:
        """Re-sort; True if items other than tree's changed relative order."""
        before = [candidate for candidate in self._trees if candidate is not tree]
        self._apply_sort()
        after = [candidate for candidate in self._trees if candidate is not tree]
        return any(old is not new for old, new in zip(before, after))

    def _resort_around(self, tree: ChangeSubscriptionTree[T], position: int) -> None:
        # An ITEM_CHANGED at the new index only describes an item that stayed put.
        if self._resort(tree) or self._position_of(tree) != position:
            self._reset()

    def _end_pending(self) -> None:
        # Another structural change commits the tentative add first.
        if self._pending is None:
            return
        self._pending = None
        if self._sort is not None and self._resort():
            self._reset()

    def _reset(self) -> None:
        self._emit(ListChanged(ListChangedType.RESET))

    def _emit(self, event: ListChanged) -> None:
        if not self._raise_events:
            return
        if self._emit_depth >= MAX_REENTRANT_EMITS:
            raise ReentrancyError(
                f"{self.list_name} notifications nested more than {MAX_REENTRANT_EMITS} deep"
            )
        self._emit_depth += 1
        try:
            self.list_changed.emit(event)
        finally:
            self._emit_depth -= 1

    def __repr__(self) -> str:
        sort = f", sorted by {self._sort.path.name}" if self._sort is not None else ""
        return f"ObservableSortableCollection({self.list_name}, {len(self._items)} items{sort})"
