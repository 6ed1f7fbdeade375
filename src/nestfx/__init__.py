"""nestfx: observe and sort collections by nested property paths."""

from importlib.metadata import version as _version

__version__ = _version("nestfx")

from nestfx.errors import (
    NestfxError,
    InvalidArgument,
    UnknownPath,
    NotAllowed,
    NotSortable,
    ReentrancyError,
)
from nestfx.stream import EventStream, Disposer
from nestfx.notify import NotifiesPropertyChanged, ObservableObject, supports_change_notification
from nestfx.properties import PropertyInfo, describe, register_properties, is_value_like
from nestfx.comparer import PropertyComparer, SortDirection, Ordering, can_compare, ordering_for
from nestfx.path import NestedProperty, PathEnumeration, resolve, enumerate_paths
from nestfx.subscription import ChangeSubscriptionTree, SubscriptionNode
from nestfx.collection import (
    ObservableSortableCollection,
    CollectionConfig,
    ListChanged,
    ListChangedType,
    SortKey,
    PendingAdd,
)
# textual NOT auto-imported — opt-in only

__all__ = [
    "NestfxError",
    "InvalidArgument",
    "UnknownPath",
    "NotAllowed",
    "NotSortable",
    "ReentrancyError",
    "EventStream",
    "Disposer",
    "NotifiesPropertyChanged",
    "ObservableObject",
    "supports_change_notification",
    "PropertyInfo",
    "describe",
    "register_properties",
    "is_value_like",
    "PropertyComparer",
    "SortDirection",
    "Ordering",
    "can_compare",
    "ordering_for",
    "NestedProperty",
    "PathEnumeration",
    "resolve",
    "enumerate_paths",
    "ChangeSubscriptionTree",
    "SubscriptionNode",
    "ObservableSortableCollection",
    "CollectionConfig",
    "ListChanged",
    "ListChangedType",
    "SortKey",
    "PendingAdd",
]
