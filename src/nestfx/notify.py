"""The "may raise change notifications" capability.

Domain objects that want their nested properties observed implement
NotifiesPropertyChanged. The capability is checked once per declared type
when a subscription tree is planned, and once per object when a node attaches
to it.

ObservableObject is the ready-made implementation: every public attribute
assignment announces the attribute name. It pairs naturally with dataclasses:

    @dataclass
    class City(ObservableObject):
        Name: str | None = None

    city = City()
    dispose = city.subscribe_property_changed(print)
    city.Name = "Perth"      # prints "Name"
    dispose()
"""

from __future__ import annotations

import abc
from typing import Callable

from nestfx.stream import Disposer, EventStream


class NotifiesPropertyChanged(abc.ABC):
    """Capability: announces the name of each property whose value changed."""

    __slots__ = ()

    @abc.abstractmethod
    def subscribe_property_changed(self, callback: Callable[[str], None]) -> Disposer:
        """Call callback(name) after each change. Returns a disposer."""


def supports_change_notification(tp: object) -> bool:
    """Whether instances of tp can announce their own property changes."""
    return isinstance(tp, type) and issubclass(tp, NotifiesPropertyChanged)


class ObservableObject(NotifiesPropertyChanged):
    """Mixin that announces public attribute assignments.

    Every assignment is announced, even of an equal or identical value. Data
    descriptors (properties) are not announced automatically; their setters
    call on_property_changed() themselves.
    """

    def subscribe_property_changed(self, callback: Callable[[str], None]) -> Disposer:
        stream = self.__dict__.get("_property_changed")
        if stream is None:
            stream = EventStream()
            object.__setattr__(self, "_property_changed", stream)
        return stream.subscribe(callback)

    def on_property_changed(self, name: str) -> None:
        stream = self.__dict__.get("_property_changed")
        if stream is not None:
            stream.emit(name)

    def __setattr__(self, name: str, value) -> None:
        if name.startswith("_") or _is_data_descriptor(type(self), name):
            object.__setattr__(self, name, value)
            return
        object.__setattr__(self, name, value)
        self.on_property_changed(name)


def _is_data_descriptor(cls: type, name: str) -> bool:
    attr = getattr(cls, name, None)
    return attr is not None and hasattr(type(attr), "__set__")
