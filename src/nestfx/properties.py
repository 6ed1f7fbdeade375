"""Type registry — the named properties each type exposes.

describe(tp) is computed once per type and cached. It reads dataclass fields,
annotated class attributes and ``property`` objects, in that order, walking the
MRO base-first so inherited members come before the subclass's own. Each
PropertyInfo is bound to the class that declares it.

Types the introspection cannot see (C extensions, objects built from
``__getattr__``) can be described explicitly with register_properties().
"""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
import fractions
import inspect
import logging
import operator
import types
import typing
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from nestfx.notify import NotifiesPropertyChanged, ObservableObject

logger = logging.getLogger("nestfx.properties")

_VALUE_LIKE: tuple[type, ...] = (
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    decimal.Decimal,
    fractions.Fraction,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
    enum.Enum,
    type(None),
)


@dataclass(frozen=True)
class PropertyInfo:
    """A single named property of a type."""

    name: str
    value_type: type
    declaring_type: type
    getter: Callable[[Any], Any]
    setter: Callable[[Any, Any], None] | None = None

    @property
    def read_only(self) -> bool:
        return self.setter is None


_registry: dict[type, tuple[PropertyInfo, ...]] = {
    str: (PropertyInfo("length", int, str, len),),
    bytes: (PropertyInfo("length", int, bytes, len),),
}


def is_value_like(tp: object) -> bool:
    """Primitive, string-like or enum types: leaves that are never descended into."""
    return isinstance(tp, type) and issubclass(tp, _VALUE_LIKE)


def register_properties(tp: type, infos: Iterable[PropertyInfo]) -> None:
    """Describe tp explicitly, replacing anything introspected earlier."""
    _registry[tp] = tuple(infos)
    logger.debug("Registered %d properties for %s", len(_registry[tp]), tp.__name__)


def describe(tp: object) -> tuple[PropertyInfo, ...]:
    """The ordered properties of tp. Non-class inputs describe as empty."""
    if not isinstance(tp, type):
        return ()
    infos = _registry.get(tp)
    if infos is None:
        infos = () if is_value_like(tp) else _introspect(tp)
        _registry[tp] = infos
    return infos


def declared_type(annotation: object) -> type:
    """Reduce a type annotation to the concrete class a value is declared as.

    ``X | None`` becomes X, ``list[int]`` becomes list, and anything that does
    not narrow to a single class becomes object.
    """
    if annotation is None or annotation is type(None):
        return type(None)
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return declared_type(typing.get_args(annotation)[0])
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        return declared_type(args[0]) if len(args) == 1 else object
    if origin is not None:
        return origin if isinstance(origin, type) else object
    return annotation if isinstance(annotation, type) else object


def _introspect(tp: type) -> tuple[PropertyInfo, ...]:
    hints = _type_hints(tp)
    infos: list[PropertyInfo] = []
    seen: set[str] = set()

    if dataclasses.is_dataclass(tp):
        frozen = tp.__dataclass_params__.frozen
        for f in dataclasses.fields(tp):
            infos.append(_attribute(tp, f.name, hints.get(f.name, f.type), read_only=frozen))
            seen.add(f.name)

    for klass in _own_mro(tp):
        for name, annotation in inspect.get_annotations(klass).items():
            if name in seen or _is_class_var(hints.get(name)):
                continue
            if isinstance(vars(klass).get(name), property):
                continue
            infos.append(_attribute(tp, name, hints.get(name, annotation)))
            seen.add(name)

    for klass in _own_mro(tp):
        for name, attr in vars(klass).items():
            if not isinstance(attr, property) or name in seen:
                continue
            infos.append(_property(klass, name, attr))
            seen.add(name)

    return tuple(infos)


def _own_mro(tp: type) -> list[type]:
    # Base-first; object, Generic and the capability mixins declare nothing.
    skip = {object, typing.Generic, NotifiesPropertyChanged, ObservableObject}
    return [k for k in reversed(tp.__mro__) if k not in skip]


def _is_class_var(hint: object) -> bool:
    return hint is typing.ClassVar or typing.get_origin(hint) is typing.ClassVar


def _type_hints(tp: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(tp, include_extras=True)
    except Exception:
        logger.warning("Could not evaluate type hints of %s; declaring them as object", tp.__name__)
        return {}


def _declaring_class(tp: type, name: str) -> type:
    for klass in tp.__mro__:
        if name in inspect.get_annotations(klass):
            return klass
    return tp


def _attribute(tp: type, name: str, annotation: object, read_only: bool = False) -> PropertyInfo:
    setter = None if read_only else _attribute_setter(name)
    return PropertyInfo(
        name,
        declared_type(annotation),
        _declaring_class(tp, name),
        operator.attrgetter(name),
        setter,
    )


def _attribute_setter(name: str) -> Callable[[Any, Any], None]:
    def _set(obj: Any, value: Any) -> None:
        setattr(obj, name, value)

    return _set


def _property(klass: type, name: str, prop: property) -> PropertyInfo:
    value_type: type = object
    if prop.fget is not None:
        try:
            value_type = declared_type(typing.get_type_hints(prop.fget).get("return", object))
        except Exception:
            logger.warning("Could not evaluate return type of %s.%s", klass.__name__, name)
    getter = prop.fget if prop.fget is not None else operator.attrgetter(name)
    return PropertyInfo(name, value_type, klass, getter, prop.fset)
