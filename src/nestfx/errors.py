"""Exceptions raised by nestfx.

Every error is synchronous and local to the call that raised it. Each class
also derives from the closest builtin so callers can catch them idiomatically.
"""

from __future__ import annotations


class NestfxError(Exception):
    """Base class for all nestfx errors."""


class InvalidArgument(NestfxError, ValueError):
    """A required argument is missing, empty or out of range."""


class UnknownPath(InvalidArgument):
    """A path segment does not name a property of its owning type."""

    def __init__(self, path: str, segment: str, owner_type: type) -> None:
        self.path = path
        self.segment = segment
        self.owner_type = owner_type
        owner = getattr(owner_type, "__name__", repr(owner_type))
        super().__init__(f"{owner} has no property {segment!r} (resolving {path!r})")


class NotAllowed(NestfxError):
    """An edit, removal or add was refused by the collection's configuration."""


class NotSortable(NestfxError, TypeError):
    """A sort was requested on a value type with no usable ordering."""


class ReentrancyError(NestfxError, RuntimeError):
    """Change notifications recursed deeper than the collection permits."""
