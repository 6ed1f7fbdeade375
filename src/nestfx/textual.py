"""Textual integration for nestfx. Opt-in — requires textual.

bind() forwards change events from a collection, subscription tree or stream
to a callback that updates Textual widgets (typically a DataTable), guarded
so the widget tree is only touched while it is queryable:

    dispose = stx.bind(app, people, lambda event: refresh_table(app, people, event))
    with stx.pause(app):
        app.query_one("#people").remove()   # events are skipped meanwhile

Textual coupling is isolated in this module; the core stays agnostic.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable

from textual.css.query import NoMatches

from nestfx.stream import Disposer

logger = logging.getLogger("nestfx.textual")

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Skip bound callbacks while widgets are being replaced."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def bind(app, source, callback: Callable[[Any], None]) -> Disposer:
    """Subscribe callback to source's events, bridged safely to app.

    source is anything with subscribe(callback) -> Disposer. Events are
    dropped while the app is not running or paused, NoMatches from widget
    queries is swallowed, and events raised off the app's thread are
    marshalled with call_from_thread.
    """
    _main = threading.get_ident()

    def _guarded(event) -> None:
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, event)
        else:
            _safe(event)

    def _safe(event) -> None:
        try:
            callback(event)
        except NoMatches:
            logger.debug("Widget gone while handling %r", event)

    return source.subscribe(_guarded)
