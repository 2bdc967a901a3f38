"""
Cache invalidation signal.

Services mark the views a mutation makes stale while the unit of
work is still open. Nothing is sent until the action boundary
calls flush() after a successful commit; a rolled-back unit of
work calls discard() and no view is touched.

Delivery is fire-and-forget. A listener that fails is logged and
the remaining listeners still run.
"""

import logging
from typing import Callable

from shop_ledger.config import get_settings

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]

_listeners: list[Listener] = []


def add_listener(listener: Listener) -> None:
    """Register a callable that receives every stale path."""
    if listener not in _listeners:
        _listeners.append(listener)


def remove_listener(listener: Listener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


class CacheInvalidator:
    """Collects stale paths for one unit of work."""

    def __init__(self, locale: str | None = None):
        self.locale = locale or get_settings().DEFAULT_LOCALE
        self.pending: list[str] = []
        self.sent: list[str] = []

    def path(self, shop_id: str, view: str | None = None) -> str:
        base = f"/{self.locale}/{shop_id}"
        if not view:
            return base
        return f"{base}/{view}"

    def mark(self, shop_id: str, *views: str) -> None:
        """Queue the given views of a shop as stale."""
        for view in views:
            path = self.path(shop_id, view)
            if path not in self.pending:
                self.pending.append(path)

    def flush(self) -> list[str]:
        """Send every queued path to the listeners and clear the queue."""
        paths, self.pending = self.pending, []
        for path in paths:
            for listener in list(_listeners):
                try:
                    listener(path)
                except Exception:
                    logger.exception("Cache listener failed for %s", path)
            logger.debug("Invalidated %s", path)
        self.sent.extend(paths)
        return paths

    def discard(self) -> None:
        self.pending = []
