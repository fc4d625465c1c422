"""Collection cache with subscriptions.

Each named collection holds one immutable value (the people registry is a
``dict[str, Person]`` that is never modified in place). Writers swap the
whole value; readers always see either the old or the new reference.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

PEOPLE = "people"
UPDATES = "updates"

Subscriber = Callable[[str, Any], None]


class CollectionCache:
    """Named collections swapped atomically, with a stale flag per collection."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._stale: set[str] = set()
        self._subscribers: list[Subscriber] = []

    def get(self, collection: str, default: Any = None) -> Any:
        return self._values.get(collection, default)

    def set(self, collection: str, value: Any) -> None:
        """Publish a new value and notify subscribers if the reference changed."""
        if self._values.get(collection) is value and collection in self._values:
            return
        self._values[collection] = value
        self._notify(collection, value)

    def __contains__(self, collection: str) -> bool:
        return collection in self._values

    def is_stale(self, collection: str) -> bool:
        return collection in self._stale

    def mark_stale(self, collection: str) -> None:
        self._stale.add(collection)
        logger.info("collection_marked_stale", collection=collection)

    def mark_fresh(self, collection: str) -> None:
        self._stale.discard(collection)

    def invalidate(self, collection: str) -> None:
        """Drop a collection; the next sync repopulates it."""
        self._values.pop(collection, None)
        self._stale.discard(collection)
        self._notify(collection, None)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback(collection, value)``; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, collection: str, value: Any) -> None:
        for callback in list(self._subscribers):
            try:
                callback(collection, value)
            except Exception:
                # a failing listener must not break the writer
                logger.exception("subscriber_failed", collection=collection)
