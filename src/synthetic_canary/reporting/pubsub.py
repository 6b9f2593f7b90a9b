"""Explicit publish/subscribe channel.

Subscribers are plain callables.  :meth:`Broadcaster.subscribe` returns an
unsubscribe handle, so no subscriber list ever needs to be global.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Broadcaster(Generic[T]):
    """Fan a published payload out to every current subscriber.

    A subscriber that raises is logged and skipped; the remaining
    subscribers still receive the payload.
    """

    def __init__(self, name: str = "broadcaster") -> None:
        self._name = name
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        """Register *callback* and return a handle that removes it again.

        Calling the handle more than once is harmless.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, payload: T) -> int:
        """Deliver *payload* to every subscriber.

        Returns
        -------
        int
            Number of subscribers that accepted the payload without raising.
        """
        delivered = 0
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Broadcaster %r: subscriber %r raised %s; skipping.",
                    self._name,
                    callback,
                    exc,
                )
                continue
            delivered += 1
        return delivered

    def __repr__(self) -> str:
        return f"Broadcaster(name={self._name!r}, subscribers={len(self._subscribers)})"


__all__ = ["Broadcaster", "Unsubscribe"]
