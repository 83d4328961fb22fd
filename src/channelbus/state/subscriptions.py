"""Per-channel ordered listener lists."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

Listener = Callable[[Any], None]


class SubscriptionRegistry:
    """Ordered listeners per channel.

    Removal matches by equality, which for plain functions is identity and
    for bound methods compares the underlying function and instance.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def add(self, channel: str, listener: Listener) -> None:
        self._listeners.setdefault(channel, []).append(listener)

    def remove(self, channel: str, listener: Listener) -> bool:
        """Remove the first entry equal to *listener*; return whether one was found."""
        listeners = self._listeners.get(channel)
        if not listeners:
            return False
        try:
            listeners.remove(listener)
        except ValueError:
            return False
        if not listeners:
            del self._listeners[channel]
        return True

    def snapshot(self, channel: str) -> tuple[Listener, ...]:
        """Listeners for *channel* in subscription order.

        Notification iterates over this snapshot: listeners added during a
        pass wait for the next write, listeners removed during a pass are
        still called in it.
        """
        return tuple(self._listeners.get(channel, ()))

    def count(self, channel: str) -> int:
        return len(self._listeners.get(channel, ()))

    def channels(self) -> list[str]:
        return list(self._listeners)
