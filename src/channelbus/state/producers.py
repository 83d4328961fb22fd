"""Per-channel producer and transform registration."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from channelbus.exceptions import RegistrationError

_logger = logging.getLogger(__name__)

Producer = Callable[..., Any]
Transform = Callable[[Any], Any]


class ProducerRegistry:
    """At most one producer and one transform per channel; last registration wins."""

    def __init__(self) -> None:
        self._producers: dict[str, Producer] = {}
        self._transforms: dict[str, Transform] = {}

    def register_producer(self, channel: str, fn: Producer) -> None:
        if not callable(fn):
            raise RegistrationError(f"Producer for {channel!r} is not callable", channel=channel)
        if channel in self._producers:
            _logger.debug("Replacing producer for channel=%s", channel)
        self._producers[channel] = fn

    def register_transform(self, channel: str, fn: Transform) -> None:
        if not callable(fn):
            raise RegistrationError(f"Transform for {channel!r} is not callable", channel=channel)
        if channel in self._transforms:
            _logger.debug("Replacing transform for channel=%s", channel)
        self._transforms[channel] = fn

    def get_producer(self, channel: str) -> Producer | None:
        return self._producers.get(channel)

    def get_transform(self, channel: str) -> Transform | None:
        return self._transforms.get(channel)

    def apply_transform(self, channel: str, raw: Any) -> Any:
        """Run the registered transform on *raw* (identity when none is registered)."""
        transform = self._transforms.get(channel)
        if transform is None:
            return raw
        return transform(raw)
