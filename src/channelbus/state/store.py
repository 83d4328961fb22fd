"""In-memory channel store.

This is the only component allowed to mutate channel values.  Every change
goes through the merge policy and the equality gate before listeners are
notified.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from typing import Any

from channelbus._redact import summarize_for_log
from channelbus.config import DEFAULT_REDACT_KEYS
from channelbus.state.policy import coerce_patch, is_noop_write, merge_patch
from channelbus.state.subscriptions import Listener, SubscriptionRegistry

_logger = logging.getLogger(__name__)


class ChannelStore:
    """Last known value per channel, with change notification.

    Values are copied on the way in and on the way out, so neither writers
    nor listeners can mutate a cached value in place.  All listeners of one
    notification pass share a single copy.
    """

    def __init__(
        self,
        *,
        subscriptions: SubscriptionRegistry | None = None,
        propagate_listener_errors: bool = False,
        log_payloads: bool = False,
        redact_keys: frozenset[str] = DEFAULT_REDACT_KEYS,
    ) -> None:
        self._values: dict[str, dict[str, Any]] = {}
        self._subscriptions = subscriptions if subscriptions is not None else SubscriptionRegistry()
        self._propagate_listener_errors = propagate_listener_errors
        self._log_payloads = log_payloads
        self._redact_keys = redact_keys

    @property
    def subscriptions(self) -> SubscriptionRegistry:
        return self._subscriptions

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def has(self, channel: str) -> bool:
        return channel in self._values

    def channels(self) -> list[str]:
        return list(self._values)

    def read(self, channel: str) -> dict[str, Any]:
        """Return a copy of the stored value, or an empty dict."""
        value = self._values.get(channel)
        if value is None:
            return {}
        return copy.deepcopy(value)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write(self, channel: str, partial: Any) -> bool:
        """Merge *partial* into the channel and notify listeners.

        Returns ``False`` (no mutation, no notification) when the merged
        value is structurally identical to the previous one.
        """
        patch = coerce_patch(partial, channel=channel)
        previous = self._values.get(channel, {})
        merged = merge_patch(previous, patch)
        if is_noop_write(previous, merged):
            _logger.debug("No-op write dropped channel=%s", channel)
            return False
        self._values[channel] = merged
        self._log_write("write", channel, patch)
        self._notify(channel, merged)
        return True

    def broadcast(self, channel: str, partial: Any) -> dict[str, Any]:
        """Notify listeners with the merged value without storing it."""
        patch = coerce_patch(partial, channel=channel)
        merged = merge_patch(self._values.get(channel, {}), patch)
        self._log_write("broadcast", channel, patch)
        self._notify(channel, merged)
        return copy.deepcopy(merged)

    def set_raw(self, channel: str, value: Any, should_cache: bool = True) -> bool:
        """Replace the whole value of *channel*, bypassing the merge.

        With ``should_cache=False`` listeners receive *value* and nothing is
        stored.  Returns whether listeners were notified.
        """
        record = copy.deepcopy(coerce_patch(value, channel=channel))
        if not should_cache:
            self._log_write("broadcast", channel, record)
            self._notify(channel, record)
            return True
        if channel in self._values and is_noop_write(self._values[channel], record):
            _logger.debug("No-op raw write dropped channel=%s", channel)
            return False
        self._values[channel] = record
        self._log_write("set_raw", channel, record)
        self._notify(channel, record)
        return True

    def initialize_if_absent(self, channel: str, default: Any) -> dict[str, Any]:
        """Store *default* only if the channel has no value yet; return the current value."""
        if channel not in self._values:
            self._values[channel] = copy.deepcopy(coerce_patch(default, channel=channel))
            _logger.debug("Initialized channel=%s", channel)
        return self.read(channel)

    def clear(self, channel: str) -> bool:
        """Drop the stored value.  Listeners are not notified."""
        if self._values.pop(channel, None) is None:
            return False
        _logger.debug("Cleared channel=%s", channel)
        return True

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, channel: str, listener: Listener) -> Callable[[], None]:
        """Register *listener*; replay the current value to it if one exists."""
        self._subscriptions.add(channel, listener)
        if channel in self._values:
            self._call_listener(channel, listener, copy.deepcopy(self._values[channel]))

        def _unsubscribe() -> None:
            self._subscriptions.remove(channel, listener)

        return _unsubscribe

    def unsubscribe(self, channel: str, listener: Listener) -> None:
        self._subscriptions.remove(channel, listener)

    def _notify(self, channel: str, value: Mapping[str, Any]) -> None:
        listeners = self._subscriptions.snapshot(channel)
        if not listeners:
            return
        delivered = copy.deepcopy(dict(value))
        for listener in listeners:
            self._call_listener(channel, listener, delivered)

    def _call_listener(self, channel: str, listener: Listener, value: dict[str, Any]) -> None:
        if self._propagate_listener_errors:
            listener(value)
            return
        try:
            listener(value)
        except Exception:
            _logger.warning("Listener failed for channel=%s", channel, exc_info=True)

    def _log_write(self, kind: str, channel: str, patch: Mapping[str, Any]) -> None:
        if not _logger.isEnabledFor(logging.DEBUG):
            return
        if self._log_payloads:
            _logger.debug(
                "%s channel=%s payload=%s",
                kind,
                channel,
                summarize_for_log(patch, redact_keys=self._redact_keys),
            )
        else:
            _logger.debug("%s channel=%s keys=%s", kind, channel, sorted(map(str, patch)))
