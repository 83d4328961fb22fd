"""Helpers for safe debug logging.

Channel payloads are opaque and may carry credentials fetched by producers.
This module redacts sensitive fields and truncates long values before a
payload is emitted in a DEBUG log record.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from channelbus.config import DEFAULT_REDACT_KEYS


def summarize_for_log(
    value: Any,
    *,
    redact_keys: frozenset[str] = DEFAULT_REDACT_KEYS,
    max_string: int = 256,
    max_items: int = 50,
    _depth: int = 0,
) -> Any:
    """Return a redacted, size-bounded copy of *value* suitable for debug logs."""
    if _depth > 10:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        summary: dict[str, Any] = {}
        for index, (k, v) in enumerate(value.items()):
            if index >= max_items:
                summary["…"] = f"<{len(value) - max_items} more>"
                break
            key = str(k)
            if key.lower() in redact_keys:
                summary[key] = "<redacted>"
            else:
                summary[key] = summarize_for_log(
                    v,
                    redact_keys=redact_keys,
                    max_string=max_string,
                    max_items=max_items,
                    _depth=_depth + 1,
                )
        return summary

    if isinstance(value, Sequence):
        items = [
            summarize_for_log(
                v,
                redact_keys=redact_keys,
                max_string=max_string,
                max_items=max_items,
                _depth=_depth + 1,
            )
            for v in list(value)[:max_items]
        ]
        if len(value) > max_items:
            items.append(f"<{len(value) - max_items} more>")
        return items

    return repr(value)
