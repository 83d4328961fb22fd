"""Order-independent structural serialization.

The store's equality gate compares the canonical encoding of the previous
and the merged value.  Mapping key order never affects the encoding, at any
nesting depth.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping, Sequence, Set
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from pydantic import BaseModel


def _sort_key(item: Any) -> str:
    return json.dumps(item, sort_keys=True, default=repr)


def _normalize(value: Any, _depth: int = 0) -> Any:
    """Convert *value* into plain JSON types with deterministic ordering."""
    if _depth > 64:
        return repr(value)

    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, Enum):
        return _normalize(value.value, _depth + 1)

    if isinstance(value, BaseModel):
        return _normalize(value.model_dump(mode="json", by_alias=True), _depth + 1)

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _normalize(dataclasses.asdict(value), _depth + 1)

    if isinstance(value, Mapping):
        if all(isinstance(k, str) for k in value):
            return {k: _normalize(v, _depth + 1) for k, v in value.items()}
        # Non-str keys keep their type tag, so 1 and "1" never collide.
        pairs = [
            [type(k).__name__, _normalize(k, _depth + 1), _normalize(v, _depth + 1)] for k, v in value.items()
        ]
        return ["<mapping>", sorted(pairs, key=_sort_key)]

    if isinstance(value, (datetime, date, time)):
        return value.isoformat()

    if isinstance(value, (bytes, bytearray)):
        return value.hex()

    if isinstance(value, Set):
        items = [_normalize(v, _depth + 1) for v in value]
        return sorted(items, key=_sort_key)

    if isinstance(value, Sequence):
        return [_normalize(v, _depth + 1) for v in value]

    return repr(value)


def canonical_json(value: Any) -> str:
    """Return a stable, sorted-key JSON encoding of *value*."""
    return json.dumps(
        _normalize(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=repr,
    )


def structurally_equal(left: Any, right: Any) -> bool:
    """Return ``True`` when both values have the same canonical encoding."""
    if left is right:
        return True
    return canonical_json(left) == canonical_json(right)
