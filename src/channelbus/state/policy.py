"""Merge and change-detection policy.

Pure functions only; the store decides when to call them.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from channelbus._canonical import structurally_equal
from channelbus.exceptions import MalformedPayloadError


def coerce_patch(value: Any, *, channel: str = "") -> dict[str, Any]:
    """Turn a partial value into a plain dict, or reject it.

    Pydantic models contribute only the fields that were explicitly set.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_unset=True)
    if not isinstance(value, Mapping):
        raise MalformedPayloadError(
            f"Channel payload must be a mapping or pydantic model, got {type(value).__name__}",
            channel=channel,
        )
    bad_keys = [key for key in value if not isinstance(key, str)]
    if bad_keys:
        raise MalformedPayloadError(
            f"Channel payload keys must be str, got {bad_keys[0]!r} ({type(bad_keys[0]).__name__})",
            channel=channel,
        )
    return dict(value)


def merge_patch(previous: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow union of *previous* and *patch*; keys in the patch overwrite.

    Keys absent from the patch are kept.  Neither argument is mutated.
    """
    merged = dict(previous)
    merged.update(copy.deepcopy(dict(patch)))
    return merged


def is_noop_write(previous: Mapping[str, Any], merged: Mapping[str, Any]) -> bool:
    """A write is dropped when the merged value encodes like the previous one."""
    return structurally_equal(previous, merged)
