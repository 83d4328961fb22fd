"""Base model for channelbus records.

Stored channel values use camelCase control keys (``hasLoaded``), so every
model inherits ``alias_generator=to_camel`` and dumps by alias when turned
into a channel payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BusBaseModel(BaseModel):
    """Base for channelbus models.

    * camelCase aliases via ``alias_generator=to_camel``
    * construction by field name or alias
    * immutable instances
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_payload(self) -> dict[str, Any]:
        """Dump to a plain dict keyed by aliases."""
        return self.model_dump(by_alias=True)
