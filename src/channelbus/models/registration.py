"""Channel registration options."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, field_validator

from channelbus.models._base import BusBaseModel


class ChannelRegistration(BusBaseModel):
    """Producer, transform and initial value wired to one channel.

    Accepts both snake_case and the camelCase spelling
    (``onFetch``, ``onResponseTransform``, ``defaultValue``).
    """

    on_fetch: Callable[..., Any] | None = None
    on_response_transform: Callable[[Any], Any] | None = None
    default_value: dict[str, Any] | None = None

    @field_validator("default_value", mode="before")
    @classmethod
    def _coerce_default(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return dict(value)
        if isinstance(value, BaseModel):
            return value.model_dump(by_alias=True)
        return value

    @property
    def is_empty(self) -> bool:
        return self.on_fetch is None and self.on_response_transform is None and self.default_value is None
