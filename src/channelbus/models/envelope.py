"""Fetch envelope written into a channel while an invocation runs."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import Field

from channelbus.models._base import BusBaseModel


class FetchPhase(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class FetchEnvelope(BusBaseModel):
    """Control fields of an invocation, plus the shaped payload on success.

    ``error`` is ``False`` on success, otherwise the failure message (or
    ``True`` when the failure carried no message).
    """

    loading: bool = False
    error: bool | str = False
    has_loaded: bool = False
    payload: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @classmethod
    def loading_state(cls) -> FetchEnvelope:
        return cls(loading=True, error=False, has_loaded=False)

    @classmethod
    def success(cls, payload: Mapping[str, Any]) -> FetchEnvelope:
        return cls(loading=False, error=False, has_loaded=True, payload=dict(payload))

    @classmethod
    def failure(cls, exc: BaseException) -> FetchEnvelope:
        message = str(exc)
        return cls(loading=False, error=message or True, has_loaded=True)

    @property
    def phase(self) -> FetchPhase:
        if self.loading:
            return FetchPhase.LOADING
        if self.error is not False:
            return FetchPhase.ERROR
        if self.has_loaded:
            return FetchPhase.SUCCESS
        return FetchPhase.IDLE

    def to_payload(self) -> dict[str, Any]:
        """Control fields followed by payload fields (payload keys win on clash)."""
        record = super().to_payload()
        record.update(self.payload)
        return record


def phase_of(value: Mapping[str, Any]) -> FetchPhase:
    """Classify a stored channel value by its control fields."""
    if value.get("loading"):
        return FetchPhase.LOADING
    error = value.get("error", False)
    if error is not False and error is not None and error != "":
        return FetchPhase.ERROR
    if value.get("hasLoaded"):
        return FetchPhase.SUCCESS
    return FetchPhase.IDLE
