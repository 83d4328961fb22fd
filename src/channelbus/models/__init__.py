"""Pydantic models for channelbus records and registration options."""

from channelbus.models._base import BusBaseModel
from channelbus.models.envelope import FetchEnvelope, FetchPhase, phase_of
from channelbus.models.registration import ChannelRegistration

__all__ = [
    "BusBaseModel",
    "ChannelRegistration",
    "FetchEnvelope",
    "FetchPhase",
    "phase_of",
]
