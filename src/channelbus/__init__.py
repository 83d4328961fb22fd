"""channelbus - channel-addressed value cache, pub/sub and async fetch orchestration."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("channelbus")
except PackageNotFoundError:
    __version__ = "0+local"
from channelbus.bus import ChannelBus
from channelbus.config import BusConfig, ConcurrencyPolicy
from channelbus.exceptions import (
    BusConfigError,
    ChannelBusError,
    InvalidChannelError,
    MalformedPayloadError,
    RegistrationError,
)
from channelbus.handle import ChannelHandle
from channelbus.models import ChannelRegistration, FetchEnvelope, FetchPhase, phase_of
from channelbus.orchestrator import AsyncOrchestrator
from channelbus.state.store import ChannelStore

__all__ = [
    "__version__",
    "AsyncOrchestrator",
    "BusConfig",
    "BusConfigError",
    "ChannelBus",
    "ChannelBusError",
    "ChannelHandle",
    "ChannelRegistration",
    "ChannelStore",
    "ConcurrencyPolicy",
    "FetchEnvelope",
    "FetchPhase",
    "InvalidChannelError",
    "MalformedPayloadError",
    "RegistrationError",
    "phase_of",
]
