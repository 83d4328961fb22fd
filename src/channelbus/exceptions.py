"""Custom exception hierarchy for channelbus."""

from __future__ import annotations


class ChannelBusError(Exception):
    """Base exception for all channelbus errors."""


class BusConfigError(ChannelBusError):
    """Invalid or missing configuration."""


class InvalidChannelError(ChannelBusError, TypeError):
    """Channel identifier is not a string."""

    def __init__(self, channel: object) -> None:
        self.channel = channel
        super().__init__(f"Channel must be a str, got {type(channel).__name__}")


class MalformedPayloadError(ChannelBusError, TypeError):
    """A payload is not a record (mapping or pydantic model).

    Raised at the API boundary before the store is touched, so a bad
    write can never corrupt a cached value.
    """

    def __init__(self, message: str, *, channel: str = "") -> None:
        self.channel = channel
        super().__init__(message)


class RegistrationError(ChannelBusError):
    """Channel registration rejected (non-callable producer, bad default, ...)."""

    def __init__(self, message: str, *, channel: str = "") -> None:
        self.channel = channel
        super().__init__(message)
