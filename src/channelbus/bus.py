"""Channel bus: the context object that owns one store and its collaborators."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from channelbus.config import BusConfig
from channelbus.exceptions import InvalidChannelError, RegistrationError
from channelbus.handle import ChannelHandle
from channelbus.models.registration import ChannelRegistration
from channelbus.orchestrator import AsyncOrchestrator
from channelbus.state.producers import Producer, ProducerRegistry, Transform
from channelbus.state.store import ChannelStore
from channelbus.state.subscriptions import Listener, SubscriptionRegistry

_logger = logging.getLogger(__name__)


def _check_channel(channel: Any) -> str:
    if not isinstance(channel, str):
        raise InvalidChannelError(channel)
    return channel


class ChannelBus:
    """Value cache, pub/sub and fetch orchestration for named channels.

    Construct one bus at the application root and pass it to every
    consumer; buses never share state with each other.

    Usage::

        bus = ChannelBus()
        bus.register_channel("user", on_fetch=load_user, default_value={"name": ""})
        unsubscribe = bus.subscribe("user", print)
        record = await bus.invoke("user", 42)
    """

    def __init__(self, config: BusConfig | None = None) -> None:
        self._config = config or BusConfig()
        self._subscriptions = SubscriptionRegistry()
        self._store = ChannelStore(
            subscriptions=self._subscriptions,
            propagate_listener_errors=self._config.propagate_listener_errors,
            log_payloads=self._config.log_payloads,
            redact_keys=self._config.redact_keys,
        )
        self._producers = ProducerRegistry()
        self._orchestrator = AsyncOrchestrator(
            self._store,
            self._producers,
            test_mode=self._config.test_mode,
            concurrency=self._config.concurrency,
        )

    @property
    def config(self) -> BusConfig:
        return self._config

    @property
    def store(self) -> ChannelStore:
        return self._store

    @property
    def orchestrator(self) -> AsyncOrchestrator:
        return self._orchestrator

    @property
    def test_mode(self) -> bool:
        return self._orchestrator.test_mode

    @test_mode.setter
    def test_mode(self, enabled: bool) -> None:
        _logger.debug("Test mode %s", "enabled" if enabled else "disabled")
        self._orchestrator.test_mode = bool(enabled)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_channel(
        self,
        channel: str,
        registration: ChannelRegistration | Mapping[str, Any] | None = None,
        /,
        **options: Any,
    ) -> ChannelRegistration:
        """Wire a producer, a transform and an initial value to *channel*.

        *registration* may be a :class:`ChannelRegistration` or a mapping
        using either snake_case or camelCase keys; keyword *options*
        override it.  An existing value is never replaced by the default.

        Raises
        ------
        RegistrationError
            If the options do not validate.
        """
        channel = _check_channel(channel)
        if isinstance(registration, ChannelRegistration):
            fields = registration.model_dump(exclude_unset=True)
        else:
            fields = dict(registration or {})
        fields.update(options)
        try:
            config = ChannelRegistration.model_validate(fields)
        except ValidationError as exc:
            raise RegistrationError(f"Invalid registration for {channel!r}: {exc}", channel=channel) from exc

        if config.on_fetch is not None:
            self._producers.register_producer(channel, config.on_fetch)
        if config.on_response_transform is not None:
            self._producers.register_transform(channel, config.on_response_transform)
        if config.default_value is not None:
            self._store.initialize_if_absent(channel, config.default_value)
        if config.is_empty:
            _logger.warning("No configuration provided for channel=%s", channel)
        else:
            _logger.debug("Registered channel=%s", channel)
        return config

    def register_producer(self, channel: str, fn: Producer) -> None:
        self._producers.register_producer(_check_channel(channel), fn)

    def register_transform(self, channel: str, fn: Transform) -> None:
        self._producers.register_transform(_check_channel(channel), fn)

    def get_producer(self, channel: str) -> Producer | None:
        return self._producers.get_producer(_check_channel(channel))

    def get_transform(self, channel: str) -> Transform | None:
        return self._producers.get_transform(_check_channel(channel))

    # ------------------------------------------------------------------
    # Values and subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, channel: str, listener: Listener) -> Callable[[], None]:
        """Register *listener*; it is called immediately if the channel holds a value.

        Returns a callable that removes exactly this listener.
        """
        if not callable(listener):
            raise TypeError("listener must be callable")
        return self._store.subscribe(_check_channel(channel), listener)

    def unsubscribe(self, channel: str, listener: Listener) -> None:
        self._store.unsubscribe(_check_channel(channel), listener)

    def read(self, channel: str) -> dict[str, Any]:
        return self._store.read(_check_channel(channel))

    def has(self, channel: str) -> bool:
        return self._store.has(_check_channel(channel))

    def channels(self) -> list[str]:
        return self._store.channels()

    def write(self, channel: str, partial: Any, cache: bool = True) -> bool:
        """Merge *partial* into *channel* and notify listeners.

        With ``cache=False`` listeners receive the merged value but nothing
        is stored and the equality gate is skipped.  Returns whether
        listeners were notified.
        """
        channel = _check_channel(channel)
        if not cache:
            self._store.broadcast(channel, partial)
            return True
        return self._store.write(channel, partial)

    def set_raw(self, channel: str, value: Any, should_cache: bool = True) -> bool:
        return self._store.set_raw(_check_channel(channel), value, should_cache)

    def initialize_if_absent(self, channel: str, default: Any) -> dict[str, Any]:
        return self._store.initialize_if_absent(_check_channel(channel), default)

    def clear(self, channel: str) -> bool:
        return self._store.clear(_check_channel(channel))

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def invoke(self, channel: str, *args: Any, **kwargs: Any) -> dict[str, Any]:
        """Run the channel's producer; never raises for producer failures."""
        return await self._orchestrator.invoke(_check_channel(channel), *args, **kwargs)

    async def fetch(self, channel: str, *args: Any, **kwargs: Any) -> Any:
        """Call the producer and merge its raw result; producer errors propagate."""
        return await self._orchestrator.fetch(_check_channel(channel), *args, **kwargs)

    async def wait_for(
        self,
        channel: str,
        predicate: Callable[[dict[str, Any]], bool] | None = None,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Wait for a channel value matching *predicate*.

        The current value counts.  Returns ``None`` on timeout.  An exception
        raised by *predicate* is re-raised here.
        """
        channel = _check_channel(channel)
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[dict[str, Any]] = loop.create_future()

        def _listener(value: dict[str, Any]) -> None:
            if fut.done():
                return
            try:
                matched = predicate is None or predicate(value)
            except Exception as exc:
                fut.set_exception(exc)
                return
            if matched:
                fut.set_result(value)

        unsubscribe = self._store.subscribe(channel, _listener)
        try:
            return await asyncio.wait_for(fut, timeout)
        except TimeoutError:
            return None
        finally:
            unsubscribe()

    def channel(self, name: str) -> ChannelHandle[Any]:
        """Return a handle bound to *name* on this bus."""
        return ChannelHandle(self, _check_channel(name))
