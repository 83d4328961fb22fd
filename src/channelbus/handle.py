"""Typed view of a single channel."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast

if TYPE_CHECKING:
    from channelbus.bus import ChannelBus

T = TypeVar("T", bound=Mapping[str, Any])


class ChannelHandle(Generic[T]):
    """A channel name bound to a bus, typed by its payload shape.

    ``T`` is usually a ``TypedDict``::

        class Counter(TypedDict, total=False):
            count: int

        counter: ChannelHandle[Counter] = ChannelHandle(bus, "counter")
        counter.update({"count": 1})
    """

    def __init__(self, bus: ChannelBus, channel: str) -> None:
        self._bus = bus
        self._channel = channel

    def __repr__(self) -> str:
        return f"ChannelHandle({self._channel!r})"

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def value(self) -> T:
        return cast(T, self._bus.read(self._channel))

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        return self._bus.subscribe(self._channel, listener)

    def emit(self, partial: Mapping[str, Any], cache: bool = True) -> bool:
        return self._bus.write(self._channel, partial, cache)

    def update(self, partial: Mapping[str, Any]) -> T:
        """Merge *partial* and return the resulting value."""
        self._bus.write(self._channel, partial)
        return self.value

    async def refetch(self, *args: Any, **kwargs: Any) -> T:
        return cast(T, await self._bus.invoke(self._channel, *args, **kwargs))

    async def fetch(self, *args: Any, **kwargs: Any) -> T | None:
        return cast("T | None", await self._bus.fetch(self._channel, *args, **kwargs))

    def clear(self) -> bool:
        return self._bus.clear(self._channel)
