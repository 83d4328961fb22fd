"""Async fetch orchestration.

One invocation drives a channel through Loading and then Success or Error,
writing each phase through the channel store.  Producer and transform
failures are contained and surface only as data in the ``error`` field.
"""

from __future__ import annotations

import asyncio
import copy
import functools
import inspect
import logging
from typing import Any

from channelbus.config import ConcurrencyPolicy
from channelbus.models.envelope import FetchEnvelope
from channelbus.state.policy import coerce_patch
from channelbus.state.producers import Producer, ProducerRegistry
from channelbus.state.store import ChannelStore

_logger = logging.getLogger(__name__)


async def _call_producer(producer: Producer, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
    result = producer(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


class AsyncOrchestrator:
    """Runs registered producers against the channel store.

    ``test_mode`` is read on every call: while it is set, a channel that
    already holds a value resolves with that value and its producer is never
    called.
    """

    def __init__(
        self,
        store: ChannelStore,
        producers: ProducerRegistry,
        *,
        test_mode: bool = False,
        concurrency: ConcurrencyPolicy = ConcurrencyPolicy.RACE,
    ) -> None:
        self._store = store
        self._producers = producers
        self._concurrency = concurrency
        self._inflight: dict[str, asyncio.Task[dict[str, Any]]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self.test_mode = test_mode

    @property
    def concurrency(self) -> ConcurrencyPolicy:
        return self._concurrency

    def should_bypass(self, channel: str) -> bool:
        return self.test_mode and self._store.has(channel)

    def inflight_channels(self) -> list[str]:
        return [channel for channel, task in self._inflight.items() if not task.done()]

    async def invoke(self, channel: str, *args: Any, **kwargs: Any) -> dict[str, Any]:
        """Run the channel's producer and return the terminal record.

        Resolves with the cached value, without any state transition, when
        no producer is registered or the test-mode bypass applies.
        """
        if self.should_bypass(channel):
            _logger.debug("Test mode bypass channel=%s", channel)
            return self._store.read(channel)

        producer = self._producers.get_producer(channel)
        if producer is None:
            _logger.debug("No producer registered channel=%s", channel)
            return self._store.read(channel)

        if self._concurrency is ConcurrencyPolicy.COALESCE:
            return await self._invoke_coalesced(channel, producer, args, kwargs)
        if self._concurrency is ConcurrencyPolicy.SERIALIZE:
            return await self._invoke_serialized(channel, args, kwargs)
        return await self._run(channel, producer, args, kwargs)

    async def fetch(self, channel: str, *args: Any, **kwargs: Any) -> Any:
        """Call the producer directly and merge a non-``None`` result into the channel.

        No Loading envelope and no transform are involved, and producer
        exceptions propagate to the caller.
        """
        if self.should_bypass(channel):
            _logger.debug("Test mode bypass channel=%s", channel)
            return self._store.read(channel)

        producer = self._producers.get_producer(channel)
        if producer is None:
            return None

        data = await _call_producer(producer, args, kwargs)
        if data is not None:
            self._store.write(channel, data)
        return data

    async def _invoke_coalesced(
        self,
        channel: str,
        producer: Producer,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        task = self._inflight.get(channel)
        if task is None or task.done():
            task = asyncio.create_task(self._run(channel, producer, args, kwargs))
            self._inflight[channel] = task
            task.add_done_callback(functools.partial(self._forget_inflight, channel))
        else:
            _logger.debug("Joining in-flight invocation channel=%s", channel)
        # Shielded so one cancelled waiter does not cancel the shared call.
        record = await asyncio.shield(task)
        return copy.deepcopy(record)

    def _forget_inflight(self, channel: str, task: asyncio.Task[dict[str, Any]]) -> None:
        if self._inflight.get(channel) is task:
            del self._inflight[channel]

    async def _invoke_serialized(
        self,
        channel: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        lock = self._locks.get(channel)
        if lock is None:
            lock = self._locks[channel] = asyncio.Lock()
        self._lock_users[channel] = self._lock_users.get(channel, 0) + 1
        try:
            async with lock:
                producer = self._producers.get_producer(channel)
                if producer is None:
                    return self._store.read(channel)
                return await self._run(channel, producer, args, kwargs)
        finally:
            # Locks are dropped once no invocation holds or awaits them.
            remaining = self._lock_users[channel] - 1
            if remaining:
                self._lock_users[channel] = remaining
            else:
                del self._lock_users[channel]
                del self._locks[channel]

    async def _run(
        self,
        channel: str,
        producer: Producer,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        self._store.write(channel, FetchEnvelope.loading_state().to_payload())
        _logger.debug("Loading channel=%s", channel)

        try:
            raw = await _call_producer(producer, args, kwargs)
            shaped = self._producers.apply_transform(channel, raw)
            payload = {} if shaped is None else coerce_patch(shaped, channel=channel)
            # Copied here so an uncopyable payload ends up as an error record.
            record = FetchEnvelope.success(copy.deepcopy(payload)).to_payload()
        except Exception as exc:
            _logger.debug("Producer failed channel=%s", channel, exc_info=True)
            record = FetchEnvelope.failure(exc).to_payload()
        else:
            _logger.debug("Loaded channel=%s", channel)

        self._store.write(channel, record)
        return record
