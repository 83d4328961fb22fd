"""Bus configuration for channelbus."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from channelbus.exceptions import BusConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


class ConcurrencyPolicy(StrEnum):
    """How simultaneous invocations for the same channel are handled."""

    RACE = "race"
    COALESCE = "coalesce"
    SERIALIZE = "serialize"


DEFAULT_REDACT_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "accesstoken",
        "refreshtoken",
        "secret",
        "authorization",
        "cookie",
    }
)


@dataclasses.dataclass(frozen=True)
class BusConfig:
    """Bus configuration.

    Parameters
    ----------
    test_mode : bool
        Initial value of the test-mode flag.  While set, invoking a channel
        that already holds a cached value resolves with that value without
        calling its producer.  Can be toggled later via
        ``ChannelBus.test_mode``.
    concurrency : ConcurrencyPolicy
        Handling of simultaneous invocations for one channel.  ``race``
        lets every call run (last write wins), ``coalesce`` shares one
        in-flight call, ``serialize`` queues calls behind a per-channel lock.
    propagate_listener_errors : bool
        Re-raise listener exceptions out of the triggering write instead of
        logging them and continuing with the next listener.
    log_payloads : bool
        Include (redacted) payloads in DEBUG log records.
    redact_keys : frozenset[str]
        Lower-case keys whose values are replaced by ``<redacted>`` when
        payloads are logged.
    """

    test_mode: bool = False
    concurrency: ConcurrencyPolicy = ConcurrencyPolicy.RACE
    propagate_listener_errors: bool = False
    log_payloads: bool = False
    redact_keys: frozenset[str] = DEFAULT_REDACT_KEYS

    def __post_init__(self) -> None:
        if not isinstance(self.concurrency, ConcurrencyPolicy):
            object.__setattr__(self, "concurrency", _parse_concurrency(self.concurrency))

    @classmethod
    def from_env(cls, **overrides: Any) -> BusConfig:
        """Create configuration from environment variables.

        Reads ``CHANNELBUS_TEST_MODE``, ``CHANNELBUS_CONCURRENCY``,
        ``CHANNELBUS_PROPAGATE_LISTENER_ERRORS`` and
        ``CHANNELBUS_LOG_PAYLOADS``.  Explicit keyword arguments override
        environment values.

        Raises
        ------
        BusConfigError
            If ``CHANNELBUS_CONCURRENCY`` names an unknown policy.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        if "test_mode" not in overrides:
            config_kwargs["test_mode"] = _env_bool(env.get("CHANNELBUS_TEST_MODE"), False)

        concurrency_env = env.get("CHANNELBUS_CONCURRENCY")
        if concurrency_env is not None and "concurrency" not in overrides:
            config_kwargs["concurrency"] = _parse_concurrency(concurrency_env)

        if "propagate_listener_errors" not in overrides:
            config_kwargs["propagate_listener_errors"] = _env_bool(
                env.get("CHANNELBUS_PROPAGATE_LISTENER_ERRORS"),
                False,
            )

        if "log_payloads" not in overrides:
            config_kwargs["log_payloads"] = _env_bool(env.get("CHANNELBUS_LOG_PAYLOADS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


def _parse_concurrency(value: Any) -> ConcurrencyPolicy:
    try:
        return ConcurrencyPolicy(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in ConcurrencyPolicy)
        raise BusConfigError(f"Unknown concurrency policy {value!r} (expected one of: {allowed})") from None
