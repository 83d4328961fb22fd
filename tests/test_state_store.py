from __future__ import annotations

from typing import Any

import pytest
from pydantic import BaseModel

from channelbus.exceptions import MalformedPayloadError
from channelbus.state.store import ChannelStore


def _recorder() -> tuple[list[dict[str, Any]], Any]:
    seen: list[dict[str, Any]] = []
    return seen, seen.append


def test_read_missing_channel_returns_empty_dict() -> None:
    store = ChannelStore()
    assert store.read("nope") == {}
    assert not store.has("nope")


def test_write_merges_shallowly_and_keeps_absent_keys() -> None:
    store = ChannelStore()
    store.write("X", {"a": 1, "nested": {"x": 1}})
    store.write("X", {"b": 2, "nested": {"y": 2}})

    assert store.read("X") == {"a": 1, "b": 2, "nested": {"y": 2}}


def test_identical_write_notifies_once() -> None:
    store = ChannelStore()
    seen, listener = _recorder()
    store.subscribe("X", listener)

    assert store.write("X", {"count": 1}) is True
    assert store.write("X", {"count": 1}) is False

    assert seen == [{"count": 1}]


def test_reordered_nested_write_is_a_noop() -> None:
    store = ChannelStore()
    store.write("X", {"cfg": {"a": 1, "b": 2}})
    seen, listener = _recorder()
    store.subscribe("X", listener)
    seen.clear()

    assert store.write("X", {"cfg": {"b": 2, "a": 1}}) is False
    assert seen == []


def test_empty_write_on_missing_channel_does_not_create_it() -> None:
    store = ChannelStore()
    assert store.write("X", {}) is False
    assert not store.has("X")


def test_subscribe_replays_current_value_synchronously() -> None:
    store = ChannelStore()
    store.write("X", {"count": 1})
    seen, listener = _recorder()

    store.subscribe("X", listener)

    assert seen == [{"count": 1}]


def test_subscribe_without_value_does_not_replay_or_write() -> None:
    store = ChannelStore()
    seen, listener = _recorder()
    store.subscribe("X", listener)

    assert seen == []
    assert not store.has("X")


def test_unsubscribe_capability_only_removes_its_listener() -> None:
    store = ChannelStore()
    first, first_listener = _recorder()
    second, second_listener = _recorder()
    unsubscribe = store.subscribe("X", first_listener)
    store.subscribe("X", second_listener)

    unsubscribe()
    store.write("X", {"n": 1})
    unsubscribe()

    assert first == []
    assert second == [{"n": 1}]


def test_listeners_are_notified_in_subscription_order() -> None:
    store = ChannelStore()
    order: list[str] = []
    store.subscribe("X", lambda _: order.append("a"))
    store.subscribe("X", lambda _: order.append("b"))
    store.subscribe("X", lambda _: order.append("c"))

    store.write("X", {"n": 1})

    assert order == ["a", "b", "c"]


def test_listener_added_during_notification_waits_for_next_write() -> None:
    store = ChannelStore()
    late, late_listener = _recorder()
    added = False

    def _adder(_: dict[str, Any]) -> None:
        nonlocal added
        if not added:
            added = True
            store.subscribe("X", late_listener)

    store.subscribe("X", _adder)
    store.write("X", {"n": 1})
    # Replay on subscribe delivers the current value once.
    assert late == [{"n": 1}]

    store.write("X", {"n": 2})
    assert late == [{"n": 1}, {"n": 2}]


def test_failing_listener_does_not_block_others() -> None:
    store = ChannelStore()
    seen, listener = _recorder()

    def _boom(_: dict[str, Any]) -> None:
        raise RuntimeError("listener failure")

    store.subscribe("X", _boom)
    store.subscribe("X", listener)
    store.write("X", {"n": 1})

    assert seen == [{"n": 1}]


def test_failing_listener_propagates_when_configured() -> None:
    store = ChannelStore(propagate_listener_errors=True)

    def _boom(_: dict[str, Any]) -> None:
        raise RuntimeError("listener failure")

    store.subscribe("X", _boom)
    with pytest.raises(RuntimeError, match="listener failure"):
        store.write("X", {"n": 1})
    # The value was stored before listeners ran.
    assert store.read("X") == {"n": 1}


def test_listeners_cannot_mutate_cached_value() -> None:
    store = ChannelStore()
    store.subscribe("X", lambda value: value.update({"hacked": True}))
    store.write("X", {"n": 1})

    value = store.read("X")
    value["other"] = 1

    assert store.read("X") == {"n": 1}


def test_initialize_if_absent_is_idempotent() -> None:
    store = ChannelStore()
    assert store.initialize_if_absent("X", {"count": 0}) == {"count": 0}
    store.write("X", {"count": 3})

    assert store.initialize_if_absent("X", {"count": 0}) == {"count": 3}


def test_clear_removes_value_without_notifying() -> None:
    store = ChannelStore()
    seen, listener = _recorder()
    store.write("X", {"n": 1})
    store.subscribe("X", listener)
    seen.clear()

    assert store.clear("X") is True
    assert store.clear("X") is False
    assert seen == []
    assert store.read("X") == {}


def test_broadcast_notifies_merged_value_without_storing() -> None:
    store = ChannelStore()
    store.write("X", {"a": 1})
    seen, listener = _recorder()
    store.subscribe("X", listener)
    seen.clear()

    store.broadcast("X", {"b": 2})

    assert seen == [{"a": 1, "b": 2}]
    assert store.read("X") == {"a": 1}


def test_set_raw_replaces_whole_value() -> None:
    store = ChannelStore()
    store.write("X", {"a": 1, "b": 2})
    seen, listener = _recorder()
    store.subscribe("X", listener)
    seen.clear()

    assert store.set_raw("X", {"c": 3}) is True
    assert store.set_raw("X", {"c": 3}) is False

    assert store.read("X") == {"c": 3}
    assert seen == [{"c": 3}]


def test_set_raw_without_cache_only_broadcasts() -> None:
    store = ChannelStore()
    seen, listener = _recorder()
    store.subscribe("X", listener)

    store.set_raw("X", {"c": 3}, should_cache=False)

    assert seen == [{"c": 3}]
    assert not store.has("X")


def test_non_mapping_payload_is_rejected_before_mutation() -> None:
    store = ChannelStore()
    store.write("X", {"a": 1})

    with pytest.raises(MalformedPayloadError):
        store.write("X", ["not", "a", "record"])
    with pytest.raises(TypeError):
        store.write("X", "text")

    assert store.read("X") == {"a": 1}


def test_pydantic_model_patch_only_contributes_set_fields() -> None:
    class Profile(BaseModel):
        name: str = ""
        age: int = 0

    store = ChannelStore()
    store.write("X", {"name": "Ada", "age": 36})
    store.write("X", Profile(age=37))

    assert store.read("X") == {"name": "Ada", "age": 37}


def test_non_str_top_level_keys_are_rejected() -> None:
    store = ChannelStore()

    with pytest.raises(MalformedPayloadError, match="keys must be str"):
        store.write("K", {1: "a"})

    assert not store.has("K")


def test_nested_keys_of_different_types_are_distinct_changes() -> None:
    store = ChannelStore()
    seen, listener = _recorder()
    store.subscribe("K", listener)

    assert store.write("K", {"m": {1: "a"}}) is True
    assert store.write("K", {"m": {"1": "a"}}) is True

    assert store.read("K") == {"m": {"1": "a"}}
    assert len(seen) == 2
