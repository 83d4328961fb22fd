from __future__ import annotations

from channelbus._redact import summarize_for_log


def test_summarize_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "count": 1,
        "Password": "pw",
        "session": {"accessToken": "abc", "user": "ada"},
        "items": [{"token": "t"}],
    }

    summary = summarize_for_log(payload)
    assert summary["Password"] == "<redacted>"
    assert summary["session"] == {"accessToken": "<redacted>", "user": "ada"}
    assert summary["items"] == [{"token": "<redacted>"}]
    assert summary["count"] == 1


def test_summarize_for_log_truncates_long_strings_and_collections() -> None:
    summary = summarize_for_log({"value": "x" * 600, "many": list(range(10))}, max_string=10, max_items=3)

    assert summary["value"].startswith("x" * 10)
    assert "<truncated>" in summary["value"]
    assert summary["many"] == [0, 1, 2, "<7 more>"]


def test_summarize_for_log_custom_keys() -> None:
    summary = summarize_for_log({"ssn": "123", "name": "ada"}, redact_keys=frozenset({"ssn"}))

    assert summary == {"ssn": "<redacted>", "name": "ada"}
