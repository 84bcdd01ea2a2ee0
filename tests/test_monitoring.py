"""Tests for error-report scrubbing and structured logging."""
from __future__ import annotations

import json
import logging

from paymaster_relay.logging_config import JSONFormatter
from paymaster_relay.monitoring import before_send_event, init_sentry, scrub

KEY = "0x" + "4f" * 32


def test_scrub_masks_key_material():
    assert scrub(f"invalid key {KEY}") == "invalid key [REDACTED]"
    assert scrub("0xabc is fine") == "0xabc is fine"


def test_ping_events_dropped():
    event = {"request": {"url": "http://relay/ping"}}
    assert before_send_event(event, {}) is None


def test_events_scrubbed_and_tagged():
    event = {
        "message": f"failed with {KEY}",
        "exception": {"values": [{"type": "ValueError", "value": f"bad {KEY}"}]},
    }
    processed = before_send_event(event, {})

    assert KEY not in processed["message"]
    assert processed["exception"]["values"][0]["value"] == "bad [REDACTED]"
    assert processed["tags"]["service"] == "paymaster-relay"


def test_init_sentry_without_dsn(monkeypatch):
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    assert init_sentry(None) is False


def test_json_formatter():
    record = logging.LogRecord("paymaster_relay.handlers", logging.INFO, __file__, 1, "ready %s", ("base",), None)
    record.chain = "base"
    payload = json.loads(JSONFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "paymaster_relay.handlers"
    assert payload["message"] == "ready base"
    assert payload["chain"] == "base"
