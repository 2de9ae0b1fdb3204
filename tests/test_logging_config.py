import json
import logging

from stylist_app.logging_config import (
    CORRELATION_ID,
    JsonFormatter,
    correlation_context,
    redact_for_log,
)


def test_redaction_masks_pii_keys_emails_and_urls() -> None:
    scrubbed = redact_for_log(
        {
            "email": "ada@example.com",
            "note": "contact ada@example.com",
            "source": "https://firebasestorage.googleapis.com/x.jpg",
            "nested": [{"token": "abc"}, 3],
            "count": 2,
        }
    )

    assert scrubbed["email"] == "[redacted]"
    assert scrubbed["note"] == "contact [redacted-email]"
    assert scrubbed["source"] == "[redacted-url]"
    assert scrubbed["nested"] == [{"token": "[redacted]"}, 3]
    assert scrubbed["count"] == 2


def test_json_formatter_includes_extra_fields_and_correlation_id() -> None:
    record = logging.LogRecord("stylist.test", logging.INFO, __file__, 1, "generation_started", None, None)
    record.event = "generation_started"
    record.event_id = "evt-1"
    record.image_url = "https://example.com/a.jpg"

    with correlation_context("corr-1"):
        payload = json.loads(JsonFormatter().format(record))

    assert payload["event"] == "generation_started"
    assert payload["event_id"] == "evt-1"
    assert payload["image_url"] == "[redacted-url]"
    assert payload["correlation_id"] == "corr-1"
    assert "lineno" not in payload


def test_correlation_context_restores_previous_value() -> None:
    token = CORRELATION_ID.set(None)
    try:
        with correlation_context("outer"):
            with correlation_context("inner") as inner:
                assert inner == "inner"
            assert CORRELATION_ID.get() == "outer"
        assert CORRELATION_ID.get() is None
    finally:
        CORRELATION_ID.reset(token)
