"""Tests for the JSON log formatter and token masking."""
import json
import logging

from app.core.logging import JsonFormatter, mask_token


def _record(**extra):
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "token_issued", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_includes_known_extra_fields():
    payload = json.loads(JsonFormatter().format(_record(payment_id="P1", attempt=2, unrelated="x")))
    assert payload["message"] == "token_issued"
    assert payload["level"] == "INFO"
    assert payload["payment_id"] == "P1"
    assert payload["attempt"] == 2
    assert "unrelated" not in payload


def test_mask_token_keeps_prefix_only():
    assert mask_token("ABCDEF0123456789ABCDEF0123456789") == "ABCDEF…"
    assert mask_token(None) is None
    assert mask_token("") == ""
