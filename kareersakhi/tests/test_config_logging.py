"""Tests for configuration validation and structured logging."""

import json
import logging
from types import SimpleNamespace

import pytest

from kareersakhi.core.config import validate_config
from kareersakhi.core.logging import JsonFormatter, latency_bucket_ms, log_event, request_id_ctx_var


def make_settings(**overrides):
    defaults = dict(
        ANALYSIS_SERVICE_URL="http://analysis.local",
        RAZORPAY_KEY_ID="rzp_test",
        RAZORPAY_KEY_SECRET="secret",
        MAX_FILE_SIZE_MB=5,
    )
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def test_complete_config_passes():
    assert validate_config(strict=True, settings_obj=make_settings()) is True


def test_missing_keys_raise_in_strict_mode():
    with pytest.raises(RuntimeError) as exc:
        validate_config(strict=True, settings_obj=make_settings(RAZORPAY_KEY_SECRET=None))
    assert "RAZORPAY_KEY_SECRET" in str(exc.value)
    assert "secret" not in str(exc.value).replace("RAZORPAY_KEY_SECRET", "")


def test_missing_keys_warn_when_not_strict(caplog):
    with caplog.at_level(logging.WARNING, logger="kareersakhi"):
        validate_config(strict=False, settings_obj=make_settings(ANALYSIS_SERVICE_URL=None))
    assert any("ANALYSIS_SERVICE_URL" in r.getMessage() for r in caplog.records)


def test_non_positive_upload_limit_rejected():
    with pytest.raises(RuntimeError):
        validate_config(strict=True, settings_obj=make_settings(MAX_FILE_SIZE_MB=0))


def test_log_event_carries_request_id_and_fields(caplog):
    token = request_id_ctx_var.set("rid-42")
    try:
        with caplog.at_level(logging.INFO, logger="kareersakhi"):
            log_event("info", "billing.order_created", order_id="order_1", extra={"tier": "premium"})
    finally:
        request_id_ctx_var.reset(token)

    record = next(r for r in caplog.records if r.getMessage() == "billing.order_created")
    assert record.request_id == "rid-42"
    assert record.order_id == "order_1"
    assert record.tier == "premium"


def test_log_event_truncates_long_values(caplog):
    with caplog.at_level(logging.INFO, logger="kareersakhi"):
        log_event("info", "analysis.completed", extra={"artifact": "x" * 2000})
    record = next(r for r in caplog.records if r.getMessage() == "analysis.completed")
    assert record.artifact.endswith("...<truncated>")


def test_json_formatter_includes_extras():
    record = logging.LogRecord("kareersakhi", logging.INFO, __file__, 1, "request.complete", (), None)
    record.request_id = "rid-1"
    record.status = 200
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "request.complete"
    assert payload["request_id"] == "rid-1"
    assert payload["status"] == 200


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
