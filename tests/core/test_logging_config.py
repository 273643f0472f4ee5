"""
Tests for logging configuration.
"""

import json
import logging

from apply4me.core.logging_config import (
    JsonFormatter,
    SensitiveDataFilter,
    build_logging_config,
)


def _record(msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="apply4me.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestBuildLoggingConfig:
    def test_production_defaults(self):
        config = build_logging_config("production")

        assert config["root"]["level"] == "INFO"
        assert config["handlers"]["console"]["formatter"] == "json"

    def test_development_defaults(self):
        config = build_logging_config("development")

        assert config["root"]["level"] == "DEBUG"
        assert config["handlers"]["console"]["formatter"] == "plain"

    def test_explicit_overrides(self):
        config = build_logging_config("development", log_level="warning", log_format="json")

        assert config["root"]["level"] == "WARNING"
        assert config["handlers"]["console"]["formatter"] == "json"


class TestSensitiveDataFilter:
    def test_masks_bearer_token(self):
        record = _record("Authorization: Bearer abc.def-ghi")

        assert SensitiveDataFilter().filter(record) is True
        assert record.msg == "Authorization: Bearer [REDACTED]"

    def test_leaves_other_messages(self):
        record = _record("Payment verified for application 42")
        SensitiveDataFilter().filter(record)
        assert record.msg == "Payment verified for application 42"


class TestJsonFormatter:
    def test_one_object_per_record(self):
        line = JsonFormatter().format(_record("Broadcast sent"))

        payload = json.loads(line)
        assert payload["level"] == "INFO"
        assert payload["logger"] == "apply4me.test"
        assert payload["message"] == "Broadcast sent"
