# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for structured logging and redaction."""

from __future__ import annotations

import json
import logging

from lockward.core.logging import JsonFormatter, TextFormatter, redact_sensitive, setup_logging


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("lockward.test", logging.WARNING, __file__, 1, msg, args, None)


class TestRedaction:
    def test_bearer_token(self) -> None:
        out = redact_sensitive("Authorization: Bearer abcdefghijklmnop")
        assert "abcdefghijklmnop" not in out
        assert "Bearer abcd[REDACTED]" in out

    def test_key_value_pairs(self) -> None:
        out = redact_sensitive("password=hunter2 api_key: xyz123 user=bob")
        assert "hunter2" not in out
        assert "xyz123" not in out
        assert "user=bob" in out

    def test_powershell_credential(self) -> None:
        out = redact_sensitive("Invoke-Command -Credential $cred -ComputerName ws01")
        assert "$cred" not in out
        assert "-ComputerName ws01" in out


class TestFormatters:
    def test_json_formatter(self) -> None:
        line = JsonFormatter().format(_record("login with token=%s", "s3cr3t"))
        payload = json.loads(line)
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "lockward.test"
        assert "s3cr3t" not in payload["message"]

    def test_json_formatter_carries_context(self) -> None:
        record = _record("GET /api/v1/health 200")
        record.request_id = "req-42"
        record.command = "audit:getStats"
        payload = json.loads(JsonFormatter().format(record))
        assert payload["request_id"] == "req-42"
        assert payload["command"] == "audit:getStats"
        assert "audit_id" not in payload

    def test_text_formatter(self) -> None:
        fmt = TextFormatter("%(levelname)s %(message)s")
        assert fmt.format(_record("secret: abc")) == "WARNING secret: [REDACTED]"

    def test_setup_logging_replaces_handlers(self) -> None:
        logger = logging.getLogger("lockward")
        saved_handlers, saved_level = logger.handlers[:], logger.level
        try:
            setup_logging("DEBUG", "text")
            setup_logging("WARNING", "json")
            assert len(logger.handlers) == 1
            assert isinstance(logger.handlers[0].formatter, JsonFormatter)
            assert logger.level == logging.WARNING
        finally:
            logger.handlers[:] = saved_handlers
            logger.setLevel(saved_level)
