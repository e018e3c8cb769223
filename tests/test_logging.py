import json
import logging

from core.logging import JsonFormatter, get_logger


def test_get_logger_idempotent() -> None:
    logger1 = get_logger("test.logger")
    handlers_before = list(logger1.handlers)
    logger2 = get_logger("test.logger")
    assert logger1 is logger2
    assert len(logger1.handlers) == len(handlers_before)


def test_json_formatter_extra_whitelist() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "bulk save ok", None, None)
    record.save_summary = {"ok": True, "submitted": 2}
    record.not_whitelisted = "skip"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "bulk save ok"
    assert payload["level"] == "INFO"
    assert payload["save_summary"] == {"ok": True, "submitted": 2}
    assert "not_whitelisted" not in payload
    assert payload["ts"].endswith("Z")


def test_json_formatter_whitelist_only_session_fields() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "bootstrap ok", None, None)
    record.bootstrap_stats = {"matches": 3}
    record.fetch_stats = {"latency_ms": 1.0}
    payload = json.loads(JsonFormatter().format(record))
    assert payload["bootstrap_stats"] == {"matches": 3}
    assert "fetch_stats" not in payload
