"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
import sys

from khoborer_khoj import utils
from khoborer_khoj.config import LangfuseConfig, LoggingConfig
from khoborer_khoj.utils.logging import (
    JsonlFormatter,
    log_event,
    redact_text,
    setup_llm_logger,
    setup_logging,
    truncate_text,
)


def test_log_event_writes_extra_fields_as_jsonl(tmp_path):
    logger = setup_logging(LoggingConfig(console=False, filename="run.jsonl"), tmp_path)

    log_event(logger, "Saved: Flood", event="article_saved", url="https://a", attempt=2)
    for handler in logger.handlers:
        handler.flush()

    [line] = (tmp_path / "run.jsonl").read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["message"] == "Saved: Flood"
    assert record["event"] == "article_saved"
    assert record["url"] == "https://a"
    assert record["attempt"] == 2
    assert record["level"] == "INFO"
    assert "lineno" not in record


def test_log_event_ignores_missing_logger():
    log_event(None, "nothing", event="noop")


def test_setup_logging_is_idempotent(tmp_path):
    cfg = LoggingConfig(console=True, file=True)

    setup_logging(cfg, tmp_path)
    logger = setup_logging(cfg, tmp_path)

    assert len(logger.handlers) == 2
    assert logger.propagate is False


def test_llm_logger_only_when_enabled(tmp_path):
    assert setup_llm_logger(LoggingConfig(), tmp_path) is None

    llm_logger = setup_llm_logger(LoggingConfig(llm_log_enabled=True), tmp_path)

    assert llm_logger is not None
    assert isinstance(llm_logger.handlers[0].formatter, JsonlFormatter)


def test_redaction_and_truncation():
    assert redact_text("read https://a.example/x now", "redact_urls") == "read [REDACTED_URL] now"
    assert redact_text("secret", "redact_content") == ""
    assert redact_text("plain", "none") == "plain"
    assert truncate_text("abcdef", 3) == "abc...(truncated)"


def test_jsonl_formatter_includes_exception():
    record = logging.LogRecord("khoborer_khoj", logging.ERROR, __file__, 1, "failed", None, None)
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonlFormatter().format(record))

    assert payload["level"] == "ERROR"
    assert "RuntimeError: boom" in payload["exception"]


def test_default_redaction_strips_urls_from_payloads():
    prompt = "Article https://www.prothomalo.com/bangladesh/1 body"
    for mode in (LoggingConfig().llm_log_redaction, LangfuseConfig().redaction):
        assert redact_text(prompt, mode) == "Article [REDACTED_URL] body"
    assert "redact_value" not in utils.__all__
