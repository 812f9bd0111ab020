"""Tests for Langfuse tracing setup behavior."""

from __future__ import annotations

import sys
import types

import pytest

from khoborer_khoj.config import LangfuseConfig
from khoborer_khoj.llm import tracing


@pytest.fixture(autouse=True)
def reset_tracer():
    yield
    tracing.setup_langfuse(LangfuseConfig(enabled=False))


def test_setup_langfuse_passes_keys_and_host(monkeypatch):
    captured: dict = {}

    class DummyLangfuse:
        def __init__(self, **kwargs):
            captured.update(kwargs)

    monkeypatch.setitem(sys.modules, "langfuse", types.SimpleNamespace(Langfuse=DummyLangfuse))
    monkeypatch.setenv("LANGFUSE_PUBLIC_KEY", "pk-test")
    monkeypatch.setenv("LANGFUSE_SECRET_KEY", "sk-test")
    monkeypatch.setenv("LANGFUSE_HOST", "https://us.cloud.langfuse.com")

    tracing.setup_langfuse(LangfuseConfig(enabled=True, environment="staging"))

    assert captured["public_key"] == "pk-test"
    assert captured["secret_key"] == "sk-test"
    assert captured["host"] == "https://us.cloud.langfuse.com"
    assert captured["environment"] == "staging"
    assert isinstance(tracing.get_tracer(), DummyLangfuse)


def test_setup_langfuse_disables_tracer_when_keys_missing(monkeypatch):
    monkeypatch.delenv("LANGFUSE_PUBLIC_KEY", raising=False)
    monkeypatch.delenv("LANGFUSE_SECRET_KEY", raising=False)

    tracing.setup_langfuse(LangfuseConfig(enabled=True))

    assert tracing.get_tracer() is None


def test_start_span_is_noop_without_tracer():
    tracing.setup_langfuse(LangfuseConfig(enabled=False))

    with tracing.start_span("khoborer_khoj.test", kind="chain", input_value={"a": 1}) as span:
        tracing.set_span_output(span, {"ok": True})
        tracing.record_span_error(span, RuntimeError("boom"))

    assert span is None
    tracing.flush()


def test_span_updates_are_redacted(monkeypatch):
    updates: list[dict] = []

    class DummySpan:
        def update(self, **kwargs):
            updates.append(kwargs)

    class DummyContext:
        def __enter__(self):
            return DummySpan()

        def __exit__(self, *exc):
            return False

    class DummyLangfuse:
        def __init__(self, **kwargs):
            pass

        def start_as_current_span(self, **kwargs):
            return DummyContext()

    monkeypatch.setitem(sys.modules, "langfuse", types.SimpleNamespace(Langfuse=DummyLangfuse))
    tracing.setup_langfuse(
        LangfuseConfig(enabled=True, public_key="pk", secret_key="sk", redaction="redact_urls")
    )

    with tracing.start_span("khoborer_khoj.test", kind="llm") as span:
        tracing.set_span_output(span, "see https://www.prothomalo.com/x")
        tracing.record_span_error(span, ValueError("bad output"))

    assert updates[0] == {"output": "see [REDACTED_URL]"}
    assert updates[1] == {"level": "ERROR", "status_message": "bad output"}
