"""Tests for the provider directory and handle factory."""

from __future__ import annotations

import pytest

from khoborer_khoj.llm.credentials import CredentialPool, NoCredentialsError
from khoborer_khoj.llm.providers.base import HandleOptions, Provider
from khoborer_khoj.llm.providers.factory import (
    DEFAULT_MODELS,
    available_providers,
    build_model,
    parse_provider,
)
from khoborer_khoj.llm.providers.gemini import GeminiModel
from khoborer_khoj.llm.providers.openai_compatible import OpenAICompatibleModel
from khoborer_khoj.llm.registry import ModelRequest, NoProviderAvailableError, ProviderRegistry


def _pool(**keys: list[str]) -> CredentialPool:
    pool = CredentialPool()
    for provider, values in keys.items():
        pool.add_credentials(Provider(provider), values)
    return pool


def test_available_providers_contains_expected_backends():
    assert available_providers() == [Provider.GOOGLE, Provider.GROQ, Provider.CEREBRAS]


def test_default_models():
    assert DEFAULT_MODELS[Provider.GOOGLE] == "gemini-2.0-flash"
    assert DEFAULT_MODELS[Provider.GROQ] == "openai/gpt-oss-120b"
    assert DEFAULT_MODELS[Provider.CEREBRAS] == "gpt-oss-120b"


def test_parse_provider_rejects_unknown_backend():
    assert parse_provider(" Groq ") is Provider.GROQ
    with pytest.raises(ValueError, match="Unsupported provider"):
        parse_provider("openrouter")


def test_build_model_picks_handle_class_and_base_url():
    gemini = build_model(Provider.GOOGLE, "gemini-2.0-flash", "k")
    groq = build_model(Provider.GROQ, "openai/gpt-oss-120b", "k")
    cerebras = build_model(Provider.CEREBRAS, "gpt-oss-120b", "k", base_url="https://proxy.local/v1/")

    assert isinstance(gemini, GeminiModel)
    assert gemini.base_url == "https://generativelanguage.googleapis.com"
    assert isinstance(groq, OpenAICompatibleModel)
    assert groq.base_url == "https://api.groq.com/openai/v1"
    assert cerebras.base_url == "https://proxy.local/v1"


def test_build_model_rejects_empty_key():
    with pytest.raises(ValueError, match="Missing API key"):
        build_model(Provider.GROQ, "m", "")


def test_default_order_follows_pool():
    registry = ProviderRegistry(_pool(cerebras=["c1"], groq=["g1"]))

    assert registry.get_provider_order() == [Provider.CEREBRAS, Provider.GROQ]


def test_get_provider_order_returns_copy():
    registry = ProviderRegistry(_pool(groq=["g1"]))

    order = registry.get_provider_order()
    order.append(Provider.GOOGLE)

    assert registry.get_provider_order() == [Provider.GROQ]


def test_set_provider_order_accepts_names():
    registry = ProviderRegistry(_pool(groq=["g1"]))

    registry.set_provider_order(["cerebras", "google"])

    assert registry.get_provider_order() == [Provider.CEREBRAS, Provider.GOOGLE]
    with pytest.raises(ValueError, match="Unsupported provider"):
        registry.set_provider_order(["mistral"])


def test_create_model_uses_first_provider_and_rotates_keys():
    registry = ProviderRegistry(_pool(groq=["g1", "g2"]))

    first = registry.create_model()
    second = registry.create_model()
    third = registry.create_model(ModelRequest(provider=Provider.GROQ))

    assert first.provider is Provider.GROQ
    assert first.model_id == "openai/gpt-oss-120b"
    assert isinstance(first.handle, OpenAICompatibleModel)
    assert [first.handle.api_key, second.handle.api_key, third.handle.api_key] == ["g1", "g2", "g1"]


def test_model_override_and_request_override():
    registry = ProviderRegistry(
        _pool(google=["k1"]),
        model_overrides={"google": "gemini-2.5-flash"},
        base_urls={"google": "https://gemini.proxy.local"},
        options=HandleOptions(timeout_seconds=5),
    )

    selection = registry.create_model()
    assert selection.model_id == "gemini-2.5-flash"
    assert selection.handle.base_url == "https://gemini.proxy.local"
    assert selection.handle.options.timeout_seconds == 5

    explicit = registry.create_model(ModelRequest(model="gemini-2.0-flash-lite"))
    assert explicit.model_id == "gemini-2.0-flash-lite"

    registry.set_model_override(Provider.GOOGLE, None)
    assert registry.get_model_id(Provider.GOOGLE) == "gemini-2.0-flash"


def test_create_model_without_order_raises():
    registry = ProviderRegistry(CredentialPool())

    with pytest.raises(NoProviderAvailableError):
        registry.create_model()


def test_create_model_for_provider_without_keys_raises():
    registry = ProviderRegistry(_pool(groq=["g1"]), provider_order=["google", "groq"])

    assert registry.credential_count(Provider.GOOGLE) == 0
    with pytest.raises(NoCredentialsError):
        registry.create_model()
