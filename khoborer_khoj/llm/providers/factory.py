"""Static provider table and the factory building model handles from it."""

from __future__ import annotations

from dataclasses import dataclass

from .base import HandleOptions, ModelHandle, Provider
from .gemini import GeminiModel
from .openai_compatible import OpenAICompatibleModel


@dataclass(frozen=True)
class ProviderSpec:
    """Construction parameters for one provider.

    Attributes:
        default_model: Model id used when no override is configured
        base_url: API base URL
        key_env: Environment variable prefix holding the provider's API keys
        handle_cls: ModelHandle implementation speaking the provider's API
    """

    default_model: str
    base_url: str
    key_env: str
    handle_cls: type[ModelHandle]


_PROVIDER_SPECS: dict[Provider, ProviderSpec] = {
    Provider.GOOGLE: ProviderSpec(
        default_model="gemini-2.0-flash",
        base_url="https://generativelanguage.googleapis.com",
        key_env="GOOGLE_GENERATIVE_AI_API_KEY",
        handle_cls=GeminiModel,
    ),
    Provider.GROQ: ProviderSpec(
        default_model="openai/gpt-oss-120b",
        base_url="https://api.groq.com/openai/v1",
        key_env="GROQ_API_KEY",
        handle_cls=OpenAICompatibleModel,
    ),
    Provider.CEREBRAS: ProviderSpec(
        default_model="gpt-oss-120b",
        base_url="https://api.cerebras.ai/v1",
        key_env="CEREBRAS_API_KEY",
        handle_cls=OpenAICompatibleModel,
    ),
}

DEFAULT_MODELS: dict[Provider, str] = {p: spec.default_model for p, spec in _PROVIDER_SPECS.items()}
DEFAULT_KEY_ENV: dict[Provider, str] = {p: spec.key_env for p, spec in _PROVIDER_SPECS.items()}


def available_providers() -> list[Provider]:
    """Return every provider the factory can build, in declaration order."""
    return list(_PROVIDER_SPECS)


def get_spec(provider: Provider) -> ProviderSpec:
    return _PROVIDER_SPECS[Provider(provider)]


def parse_provider(name: str | Provider) -> Provider:
    """Turn a config string into a Provider, rejecting unknown names."""
    if isinstance(name, Provider):
        return name
    try:
        return Provider(name.lower().strip())
    except ValueError:
        supported = ", ".join(p.value for p in available_providers())
        raise ValueError(f"Unsupported provider: {name}. Supported: {supported}") from None


def build_model(
    provider: Provider,
    model_id: str,
    api_key: str,
    base_url: str | None = None,
    options: HandleOptions | None = None,
) -> ModelHandle:
    """Build a model handle for `provider` bound to one credential."""
    spec = get_spec(provider)
    return spec.handle_cls(
        provider=provider,
        model_id=model_id,
        api_key=api_key,
        base_url=base_url or spec.base_url,
        options=options,
    )
