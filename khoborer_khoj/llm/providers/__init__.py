from .base import HandleOptions, ModelHandle, Provider, ProviderError
from .factory import (
    DEFAULT_KEY_ENV,
    DEFAULT_MODELS,
    available_providers,
    build_model,
    parse_provider,
)
from .gemini import GeminiModel
from .openai_compatible import OpenAICompatibleModel

__all__ = [
    "DEFAULT_KEY_ENV",
    "DEFAULT_MODELS",
    "GeminiModel",
    "HandleOptions",
    "ModelHandle",
    "OpenAICompatibleModel",
    "Provider",
    "ProviderError",
    "available_providers",
    "build_model",
    "parse_provider",
]
