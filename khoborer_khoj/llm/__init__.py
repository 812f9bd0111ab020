"""LLM providers, credential rotation and observability."""

from .credentials import (
    CredentialEntry,
    CredentialPool,
    NoCredentialsError,
    load_credentials_from_env,
)
from .providers import (
    DEFAULT_MODELS,
    GeminiModel,
    HandleOptions,
    ModelHandle,
    OpenAICompatibleModel,
    Provider,
    ProviderError,
    build_model,
)
from .registry import ModelRequest, ModelSelection, NoProviderAvailableError, ProviderRegistry
from .schema import ArticleExtraction
from .tracing import flush, record_span_error, set_span_output, setup_langfuse, start_span

__all__ = [
    "ArticleExtraction",
    "CredentialEntry",
    "CredentialPool",
    "DEFAULT_MODELS",
    "GeminiModel",
    "HandleOptions",
    "ModelHandle",
    "ModelRequest",
    "ModelSelection",
    "NoCredentialsError",
    "NoProviderAvailableError",
    "OpenAICompatibleModel",
    "Provider",
    "ProviderError",
    "ProviderRegistry",
    "build_model",
    "flush",
    "load_credentials_from_env",
    "record_span_error",
    "set_span_output",
    "setup_langfuse",
    "start_span",
]
