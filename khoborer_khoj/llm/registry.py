"""Provider directory: resolves provider order, model ids and credentials into model handles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .credentials import CredentialPool
from .providers.base import HandleOptions, ModelHandle, Provider
from .providers.factory import DEFAULT_MODELS, build_model, parse_provider


class NoProviderAvailableError(RuntimeError):
    """No provider is configured to attempt."""


@dataclass
class ModelRequest:
    """Optional overrides for `ProviderRegistry.create_model`.

    Attributes:
        provider: Provider to use; defaults to the first in the attempt order
        model: Model id; defaults to the provider's override or default model
        base_url: API base URL; defaults to the provider's configured URL
    """

    provider: Provider | None = None
    model: str | None = None
    base_url: str | None = None


@dataclass
class ModelSelection:
    handle: ModelHandle
    provider: Provider
    model_id: str


class ProviderRegistry:
    """Maps providers to model handles, drawing one credential per handle.

    The attempt order defaults to every provider that has credentials in the
    pool at construction time.
    """

    def __init__(
        self,
        pool: CredentialPool,
        provider_order: Iterable[Provider | str] | None = None,
        model_overrides: dict[Provider, str] | None = None,
        base_urls: dict[Provider, str] | None = None,
        options: HandleOptions | None = None,
    ):
        self.pool = pool
        if provider_order is None:
            self._order = pool.available_providers()
        else:
            self._order = [parse_provider(p) for p in provider_order]
        self._model_overrides: dict[Provider, str] = {
            parse_provider(p): m for p, m in (model_overrides or {}).items()
        }
        self._base_urls: dict[Provider, str] = {
            parse_provider(p): u for p, u in (base_urls or {}).items()
        }
        self.options = options or HandleOptions()

    def get_provider_order(self) -> list[Provider]:
        return list(self._order)

    def set_provider_order(self, order: Iterable[Provider | str]) -> None:
        self._order = [parse_provider(p) for p in order]

    def get_model_id(self, provider: Provider) -> str:
        return self._model_overrides.get(provider) or DEFAULT_MODELS[provider]

    def set_model_override(self, provider: Provider, model_id: str | None) -> None:
        provider = parse_provider(provider)
        if model_id:
            self._model_overrides[provider] = model_id
        else:
            self._model_overrides.pop(provider, None)

    def credential_count(self, provider: Provider) -> int:
        return self.pool.credential_count(provider)

    def create_model(self, request: ModelRequest | None = None) -> ModelSelection:
        """Build a handle for the requested (or first) provider.

        Consumes one credential from the pool's rotation.

        Raises:
            NoProviderAvailableError: no provider was given and the order is empty
            NoCredentialsError: the provider has no registered credentials
        """
        request = request or ModelRequest()
        if request.provider is not None:
            provider = parse_provider(request.provider)
        elif self._order:
            provider = self._order[0]
        else:
            raise NoProviderAvailableError("No providers available. Register API keys first.")

        model_id = request.model or self.get_model_id(provider)
        api_key = self.pool.next_credential(provider)
        base_url = request.base_url or self._base_urls.get(provider)
        handle = build_model(provider, model_id, api_key, base_url=base_url, options=self.options)
        return ModelSelection(handle=handle, provider=provider, model_id=model_id)
