"""
API credential pool with per-provider round-robin rotation.

Several keys can be registered for one provider so that requests are spread
across them and a rate-limited key is followed by a fresh one.

Environment naming (prefixes configurable):
    google   -> GOOGLE_GENERATIVE_AI_API_KEY, GOOGLE_GENERATIVE_AI_API_KEY_1, ...
    groq     -> GROQ_API_KEY, GROQ_API_KEY_1, ...
    cerebras -> CEREBRAS_API_KEY, CEREBRAS_API_KEY_1, ...
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Iterable, Mapping

from .providers.base import Provider
from .providers.factory import DEFAULT_KEY_ENV

logger = logging.getLogger(__name__)


class NoCredentialsError(LookupError):
    """A credential was requested for a provider that has none registered."""

    def __init__(self, provider: Provider):
        super().__init__(
            f'No API keys registered for provider "{provider}". '
            f"Add credentials for it or set the corresponding env vars."
        )
        self.provider = provider


@dataclass(frozen=True)
class CredentialEntry:
    """A single API key.

    Attributes:
        key: The secret value
        label: Where the key came from (e.g. the env var name); safe to log
    """

    key: str
    label: str | None = None

    def __repr__(self) -> str:
        return f"CredentialEntry(label={self.label!r})"


class CredentialPool:
    """Holds the credentials of every provider and rotates through them."""

    def __init__(self) -> None:
        self._entries: dict[Provider, list[CredentialEntry]] = {}
        self._indices: dict[Provider, int] = {}

    def add_credentials(self, provider: Provider, entries: Iterable[CredentialEntry | str]) -> None:
        """Append credentials for a provider without resetting its rotation."""
        provider = Provider(provider)
        existing = self._entries.setdefault(provider, [])
        for entry in entries:
            if isinstance(entry, str):
                entry = CredentialEntry(key=entry)
            existing.append(entry)
        self._indices.setdefault(provider, 0)

    def next_entry(self, provider: Provider) -> CredentialEntry:
        entries = self._entries.get(provider)
        if not entries:
            raise NoCredentialsError(provider)
        idx = self._indices.get(provider, 0) % len(entries)
        self._indices[provider] = (idx + 1) % len(entries)
        return entries[idx]

    def next_credential(self, provider: Provider) -> str:
        """Return the next key for `provider` in round-robin order."""
        return self.next_entry(provider).key

    def credential_count(self, provider: Provider) -> int:
        return len(self._entries.get(provider, ()))

    def has_credentials(self, provider: Provider) -> bool:
        return self.credential_count(provider) > 0

    def available_providers(self) -> list[Provider]:
        """Providers with at least one credential, in the order they were first added."""
        return [provider for provider, entries in self._entries.items() if entries]

    def labels(self, provider: Provider) -> list[str | None]:
        return [entry.label for entry in self._entries.get(provider, ())]


def load_credentials_from_env(
    pool: CredentialPool,
    key_env: Mapping[Provider, str] | None = None,
    max_numbered: int = 20,
    environ: Mapping[str, str] | None = None,
) -> dict[Provider, int]:
    """Register keys found in the environment.

    For each provider with prefix X, reads X and then X_1 .. X_<max_numbered>.
    Empty values are ignored. Returns the number of keys added per provider.
    """
    env = os.environ if environ is None else environ
    prefixes = dict(DEFAULT_KEY_ENV)
    if key_env:
        prefixes.update({Provider(p): name for p, name in key_env.items()})

    added: dict[Provider, int] = {}
    for provider, prefix in prefixes.items():
        entries: list[CredentialEntry] = []
        names = [prefix] + [f"{prefix}_{i}" for i in range(1, max_numbered + 1)]
        for env_name in names:
            value = (env.get(env_name) or "").strip()
            if value:
                entries.append(CredentialEntry(key=value, label=env_name))
        if entries:
            pool.add_credentials(provider, entries)
            added[provider] = len(entries)
            logger.debug("Loaded %d key(s) for %s", len(entries), provider)
    return added
