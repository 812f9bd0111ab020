"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- ProvidersConfig: LLM provider order, model overrides and HTTP settings
- ExtractConfig: Retry and pacing delays for the extraction loop
- DedupConfig: In-batch and cross-run deduplication settings
- CacheConfig: Location of the extracted-URL cache file
- StoreConfig: Location and collection of the article store
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
from typing import Any

import yaml


@dataclass
class ProvidersConfig:
    """Configuration for the LLM providers.

    Attributes:
        order: Provider names in attempt order. None means every provider
               that has at least one credential, in discovery order.
        models: Per-provider model id overrides (e.g. {"groq": "llama-3.3-70b-versatile"})
        base_urls: Per-provider API base URL overrides
        key_env: Per-provider environment variable prefix overrides
        max_numbered_keys: Highest numbered suffix scanned for rotation keys (PREFIX_1..PREFIX_N)
        timeout_seconds: HTTP timeout for a single model call
        trust_env: Whether to respect system proxy settings for API requests
        temperature: Sampling temperature sent with extraction requests
        max_output_tokens: Upper bound on generated tokens per request
    """

    order: list[str] | None = None
    models: dict[str, str] = field(default_factory=dict)
    base_urls: dict[str, str] = field(default_factory=dict)
    key_env: dict[str, str] = field(default_factory=dict)
    max_numbered_keys: int = 20
    timeout_seconds: float = 60.0
    trust_env: bool = True
    temperature: float = 0.1
    max_output_tokens: int = 4096


@dataclass
class ExtractConfig:
    """Configuration for the extraction loop.

    Attributes:
        retry_delay_seconds: Fixed wait after a failed attempt, before the next
                             credential or the next provider
        item_delay_seconds: Wait between two articles, to respect upstream rate limits
    """

    retry_delay_seconds: float = 1.5
    item_delay_seconds: float = 0.0


@dataclass
class DedupConfig:
    """Configuration for article deduplication.

    Attributes:
        enabled: Whether to drop duplicates inside one scrape batch
        title_similarity_threshold: Fuzzy title match threshold (0-100); None keeps the batch pass URL-only
        strategy: "cache" to use the local URL cache, "store" to query the article store
        ttl_hours: Retention window after which an extracted URL may be processed again
    """

    enabled: bool = True
    title_similarity_threshold: int | None = None
    strategy: str = "cache"
    ttl_hours: float = 30.0


@dataclass
class CacheConfig:
    """Configuration for the extracted-URL cache.

    Attributes:
        data_dir: Directory for the cache file and scrape snapshots
        filename: Name of the cache file inside data_dir
        path: Explicit cache file path (overrides data_dir/filename)
    """

    data_dir: str | None = None
    filename: str = "extracted-urls.json"
    path: str | None = None


@dataclass
class StoreConfig:
    """Configuration for the article store.

    Attributes:
        path: Root directory of the JSONL store (defaults to <data_dir>/store)
        collection: Collection that extracted articles are written to
        save_scrape_results: Whether to write a raw snapshot of each scrape run
    """

    path: str | None = None
    collection: str | None = None
    save_scrape_results: bool = True


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls")
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = False
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key (optional)
        secret_key: Langfuse secret key (optional)
        host: Langfuse host URL (optional)
        environment: Langfuse environment label (optional)
        release: Langfuse release identifier (optional)
        redaction: Redaction mode for prompt/response payloads
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "redact_urls"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    providers: ProvidersConfig = field(default_factory=ProvidersConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


_SECTIONS: dict[str, type] = {
    "providers": ProvidersConfig,
    "extract": ExtractConfig,
    "dedup": DedupConfig,
    "cache": CacheConfig,
    "store": StoreConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(**{name: cls(**data.get(name, {})) for name, cls in _SECTIONS.items()})


def get_data_dir(cfg: AppConfig) -> Path:
    """Get the data directory from config or the DATA_DIR environment variable."""
    if cfg.cache.data_dir:
        return Path(cfg.cache.data_dir)
    return Path(os.getenv("DATA_DIR") or "./data")


def get_cache_path(cfg: AppConfig) -> Path:
    """Get the extracted-URL cache file path.

    Resolution order: explicit config path, URL_CACHE_FILE, then
    <data_dir>/<filename>.
    """
    if cfg.cache.path:
        return Path(cfg.cache.path)
    env_path = os.getenv("URL_CACHE_FILE")
    if env_path:
        return Path(env_path)
    return get_data_dir(cfg) / cfg.cache.filename


def get_store_path(cfg: AppConfig) -> Path:
    """Get the root directory of the JSONL article store."""
    if cfg.store.path:
        return Path(cfg.store.path)
    return get_data_dir(cfg) / "store"


def get_collection_name(cfg: AppConfig) -> str:
    """Get the article collection from config or ARTICLES_COLLECTION."""
    if cfg.store.collection:
        return cfg.store.collection
    return os.getenv("ARTICLES_COLLECTION") or "articles"


def get_langfuse_host(cfg: LangfuseConfig) -> str | None:
    """Get Langfuse host from inline config or environment variable."""
    if cfg.host:
        return cfg.host
    return os.getenv("LANGFUSE_HOST")
