"""
Run orchestration for one scrape-and-extract pass.

This module wires the pipeline together:
1. Load API keys from the environment into a credential pool
2. Build the provider registry, article store and duplicate filter
3. Run the scrapers and snapshot their raw output
4. Extract new articles and report what happened

`run_once` is the trigger boundary: whatever goes wrong inside, it returns a
`RunReport` instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Any

from dotenv import load_dotenv

from .config import (
    AppConfig,
    get_cache_path,
    get_collection_name,
    get_data_dir,
    get_store_path,
)
from .core.seen_cache import DuplicateFilter, SeenCache, StoreDuplicateFilter
from .core.types import ScrapeResult
from .extractor import Extractor
from .llm.credentials import CredentialPool, load_credentials_from_env
from .llm.providers.base import HandleOptions
from .llm.registry import ProviderRegistry
from .llm.tracing import flush, record_span_error, set_span_output, setup_langfuse, start_span
from .scrapers import Scraper, run_scrapers
from .storage import ArticleStore, JsonlArticleStore, save_results
from .utils.logging import log_event, setup_llm_logger, setup_logging


@dataclass
class RunReport:
    """Outcome of one `run_once` call.

    Attributes:
        success: False if the pass stopped on an unexpected error
        duration_seconds: Wall time of the pass
        sources: Scrapers that returned results
        total_articles: Articles returned across all sources
        extracted: Articles saved to the store
        failed: Articles every provider failed on
        skipped: Articles dropped before extraction
        exhausted_providers: Providers given up on during the pass
        results: Per-source scrape results
        error: Error message when success is False
    """

    success: bool
    duration_seconds: float
    sources: int = 0
    total_articles: int = 0
    extracted: int = 0
    failed: int = 0
    skipped: int = 0
    exhausted_providers: list[str] = field(default_factory=list)
    results: list[ScrapeResult] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "duration": f"{self.duration_seconds:.1f}s",
        }
        if not self.success:
            payload["error"] = self.error or "Unknown error"
            return payload
        payload.update(
            {
                "sources": self.sources,
                "totalArticles": self.total_articles,
                "extracted": self.extracted,
                "failed": self.failed,
                "skipped": self.skipped,
                "exhaustedProviders": list(self.exhausted_providers),
                "results": [result.to_dict() for result in self.results],
            }
        )
        return payload


def build_extractor(
    cfg: AppConfig,
    load_env: bool = True,
    provider_order: list[str] | None = None,
    store: ArticleStore | None = None,
    duplicate_filter: DuplicateFilter | None = None,
    llm_logger: logging.Logger | None = None,
    logger: logging.Logger | None = None,
) -> Extractor:
    """Create the credential pool, provider registry and extractor from config.

    Args:
        cfg: Application configuration
        load_env: Read a .env file before scanning the environment for keys
        provider_order: Attempt order; overrides cfg.providers.order
        store: Article store (defaults to a JSONL store under the data dir)
        duplicate_filter: Seen filter (defaults per cfg.dedup.strategy)
        llm_logger: Optional logger for prompt/response payloads
        logger: Pipeline logger

    Returns:
        Extractor ready to run
    """
    logger = logger or logging.getLogger("khoborer_khoj")
    if load_env:
        load_dotenv()

    pool = CredentialPool()
    loaded = load_credentials_from_env(
        pool,
        key_env=cfg.providers.key_env,
        max_numbered=cfg.providers.max_numbered_keys,
    )
    for provider, count in loaded.items():
        log_event(
            logger,
            f"Loaded {count} key(s) for {provider}",
            event="credentials_loaded",
            provider=str(provider),
            count=count,
        )

    options = HandleOptions(
        timeout_seconds=cfg.providers.timeout_seconds,
        trust_env=cfg.providers.trust_env,
        temperature=cfg.providers.temperature,
        max_output_tokens=cfg.providers.max_output_tokens,
        llm_logger=llm_logger,
        llm_log_detail=cfg.logging.llm_log_detail,
        llm_log_redaction=cfg.logging.llm_log_redaction,
    )
    registry = ProviderRegistry(
        pool,
        provider_order=provider_order if provider_order is not None else cfg.providers.order,
        model_overrides=cfg.providers.models,
        base_urls=cfg.providers.base_urls,
        options=options,
    )

    collection = get_collection_name(cfg)
    store = store or JsonlArticleStore(get_store_path(cfg))
    if duplicate_filter is None:
        duplicate_filter = _build_duplicate_filter(cfg, store, collection)

    return Extractor(
        registry=registry,
        store=store,
        seen=duplicate_filter,
        collection=collection,
        retry_delay=cfg.extract.retry_delay_seconds,
        item_delay=cfg.extract.item_delay_seconds,
        dedup_cfg=cfg.dedup,
        logger=logger,
    )


def _build_duplicate_filter(cfg: AppConfig, store: ArticleStore, collection: str) -> DuplicateFilter:
    strategy = cfg.dedup.strategy
    if strategy == "cache":
        return SeenCache(get_cache_path(cfg), ttl_hours=cfg.dedup.ttl_hours)
    if strategy == "store":
        return StoreDuplicateFilter(store, collection, ttl_hours=cfg.dedup.ttl_hours)
    raise ValueError(f"Unsupported dedup strategy: {strategy}")


def run_once(
    cfg: AppConfig,
    scrapers: list[Scraper],
    extractor: Extractor | None = None,
    logger: logging.Logger | None = None,
) -> RunReport:
    """Scrape every source, extract new articles and report the outcome.

    Never raises for pipeline errors; they come back as a failed report.
    """
    started = time.monotonic()
    data_dir = get_data_dir(cfg)
    if logger is None:
        logger = setup_logging(cfg.logging, data_dir / "logs")
    setup_langfuse(cfg.langfuse)

    with start_span(
        "khoborer_khoj.run",
        kind="chain",
        input_value={"sources": [s.source.name for s in scrapers]},
    ) as run_span:
        log_event(logger, "Run start", event="run_start", sources=len(scrapers))
        try:
            results = run_scrapers(scrapers, logger)
            if results and cfg.store.save_scrape_results:
                save_results(results, data_dir)

            report = RunReport(
                success=True,
                duration_seconds=0.0,
                sources=len(results),
                total_articles=sum(len(r.articles) for r in results),
                results=results,
            )
            if report.total_articles:
                if extractor is None:
                    llm_logger = setup_llm_logger(cfg.logging, data_dir / "logs")
                    extractor = build_extractor(cfg, llm_logger=llm_logger, logger=logger)
                with start_span(
                    "khoborer_khoj.extract",
                    kind="chain",
                    input_value={"count": report.total_articles},
                ) as extract_span:
                    tally = extractor.extract(results)
                    set_span_output(extract_span, tally.to_dict())
                report.extracted = tally.extracted
                report.failed = tally.failed
                report.skipped = tally.skipped
                report.exhausted_providers = [str(p) for p in tally.exhausted_providers]
        except Exception as exc:  # noqa: BLE001
            logger.exception("Run failed")
            record_span_error(run_span, exc)
            flush()
            return RunReport(
                success=False,
                duration_seconds=time.monotonic() - started,
                error=str(exc) or type(exc).__name__,
            )

        report.duration_seconds = time.monotonic() - started
        log_event(
            logger,
            "Run complete",
            event="run_complete",
            duration_seconds=round(report.duration_seconds, 1),
            sources=report.sources,
            total_articles=report.total_articles,
            extracted=report.extracted,
            failed=report.failed,
        )
        set_span_output(
            run_span,
            {"sources": report.sources, "extracted": report.extracted, "failed": report.failed},
        )
    flush()
    return report
