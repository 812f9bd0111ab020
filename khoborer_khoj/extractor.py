"""
Article extraction orchestrator.

For each scraped article that has not been extracted recently:
1. Build the extraction prompt
2. Try providers in order; within a provider, try each of its credentials
3. Save the first valid structured output and mark the URL as seen

A provider whose credentials all fail on one article is skipped for the
rest of the pass. Articles are processed one at a time, with a fixed delay
after each failed attempt and an optional delay between articles.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import logging
import time
from typing import Any, Callable

from pydantic import BaseModel

from .config import DedupConfig
from .core.dedup import dedup_articles
from .core.seen_cache import DuplicateFilter
from .core.types import ItemStatus, RawArticle, RunTally, ScrapeResult
from .llm.credentials import NoCredentialsError
from .llm.prompts import build_extraction_prompt
from .llm.providers.base import Provider, ProviderError
from .llm.registry import ModelRequest, ModelSelection, NoProviderAvailableError, ProviderRegistry
from .llm.schema import ArticleExtraction
from .storage import ArticleStore, PersistenceError
from .utils.logging import log_event

RETRY_DELAY_SECONDS = 1.5


def filter_new_articles(
    scrape_results: list[ScrapeResult],
    seen: DuplicateFilter,
    dedup_cfg: DedupConfig | None = None,
    logger: logging.Logger | None = None,
) -> list[RawArticle]:
    """Flatten scrape results and keep only articles worth extracting.

    Drops articles without content, duplicates inside the batch (when
    enabled) and URLs the duplicate filter reports as already extracted.
    Each kept article carries the scrape time of its result.
    """
    logger = logger or logging.getLogger(__name__)
    dedup_cfg = dedup_cfg or DedupConfig()

    all_articles: list[RawArticle] = []
    for result in scrape_results:
        for article in result.articles:
            if article.scraped_at is None:
                article = replace(article, scraped_at=result.scraped_at)
            all_articles.append(article)

    candidates = [a for a in all_articles if a.content and a.content.strip()]
    no_content = len(all_articles) - len(candidates)
    if dedup_cfg.enabled:
        candidates = dedup_articles(candidates, dedup_cfg.title_similarity_threshold)
    duplicates = len(all_articles) - no_content - len(candidates)

    new_articles: list[RawArticle] = []
    already_seen = 0
    for article in candidates:
        if seen.is_seen(article.url):
            already_seen += 1
        else:
            new_articles.append(article)

    log_event(
        logger,
        f"{len(all_articles)} total articles, {already_seen} already extracted, "
        f"{len(new_articles)} new",
        event="filter_articles",
        total=len(all_articles),
        no_content=no_content,
        duplicates=duplicates,
        already_seen=already_seen,
        new=len(new_articles),
    )
    return new_articles


class Extractor:
    """Runs the provider/credential fallback loop over scraped articles.

    Attributes:
        registry: Resolves providers and credentials into model handles
        store: Destination for extracted documents
        seen: Duplicate filter consulted before and updated after extraction
        collection: Store collection documents are inserted into
        schema: Output model the provider response must validate against
        retry_delay: Seconds to wait after a failed attempt
        item_delay: Seconds to wait between two articles
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        store: ArticleStore,
        seen: DuplicateFilter,
        collection: str = "articles",
        schema: type[BaseModel] = ArticleExtraction,
        retry_delay: float = RETRY_DELAY_SECONDS,
        item_delay: float = 0.0,
        dedup_cfg: DedupConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ):
        self.registry = registry
        self.store = store
        self.seen = seen
        self.collection = collection
        self.schema = schema
        self.retry_delay = retry_delay
        self.item_delay = item_delay
        self.dedup_cfg = dedup_cfg or DedupConfig()
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def extract(self, scrape_results: list[ScrapeResult]) -> RunTally:
        """Extract every new article in `scrape_results` and return the run tally.

        Raises:
            NoProviderAvailableError: the provider order is empty
        """
        provider_order = self.registry.get_provider_order()
        if not provider_order:
            raise NoProviderAvailableError("No providers available. Register API keys first.")
        log_event(
            self.logger,
            f"Provider order: {', '.join(str(p) for p in provider_order)}",
            event="provider_order",
            providers=[str(p) for p in provider_order],
        )

        tally = RunTally(total=sum(len(result.articles) for result in scrape_results))
        articles = filter_new_articles(scrape_results, self.seen, self.dedup_cfg, self.logger)
        tally.skipped = tally.total - len(articles)

        if not articles:
            log_event(self.logger, "No new articles to extract. Skipping.", event="extract_skipped")
            return tally

        for index, article in enumerate(articles):
            status = self.extract_article(article, tally, provider_order)
            tally.record(status)
            if self.item_delay > 0 and index < len(articles) - 1:
                self._sleep(self.item_delay)

        exhausted = ", ".join(str(p) for p in tally.exhausted_providers)
        log_event(
            self.logger,
            f"Done. Extracted: {tally.extracted}, Failed: {tally.failed}"
            + (f", Skipped providers: [{exhausted}]" if exhausted else ""),
            event="extract_summary",
            **tally.to_dict(),
        )
        return tally

    def extract_article(
        self,
        article: RawArticle,
        tally: RunTally,
        provider_order: list[Provider] | None = None,
    ) -> ItemStatus:
        """Extract one article, updating `tally.exhausted_providers` as providers run out.

        Does not touch the saved/failed counters; the caller records the
        returned status.
        """
        order = provider_order if provider_order is not None else self.registry.get_provider_order()
        prompt = build_extraction_prompt(article)
        log_event(self.logger, f"Extracting: {article.title}", event="article_start", url=article.url)

        for position, provider in enumerate(order):
            if tally.is_exhausted(provider):
                continue

            attempts = max(1, self.registry.credential_count(provider))
            for attempt in range(1, attempts + 1):
                try:
                    selection = self.registry.create_model(ModelRequest(provider=provider))
                except NoCredentialsError as exc:
                    log_event(
                        self.logger,
                        str(exc),
                        level=logging.ERROR,
                        event="provider_misconfigured",
                        provider=str(provider),
                    )
                    tally.mark_exhausted(provider)
                    break

                output = self._attempt(selection, article, prompt, attempt, attempts)
                if output is not None:
                    return self._save(article, output, selection)

                if attempt < attempts:
                    log_event(
                        self.logger,
                        f"Waiting {self.retry_delay}s before trying the next {provider} key...",
                        event="retry_wait",
                        provider=str(provider),
                    )
                    self._sleep(self.retry_delay)
                    continue

                tally.mark_exhausted(provider)
                log_event(
                    self.logger,
                    f"Skipping provider {provider} for remaining articles",
                    level=logging.WARNING,
                    event="provider_exhausted",
                    provider=str(provider),
                    attempts=attempts,
                )
                remaining = [p for p in order[position + 1 :] if not tally.is_exhausted(p)]
                if remaining:
                    log_event(
                        self.logger,
                        f"Waiting {self.retry_delay}s before trying next provider...",
                        event="fallback_wait",
                        provider=str(provider),
                        next_provider=str(remaining[0]),
                    )
                    self._sleep(self.retry_delay)

        log_event(
            self.logger,
            f'All providers failed for "{article.title}"',
            level=logging.ERROR,
            event="article_failed",
            url=article.url,
        )
        return ItemStatus.FAILED

    def _attempt(
        self,
        selection: ModelSelection,
        article: RawArticle,
        prompt: str,
        attempt: int,
        attempts: int,
    ) -> BaseModel | None:
        """Make one model call. Errors and empty output both come back as None."""
        provider = selection.provider
        log_event(
            self.logger,
            f"Trying provider: {provider} (model: {selection.model_id}, key {attempt}/{attempts})",
            event="provider_attempt",
            provider=str(provider),
            model=selection.model_id,
            attempt=attempt,
            attempts=attempts,
        )
        try:
            output = selection.handle.generate_object(prompt, self.schema)
        except Exception as exc:  # noqa: BLE001
            status_code = exc.status_code if isinstance(exc, ProviderError) else None
            log_event(
                self.logger,
                f'Provider {provider} failed for "{article.title}": {exc}',
                level=logging.WARNING,
                event="provider_attempt_failed",
                provider=str(provider),
                model=selection.model_id,
                attempt=attempt,
                error_type=type(exc).__name__,
                status_code=status_code,
            )
            return None

        if output is None:
            log_event(
                self.logger,
                f'Provider {provider} returned no output for "{article.title}"',
                level=logging.WARNING,
                event="provider_empty_output",
                provider=str(provider),
                model=selection.model_id,
                attempt=attempt,
            )
        return output

    def _save(self, article: RawArticle, output: BaseModel, selection: ModelSelection) -> ItemStatus:
        """Persist the document and mark the URL seen, as one step.

        If either write fails the article counts as failed and stays unseen;
        a document inserted before a failed mark is removed again.
        """
        doc = build_document(article, output)
        try:
            doc_id = self.store.insert(self.collection, doc)
        except Exception as exc:  # noqa: BLE001
            self._log_persist_failure(article, exc, stage="store")
            return ItemStatus.FAILED

        try:
            self.seen.mark_seen(article.url)
        except PersistenceError as exc:
            self._log_persist_failure(article, exc, stage="seen_cache")
            self._rollback(doc_id, article)
            return ItemStatus.FAILED

        title = getattr(output, "title_english", None) or article.title
        log_event(
            self.logger,
            f"Saved: {title}",
            event="article_saved",
            url=article.url,
            provider=str(selection.provider),
            model=selection.model_id,
            document_id=doc_id,
        )
        return ItemStatus.SAVED

    def _rollback(self, doc_id: str, article: RawArticle) -> None:
        try:
            self.store.delete(self.collection, doc_id)
        except Exception:  # noqa: BLE001
            self.logger.exception(
                "Could not remove document %s for %s; it will be extracted again next run",
                doc_id,
                article.url,
            )

    def _log_persist_failure(self, article: RawArticle, exc: Exception, stage: str) -> None:
        log_event(
            self.logger,
            f'Could not persist "{article.title}": {exc}',
            level=logging.ERROR,
            event="article_persist_failed",
            url=article.url,
            stage=stage,
            error_type=type(exc).__name__,
        )


def build_document(article: RawArticle, output: BaseModel) -> dict[str, Any]:
    """Store document: the model output plus source URL, source name and timestamps."""
    now = _utc_now()
    doc = output.model_dump(mode="json")
    doc.update(
        {
            "url": article.url,
            "source": article.source,
            "scrapedAt": article.scraped_at or now,
            "extractedAt": now,
        }
    )
    return doc


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
