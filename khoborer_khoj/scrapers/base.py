"""
Scraper contract and the concurrent scrape stage.

A scraper knows one news site. It returns the articles it found, with body
text already pulled out of the page; how it gets there is its own business.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from datetime import datetime, timezone
import logging

from ..core.types import NewsSource, RawArticle, ScrapeResult
from ..utils.logging import log_event


class Scraper(ABC):
    """Base class for site scrapers.

    Subclasses set `source` and implement `scrape`. `scrape` is synchronous
    and runs in a worker thread, so blocking HTTP clients are fine.
    """

    source: NewsSource

    @abstractmethod
    def scrape(self) -> list[RawArticle]:
        raise NotImplementedError


def run_scrapers(scrapers: list[Scraper], logger: logging.Logger | None = None) -> list[ScrapeResult]:
    """Run every scraper concurrently.

    A scraper that raises is logged and left out of the results; the others
    are unaffected. Results keep the order of `scrapers`.
    """
    logger = logger or logging.getLogger(__name__)
    if not scrapers:
        return []
    return asyncio.run(_run_all(scrapers, logger))


async def _run_all(scrapers: list[Scraper], logger: logging.Logger) -> list[ScrapeResult]:
    async def _scrape_single(scraper: Scraper) -> ScrapeResult:
        log_event(
            logger,
            f"[{scraper.source.name}] scraping {scraper.source.base_url}",
            event="scrape_start",
            source=scraper.source.name,
        )
        articles = await asyncio.to_thread(scraper.scrape)
        log_event(
            logger,
            f"[{scraper.source.name}] found {len(articles)} articles",
            event="scrape_done",
            source=scraper.source.name,
            count=len(articles),
        )
        return ScrapeResult(
            source=scraper.source.name,
            articles=list(articles),
            scraped_at=datetime.now(timezone.utc).isoformat(),
        )

    tasks = [asyncio.create_task(_scrape_single(scraper)) for scraper in scrapers]
    settled = await asyncio.gather(*tasks, return_exceptions=True)

    results: list[ScrapeResult] = []
    for scraper, outcome in zip(scrapers, settled):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            log_event(
                logger,
                f"Scraper failed: {scraper.source.name}: {outcome}",
                level=logging.ERROR,
                event="scrape_failed",
                source=scraper.source.name,
                error_type=type(outcome).__name__,
            )
            continue
        results.append(outcome)

    total = sum(len(r.articles) for r in results)
    log_event(
        logger,
        f"Scrape complete: {len(results)}/{len(scrapers)} sources succeeded, {total} total articles",
        event="scrape_complete",
        sources=len(results),
        total=total,
    )
    return results
