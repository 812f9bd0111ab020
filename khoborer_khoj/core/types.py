"""
Core data types for the extraction pipeline.

This module defines the fundamental data structures passed between stages:
- NewsSource: A site that a scraper reads from
- RawArticle: One scraped article, as produced by a scraper
- ScrapeResult: All articles one scraper returned in a run
- ItemStatus: Terminal state of a single article in an extraction pass
- RunTally: Counters accumulated over one extraction pass
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from ..llm.providers.base import Provider


@dataclass(frozen=True)
class NewsSource:
    """A news site a scraper reads from.

    Attributes:
        name: Human-readable source name (e.g. "Prothom Alo")
        base_url: Landing page the scraper starts from
    """
    name: str
    base_url: str


@dataclass(frozen=True)
class RawArticle:
    """Represents a raw article as returned by a scraper.

    The URL is the stable key used for deduplication across runs.

    Attributes:
        title: The article headline, in the original language
        url: The full URL to the original article
        source: Name of the news source
        published_at: Optional publish timestamp as shown on the page
        content: Body text; articles without content are never extracted
        image_url: Optional lead image URL
        scraped_at: ISO 8601 time the article was scraped, if known
    """
    title: str
    url: str
    source: str
    published_at: str | None = None
    content: str | None = None
    image_url: str | None = None
    scraped_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "publishedAt": self.published_at,
            "content": self.content,
            "imageUrl": self.image_url,
        }


@dataclass
class ScrapeResult:
    """Result returned by a scraper after one run."""
    source: str
    articles: list[RawArticle]
    scraped_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "scrapedAt": self.scraped_at,
            "articles": [article.to_dict() for article in self.articles],
        }


class ItemStatus(str, Enum):
    SAVED = "saved"
    FAILED = "failed"


@dataclass
class RunTally:
    """Statistics collected during one extraction pass.

    The set of exhausted providers is shared by every article of the pass,
    so a provider that ran out of working credentials is not probed again
    until the next pass.

    Attributes:
        total: Articles received from the scrapers
        skipped: Articles dropped as duplicates or already extracted
        extracted: Articles saved to the store
        failed: Articles for which every provider/credential failed
        exhausted_providers: Providers given up on during this pass, in order
    """
    total: int = 0
    skipped: int = 0
    extracted: int = 0
    failed: int = 0
    exhausted_providers: list[Provider] = field(default_factory=list)

    def is_exhausted(self, provider: Provider) -> bool:
        return provider in self.exhausted_providers

    def mark_exhausted(self, provider: Provider) -> None:
        if provider not in self.exhausted_providers:
            self.exhausted_providers.append(provider)

    def record(self, status: ItemStatus) -> None:
        if status is ItemStatus.SAVED:
            self.extracted += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "skipped": self.skipped,
            "extracted": self.extracted,
            "failed": self.failed,
            "exhaustedProviders": [str(p.value) for p in self.exhausted_providers],
        }
