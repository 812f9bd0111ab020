"""
Core domain models and deduplication logic.

This package contains data types and business logic that is
independent of any specific pipeline stage.
"""

from .types import ItemStatus, NewsSource, RawArticle, RunTally, ScrapeResult
from .dedup import dedup_articles

__all__ = [
    "ItemStatus",
    "NewsSource",
    "RawArticle",
    "RunTally",
    "ScrapeResult",
    "dedup_articles",
]
