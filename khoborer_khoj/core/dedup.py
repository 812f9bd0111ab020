"""
In-batch article deduplication using URL matching and fuzzy title comparison.

Scrapers walk several section pages, so one run can return the same story
more than once. This module removes:
1. Exact URL matches (same article listed under two sections or sources)
2. Optionally, near-identical titles (same story, different URLs)

Cross-run deduplication lives in `seen_cache`.
"""

from __future__ import annotations

from rapidfuzz import fuzz

from .types import RawArticle


def dedup_articles(articles: list[RawArticle], threshold: int | None = 92) -> list[RawArticle]:
    """Remove duplicate articles from a list, preserving original order.

    Args:
        articles: Articles to deduplicate
        threshold: Similarity threshold (0-100) for fuzzy title matching, or
                   None to match on URL only

    Returns:
        Deduplicated list of articles
    """
    seen_urls: set[str] = set()
    kept: list[RawArticle] = []
    titles: list[str] = []

    for article in articles:
        if article.url in seen_urls:
            continue
        if threshold is not None and _is_similar_title(article.title, titles, threshold):
            continue
        seen_urls.add(article.url)
        titles.append(article.title)
        kept.append(article)

    return kept


def _is_similar_title(title: str, titles: list[str], threshold: int) -> bool:
    """Check if a title is similar to any title in the given list.

    Empty titles never match, so pages whose headline failed to parse are
    not collapsed into one another.
    """
    if not title.strip():
        return False
    for existing in titles:
        if existing.strip() and fuzz.ratio(title, existing) >= threshold:
            return True
    return False
