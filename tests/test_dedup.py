"""Tests for in-batch article deduplication."""

from khoborer_khoj.core.dedup import dedup_articles
from khoborer_khoj.core.types import RawArticle


def _article(title: str, url: str) -> RawArticle:
    return RawArticle(title=title, url=url, source="Prothom Alo", content="x")


def test_exact_url_duplicates_removed_in_order():
    articles = [
        _article("ঢাকায় বৃষ্টি", "https://a"),
        _article("চট্টগ্রামে যানজট", "https://b"),
        _article("ঢাকায় বৃষ্টি (আপডেট)", "https://a"),
    ]

    assert [a.url for a in dedup_articles(articles)] == ["https://a", "https://b"]


def test_similar_titles_collapse_at_threshold():
    articles = [
        _article("Dhaka metro rail resumes service after repairs", "https://a"),
        _article("Dhaka metro rail resumes service after repair", "https://b"),
    ]

    assert len(dedup_articles(articles, threshold=92)) == 1
    assert len(dedup_articles(articles, threshold=None)) == 2


def test_empty_titles_never_match():
    articles = [_article("", "https://a"), _article("  ", "https://b")]

    assert len(dedup_articles(articles)) == 2
