"""Tests for extraction prompt rendering."""

from khoborer_khoj.core.types import RawArticle
from khoborer_khoj.llm.prompts import PUBLISH_DATE_PLACEHOLDER, build_extraction_prompt


def test_prompt_includes_article_fields():
    article = RawArticle(
        title="সিলেটে বন্যা",
        url="https://www.prothomalo.com/bangladesh/1",
        source="Prothom Alo",
        published_at="১৮ অক্টোবর ২০২৬",
        content="নদীর পানি বিপদসীমার ওপরে {প্রবাহিত}",
    )

    prompt = build_extraction_prompt(article)

    assert "TITLE: সিলেটে বন্যা" in prompt
    assert "PUBLISH DATE: ১৮ অক্টোবর ২০২৬" in prompt
    assert prompt.rstrip().endswith("নদীর পানি বিপদসীমার ওপরে {প্রবাহিত}")


def test_prompt_marks_missing_publish_date():
    article = RawArticle(title="t", url="https://x", source="s", content="body")

    assert f"PUBLISH DATE: {PUBLISH_DATE_PLACEHOLDER}" in build_extraction_prompt(article)
