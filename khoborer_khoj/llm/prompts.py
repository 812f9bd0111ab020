"""Prompt loading and rendering helpers for LLM providers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from ..core.types import RawArticle


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"

PUBLISH_DATE_PLACEHOLDER = "Not provided"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_extraction_prompt(article: RawArticle) -> str:
    return _render_template(
        "extraction",
        title=article.title,
        published_at=article.published_at or PUBLISH_DATE_PLACEHOLDER,
        content=article.content or "",
    )
