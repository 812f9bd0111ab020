"""Shared fixtures: scripted model handles, sample articles and an extractor factory."""

from __future__ import annotations

import copy

import pytest

from khoborer_khoj.config import DedupConfig
from khoborer_khoj.core.seen_cache import SeenCache
from khoborer_khoj.core.types import RawArticle, ScrapeResult
from khoborer_khoj.extractor import Extractor
from khoborer_khoj.llm import registry as registry_module
from khoborer_khoj.llm.credentials import CredentialPool
from khoborer_khoj.llm.providers.base import Provider
from khoborer_khoj.llm.registry import ProviderRegistry
from khoborer_khoj.storage import JsonlArticleStore

SCRAPED_AT = "2026-10-19T06:00:00+00:00"

VALID_EXTRACTION = {
    "title_english": "Flood waters rise across Sylhet",
    "title_original": "সিলেটে বন্যার পানি বাড়ছে",
    "publish_date": "2026-10-18",
    "category": "bangladesh",
    "sentiment": "negative",
    "importance_score": 4,
    "is_update": False,
    "summary": "Flood waters rose in Sylhet. Residents of low-lying areas moved to shelters. "
    "The water board expects levels to peak tomorrow.",
    "locations": ["Sylhet"],
    "people": [],
    "organizations": ["Bangladesh Water Development Board"],
    "statements": [],
    "casualties": {
        "killed": None,
        "injured": None,
        "missing": None,
        "arrested": None,
        "victim_gender": None,
        "victim_age_group": None,
        "victim_profession": None,
    },
    "monetary_figures": [],
    "government_action": None,
    "tags": {
        "category": "bangladesh",
        "incident_type": ["flood"],
        "affected_locations": ["Sylhet"],
        "involved_institutions": ["BWDB"],
    },
}


@pytest.fixture
def valid_extraction() -> dict:
    return copy.deepcopy(VALID_EXTRACTION)


def make_article(n: int, content: str | None = "বন্যার খবর", source: str = "Prothom Alo") -> RawArticle:
    return RawArticle(
        title=f"খবর {n}",
        url=f"https://www.prothomalo.com/bangladesh/{n}",
        source=source,
        published_at="১৮ অক্টোবর ২০২৬",
        content=content,
    )


def make_results(*articles: RawArticle, source: str = "Prothom Alo") -> list[ScrapeResult]:
    return [ScrapeResult(source=source, articles=list(articles), scraped_at=SCRAPED_AT)]


class _ScriptedHandle:
    def __init__(self, provider, model_id, api_key, outcome, calls):
        self.provider = provider
        self.model_id = model_id
        self.api_key = api_key
        self._outcome = outcome
        self._calls = calls

    def generate_object(self, prompt, schema):
        self._calls.append((self.provider, self.api_key))
        if isinstance(self._outcome, Exception):
            raise self._outcome
        if self._outcome is None:
            return None
        return schema.model_validate(self._outcome)


class ScriptedModels:
    """Stands in for `build_model`; outcomes are scripted per API key or per provider.

    An outcome is a payload dict (success), None (empty output) or an
    exception instance (raised). Scripted lists are consumed one call at a
    time and their last outcome repeats. Unscripted handles succeed.
    """

    def __init__(self):
        self.calls: list[tuple[Provider, str]] = []
        self._scripts: dict[object, list] = {}

    def script(self, key: Provider | str, *outcomes) -> None:
        self._scripts[key] = list(outcomes)

    def build(self, provider, model_id, api_key, base_url=None, options=None):
        queue = self._scripts.get(api_key) or self._scripts.get(provider) or [VALID_EXTRACTION]
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        return _ScriptedHandle(provider, model_id, api_key, outcome, self.calls)

    def providers_called(self) -> list[Provider]:
        return [provider for provider, _key in self.calls]


@pytest.fixture
def scripted(monkeypatch) -> ScriptedModels:
    models = ScriptedModels()
    monkeypatch.setattr(registry_module, "build_model", models.build)
    return models


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_extractor(tmp_path, scripted, sleeps):
    def _make(keys: dict[str, list[str]], order=None, item_delay=0.0, store=None, seen=None):
        pool = CredentialPool()
        for provider, values in keys.items():
            pool.add_credentials(Provider(provider), values)
        registry = ProviderRegistry(pool, provider_order=order)
        return Extractor(
            registry=registry,
            store=store or JsonlArticleStore(tmp_path / "store"),
            seen=seen if seen is not None else SeenCache(tmp_path / "extracted-urls.json"),
            item_delay=item_delay,
            dedup_cfg=DedupConfig(),
            sleep=sleeps.append,
        )

    return _make
