"""Tests for extractor bootstrap, the scrape stage and the run trigger."""

from __future__ import annotations

import logging

import pytest

from conftest import make_article
from khoborer_khoj.config import AppConfig
from khoborer_khoj.core.seen_cache import SeenCache, StoreDuplicateFilter
from khoborer_khoj.core.types import NewsSource
from khoborer_khoj.llm.providers.base import Provider, ProviderError
from khoborer_khoj.llm.providers.factory import DEFAULT_KEY_ENV
from khoborer_khoj.runner import RunReport, build_extractor, run_once
from khoborer_khoj.scrapers import Scraper, run_scrapers

logger = logging.getLogger("khoborer_khoj.tests")


class StaticScraper(Scraper):
    def __init__(self, name: str, articles):
        self.source = NewsSource(name=name, base_url=f"https://{name.lower().replace(' ', '')}.example")
        self._articles = articles

    def scrape(self):
        return list(self._articles)


class BrokenScraper(Scraper):
    source = NewsSource(name="Broken Daily", base_url="https://broken.example")

    def scrape(self):
        raise ConnectionError("site unreachable")


@pytest.fixture
def clean_env(monkeypatch):
    for prefix in DEFAULT_KEY_ENV.values():
        monkeypatch.delenv(prefix, raising=False)
        for i in range(1, 21):
            monkeypatch.delenv(f"{prefix}_{i}", raising=False)
    monkeypatch.delenv("URL_CACHE_FILE", raising=False)
    monkeypatch.delenv("ARTICLES_COLLECTION", raising=False)
    return monkeypatch


@pytest.fixture
def cfg(tmp_path) -> AppConfig:
    cfg = AppConfig()
    cfg.cache.data_dir = str(tmp_path / "data")
    cfg.extract.retry_delay_seconds = 0
    cfg.logging.console = False
    cfg.logging.file = False
    return cfg


def test_build_extractor_loads_keys_from_environment(clean_env, cfg, tmp_path):
    clean_env.setenv("GROQ_API_KEY", "g0")
    clean_env.setenv("GROQ_API_KEY_2", "g2")
    clean_env.setenv("CEREBRAS_API_KEY_1", "c1")

    extractor = build_extractor(cfg, load_env=False)

    assert extractor.registry.get_provider_order() == [Provider.GROQ, Provider.CEREBRAS]
    assert extractor.registry.credential_count(Provider.GROQ) == 2
    assert isinstance(extractor.seen, SeenCache)
    assert extractor.seen.path == tmp_path / "data" / "extracted-urls.json"
    assert extractor.collection == "articles"
    assert extractor.retry_delay == 0


def test_build_extractor_order_precedence(clean_env, cfg):
    clean_env.setenv("GROQ_API_KEY", "g0")
    cfg.providers.order = ["cerebras", "groq"]

    assert build_extractor(cfg, load_env=False).registry.get_provider_order() == [
        Provider.CEREBRAS,
        Provider.GROQ,
    ]
    assert build_extractor(cfg, load_env=False, provider_order=["google"]).registry.get_provider_order() == [
        Provider.GOOGLE
    ]


def test_build_extractor_store_strategy(clean_env, cfg):
    cfg.dedup.strategy = "store"

    assert isinstance(build_extractor(cfg, load_env=False).seen, StoreDuplicateFilter)

    cfg.dedup.strategy = "redis"
    with pytest.raises(ValueError, match="Unsupported dedup strategy"):
        build_extractor(cfg, load_env=False)


def test_run_scrapers_skips_failures_and_keeps_order():
    scrapers = [
        StaticScraper("Prothom Alo", [make_article(1)]),
        BrokenScraper(),
        StaticScraper("Kaler Kantho", [make_article(2, source="Kaler Kantho")]),
    ]

    results = run_scrapers(scrapers, logger)

    assert [r.source for r in results] == ["Prothom Alo", "Kaler Kantho"]
    assert all(r.scraped_at for r in results)
    assert results[1].articles[0].source == "Kaler Kantho"


def test_run_scrapers_with_no_scrapers():
    assert run_scrapers([], logger) == []


def test_run_once_scrapes_extracts_and_snapshots(make_extractor, scripted, cfg, tmp_path):
    scripted.script(Provider.GROQ, ProviderError("HTTP 503", Provider.GROQ, "m", status_code=503))
    extractor = make_extractor({"groq": ["g1"], "cerebras": ["c1"]})
    scrapers = [StaticScraper("Prothom Alo", [make_article(1), make_article(2)]), BrokenScraper()]

    report = run_once(cfg, scrapers, extractor=extractor, logger=logger)

    assert report.success
    assert report.sources == 1
    assert report.total_articles == 2
    assert report.extracted == 2
    assert report.failed == 0
    assert report.exhausted_providers == ["groq"]
    assert len(list((tmp_path / "data").glob("scrape-*.json"))) == 1
    payload = report.to_dict()
    assert payload["totalArticles"] == 2
    assert payload["duration"].endswith("s")
    assert payload["results"][0]["source"] == "Prothom Alo"


def test_run_once_without_articles_skips_extraction(cfg, tmp_path):
    report = run_once(cfg, [StaticScraper("Prothom Alo", [])], logger=logger)

    assert report.success
    assert report.total_articles == 0
    assert list((tmp_path / "data").glob("scrape-*.json"))


def test_run_once_reports_failure_instead_of_raising(clean_env, cfg):
    cfg.store.save_scrape_results = False

    report = run_once(cfg, [StaticScraper("Prothom Alo", [make_article(1)])], logger=logger)

    assert not report.success
    assert "No providers available" in report.error
    assert report.to_dict() == {
        "success": False,
        "duration": f"{report.duration_seconds:.1f}s",
        "error": report.error,
    }


def test_report_defaults():
    report = RunReport(success=True, duration_seconds=2.0)

    assert report.to_dict()["duration"] == "2.0s"
    assert report.to_dict()["exhaustedProviders"] == []
