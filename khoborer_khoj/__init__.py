"""Khoborer Khoj: scrape Bengali news sites and extract structured records with LLMs."""

from .config import AppConfig, load_config
from .core.types import NewsSource, RawArticle, RunTally, ScrapeResult
from .extractor import Extractor, filter_new_articles
from .runner import RunReport, build_extractor, run_once
from .scrapers import Scraper, run_scrapers

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "Extractor",
    "NewsSource",
    "RawArticle",
    "RunReport",
    "RunTally",
    "ScrapeResult",
    "Scraper",
    "build_extractor",
    "filter_new_articles",
    "load_config",
    "run_once",
    "run_scrapers",
]
