"""Site scrapers and the concurrent scrape stage."""

from .base import Scraper, run_scrapers

__all__ = ["Scraper", "run_scrapers"]
