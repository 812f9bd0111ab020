"""
Cross-run deduplication of extracted article URLs.

`SeenCache` keeps a mapping of URL -> extraction time (milliseconds since the
epoch) in memory and mirrors it to a single JSON file, so a URL extracted in
one process is skipped by the next one until the retention window elapses.

`StoreDuplicateFilter` answers the same question from the article store
instead of a local file, for deployments where several instances share one
store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import time
from typing import Callable, Iterable

from ..storage import ArticleStore, PersistenceError, atomic_write_text

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 30.0


class DuplicateFilter(ABC):
    """Answers whether an article URL was already extracted within the retention window."""

    @abstractmethod
    def is_seen(self, url: str) -> bool:
        raise NotImplementedError

    def mark_seen(self, url: str) -> None:
        self.mark_seen_batch([url])

    @abstractmethod
    def mark_seen_batch(self, urls: Iterable[str]) -> None:
        raise NotImplementedError

    @abstractmethod
    def unmark(self, url: str) -> None:
        """Forget a URL; used to roll back a mark whose document could not be kept."""
        raise NotImplementedError

    @abstractmethod
    def prune_expired(self) -> int:
        raise NotImplementedError


class SeenCache(DuplicateFilter):
    """File-backed URL cache with a retention window.

    The cache is loaded lazily on first use. Records older than the window
    are dropped while loading, evicted when `is_seen` encounters them, and
    swept by `prune_expired`. Every mark is written to disk in one atomic
    replace of the cache file.

    Attributes:
        path: JSON file holding {url: timestamp_ms}
        ttl_ms: Retention window in milliseconds
    """

    def __init__(
        self,
        path: Path,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        clock: Callable[[], float] = time.time,
    ):
        self.path = path
        self.ttl_ms = int(ttl_hours * 60 * 60 * 1000)
        self._clock = clock
        self._entries: dict[str, int] | None = None

    @property
    def loaded(self) -> bool:
        return self._entries is not None

    def load(self) -> dict[str, int]:
        """Return the in-memory cache, reading it from disk on first access.

        A missing, unreadable or malformed file yields an empty cache.
        """
        if self._entries is not None:
            return self._entries

        entries: dict[str, int] = {}
        raw = self._read_file()
        now = self._now_ms()
        for url, ts in raw.items():
            if isinstance(ts, bool) or not isinstance(ts, (int, float)):
                continue
            if now - ts < self.ttl_ms:
                entries[str(url)] = int(ts)
        self._entries = entries
        return entries

    def reset(self) -> None:
        """Drop the in-memory state; the next access reloads from disk."""
        self._entries = None

    def is_seen(self, url: str) -> bool:
        entries = self.load()
        ts = entries.get(url)
        if ts is None:
            return False
        if self._now_ms() - ts >= self.ttl_ms:
            del entries[url]
            return False
        return True

    def mark_seen_batch(self, urls: Iterable[str]) -> None:
        entries = self.load()
        now = self._now_ms()
        previous: dict[str, int | None] = {}
        for url in urls:
            previous.setdefault(url, entries.get(url))
            entries[url] = now
        if not previous:
            return
        try:
            self._persist(entries)
        except PersistenceError:
            for url, ts in previous.items():
                if ts is None:
                    entries.pop(url, None)
                else:
                    entries[url] = ts
            raise

    def unmark(self, url: str) -> None:
        entries = self.load()
        if entries.pop(url, None) is not None:
            self._persist(entries)

    def prune_expired(self) -> int:
        entries = self.load()
        now = self._now_ms()
        expired = [url for url, ts in entries.items() if now - ts >= self.ttl_ms]
        for url in expired:
            del entries[url]
        if expired:
            self._persist(entries)
        return len(expired)

    def __len__(self) -> int:
        return len(self.load())

    def _now_ms(self) -> int:
        return round(self._clock() * 1000)

    def _read_file(self) -> dict:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("Could not read URL cache %s: %s", self.path, exc)
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("URL cache %s is corrupt; starting with an empty cache", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("URL cache %s is not a JSON object; ignoring it", self.path)
            return {}
        return data

    def _persist(self, entries: dict[str, int]) -> None:
        try:
            atomic_write_text(self.path, json.dumps(entries, ensure_ascii=False, indent=2))
        except OSError as exc:
            raise PersistenceError(f"Failed to write URL cache {self.path}: {exc}") from exc


class StoreDuplicateFilter(DuplicateFilter):
    """Deduplicates against documents already in the article store.

    Extraction times of documents inside the retention window are read from
    the store once per load and aged against the clock on every lookup, so a
    long-lived filter stops reporting a URL once its window has passed. URLs
    marked during the run are kept in memory with their mark time; their
    documents are the durable record.
    """

    def __init__(
        self,
        store: ArticleStore,
        collection: str,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.collection = collection
        self.ttl_ms = int(ttl_hours * 60 * 60 * 1000)
        self._clock = clock
        self._entries: dict[str, int] | None = None

    def load(self) -> dict[str, int]:
        if self._entries is None:
            self._entries = self._query()
        return self._entries

    def reset(self) -> None:
        self._entries = None

    def is_seen(self, url: str) -> bool:
        entries = self.load()
        ts = entries.get(url)
        if ts is None:
            return False
        if self._now_ms() - ts >= self.ttl_ms:
            del entries[url]
            return False
        return True

    def mark_seen_batch(self, urls: Iterable[str]) -> None:
        entries = self.load()
        now = self._now_ms()
        for url in urls:
            entries[url] = now

    def unmark(self, url: str) -> None:
        self.load().pop(url, None)

    def prune_expired(self) -> int:
        """Re-read the store, keeping in-memory marks that are still fresh."""
        entries = self.load()
        now = self._now_ms()
        fresh = self._query()
        for url, ts in entries.items():
            if now - ts < self.ttl_ms and ts > fresh.get(url, -1):
                fresh[url] = ts
        expired = sum(1 for url in entries if url not in fresh)
        self._entries = fresh
        return expired

    def _now_ms(self) -> int:
        return round(self._clock() * 1000)

    def _query(self) -> dict[str, int]:
        now = self._now_ms()
        since = datetime.fromtimestamp((now - self.ttl_ms) / 1000, tz=timezone.utc)
        found = self.store.extraction_times(self.collection, since)
        entries = {url: round(ts.timestamp() * 1000) for url, ts in found.items()}
        return {url: ts for url, ts in entries.items() if now - ts < self.ttl_ms}
