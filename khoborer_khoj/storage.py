"""
Persistence for extracted articles and raw scrape snapshots.

The article store is addressed by collection name. Each collection is an
append-only JSONL file; every line is one document with a generated `_id`.
Deletion rewrites the file without the removed document.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Iterator
import uuid

from .core.types import ScrapeResult

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """A document or cache write did not reach durable storage."""


class ArticleStore(ABC):
    """Document store that extracted articles are written to."""

    @abstractmethod
    def insert(self, collection: str, document: dict[str, Any]) -> str:
        """Insert a document and return its id."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, collection: str, document_id: str) -> bool:
        """Delete a document by id. Returns True if a document was removed."""
        raise NotImplementedError

    @abstractmethod
    def extraction_times(self, collection: str, since: datetime) -> dict[str, datetime]:
        """Return {url: latest extractedAt} for documents extracted at or after `since`."""
        raise NotImplementedError


class JsonlArticleStore(ArticleStore):
    """File-backed store: one `<collection>.jsonl` file per collection under `root`."""

    def __init__(self, root: Path):
        self.root = root

    def collection_path(self, collection: str) -> Path:
        return self.root / f"{collection}.jsonl"

    def insert(self, collection: str, document: dict[str, Any]) -> str:
        doc = dict(document)
        doc_id = str(doc.get("_id") or uuid.uuid4().hex)
        doc["_id"] = doc_id
        path = self.collection_path(collection)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(doc, ensure_ascii=False, default=str))
                handle.write("\n")
        except OSError as exc:
            raise PersistenceError(f"Failed to write to {path}: {exc}") from exc
        return doc_id

    def delete(self, collection: str, document_id: str) -> bool:
        path = self.collection_path(collection)
        docs = list(self.find(collection))
        kept = [doc for doc in docs if doc.get("_id") != document_id]
        if len(kept) == len(docs):
            return False
        lines = "".join(json.dumps(doc, ensure_ascii=False, default=str) + "\n" for doc in kept)
        try:
            atomic_write_text(path, lines)
        except OSError as exc:
            raise PersistenceError(f"Failed to rewrite {path}: {exc}") from exc
        return True

    def find(self, collection: str) -> Iterator[dict[str, Any]]:
        """Yield every readable document in a collection, skipping corrupt lines."""
        path = self.collection_path(collection)
        if not path.exists():
            return
        with path.open("r", encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    doc = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("Skipping corrupt line %d in %s", line_no, path)
                    continue
                if isinstance(doc, dict):
                    yield doc

    def count(self, collection: str) -> int:
        return sum(1 for _ in self.find(collection))

    def extraction_times(self, collection: str, since: datetime) -> dict[str, datetime]:
        times: dict[str, datetime] = {}
        for doc in self.find(collection):
            url = doc.get("url")
            extracted_at = _parse_timestamp(doc.get("extractedAt"))
            if not url or extracted_at is None or extracted_at < since:
                continue
            url = str(url)
            if url not in times or extracted_at > times[url]:
                times[url] = extracted_at
        return times


def save_results(results: list[ScrapeResult], data_dir: Path) -> Path:
    """Write the raw scrape results of one run to `scrape-<timestamp>.json`."""
    data_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    path = data_dir / f"scrape-{timestamp}.json"
    payload = [result.to_dict() for result in results]
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Results saved to %s", path)
    return path


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def atomic_write_text(path: Path, text: str) -> None:
    """Replace `path` with `text` so readers never observe a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
