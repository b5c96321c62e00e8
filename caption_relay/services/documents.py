"""
Reference documents for assist queries: plain text the user supplies up front.

In memory only. Optionally seeded at startup from DOCUMENTS_PATH, a JSON list of
{"id", "name", "content"} objects. Binary formats are not parsed here.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceDocument:
    id: str
    name: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


class DocumentLibrary:
    def __init__(self) -> None:
        self._docs: dict[str, ReferenceDocument] = {}

    def __len__(self) -> int:
        return len(self._docs)

    def documents(self) -> list[ReferenceDocument]:
        return list(self._docs.values())

    def get(self, doc_id: str) -> Optional[ReferenceDocument]:
        return self._docs.get(doc_id)

    def add(self, name: str, content: str, doc_id: Optional[str] = None) -> ReferenceDocument:
        """Add or replace a document. Raises ValueError for empty content."""
        content = (content or "").strip()
        if not content:
            raise ValueError("document content is empty")
        doc = ReferenceDocument(id=doc_id or uuid.uuid4().hex[:12], name=(name or "Untitled").strip(), content=content)
        self._docs[doc.id] = doc
        return doc

    def remove(self, doc_id: str) -> bool:
        return self._docs.pop(doc_id, None) is not None

    def clear(self) -> None:
        self._docs.clear()

    def load_file(self, path: str) -> int:
        """Load documents from a JSON file. Returns the number loaded; bad files are logged and skipped."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not load reference documents from %s: %s", path, e)
            return 0
        if not isinstance(data, list):
            logger.warning("Reference documents file %s is not a JSON list", path)
            return 0
        loaded = 0
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                self.add(str(item.get("name") or ""), str(item.get("content") or ""), item.get("id"))
                loaded += 1
            except ValueError:
                continue
        logger.info("Loaded %d reference documents from %s", loaded, path)
        return loaded
