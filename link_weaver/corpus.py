"""Candidate corpus boundary.

The weaver never owns document storage; it asks a :class:`CorpusProvider` for
a fresh snapshot of link targets on every request.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Protocol

from .models import CandidateDocument, canonical_id

PUBLISHED = "publish"


class CorpusProvider(Protocol):
    """Supplies published documents other than the one being edited."""

    def list_candidates(self, exclude_id: Any = None) -> List[CandidateDocument]:
        """Return a snapshot of linkable documents."""


@dataclass(frozen=True)
class StoredDocument:
    """A document as the store knows it, including its publication state."""

    id: Any
    title: str
    url: str
    status: str = PUBLISHED

    def as_candidate(self) -> CandidateDocument:
        return CandidateDocument(id=self.id, title=self.title, url=self.url)


class InMemoryCorpus:
    """Corpus backed by a list of stored documents."""

    def __init__(self, documents: Iterable[StoredDocument] = ()) -> None:
        self._documents = tuple(documents)

    def list_candidates(self, exclude_id: Any = None) -> List[CandidateDocument]:
        excluded = canonical_id(exclude_id)
        return [
            doc.as_candidate()
            for doc in self._documents
            if doc.status == PUBLISHED and (excluded is None or canonical_id(doc.id) != excluded)
        ]

    def __len__(self) -> int:
        return len(self._documents)


def load_corpus_file(path: Path | str) -> InMemoryCorpus:
    """Load ``[{"id", "title", "url", "status"?}, ...]`` from a JSON file."""

    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, list):
        raise ValueError(f"Corpus file {path} must contain a JSON list")

    documents = []
    for index, item in enumerate(data):
        if not isinstance(item, dict) or item.get("id") is None or not item.get("url"):
            raise ValueError(f"Corpus entry {index} in {path} needs at least 'id' and 'url'")
        documents.append(
            StoredDocument(
                id=item["id"],
                title=str(item.get("title") or ""),
                url=str(item["url"]),
                status=str(item.get("status") or PUBLISHED),
            )
        )
    return InMemoryCorpus(documents)


__all__ = ["CorpusProvider", "InMemoryCorpus", "PUBLISHED", "StoredDocument", "load_corpus_file"]
