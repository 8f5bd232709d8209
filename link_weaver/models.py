"""Request-scoped value objects exchanged between the weaver's components."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from .errors import ProviderError

_INTEGRAL = re.compile(r"^[+-]?\d+$")

T = TypeVar("T")


def canonical_id(value: Any) -> Optional[str]:
    """Return a comparable form of a document id, or None if unusable.

    Numbers and numeral strings collapse to the same key, so ``1``, ``"1"``,
    ``1.0`` and ``" 01 "`` all resolve to ``"1"``.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    text = str(value).strip()
    if not text:
        return None
    if _INTEGRAL.match(text):
        return str(int(text))
    return text


@dataclass(frozen=True)
class CandidateDocument:
    """A document eligible to be a link target."""

    id: Any
    title: str
    url: str

    @property
    def key(self) -> Optional[str]:
        return canonical_id(self.id)

    def to_prompt_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "url": self.url}


@dataclass(frozen=True)
class WholeDocumentScan:
    """Scan a whole draft for anchor phrases and their targets."""

    draft_text: str
    exclude_id: Any = None


@dataclass(frozen=True)
class PhraseLookup:
    """Rank candidates for a phrase the editor already selected."""

    anchor_text: str
    exclude_id: Any = None


SuggestionRequest = Union[WholeDocumentScan, PhraseLookup]


@dataclass(frozen=True)
class LinkSuggestion:
    target_id: Any
    title: str
    url: str
    anchor_text: Optional[str] = None
    reasoning: Optional[str] = None

    def to_dict(self, id_key: str = "post_id_to_link") -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            id_key: self.target_id,
            "title": self.title,
            "url": self.url,
            "reasoning": self.reasoning or "",
        }
        if self.anchor_text is not None:
            payload["anchor_text"] = self.anchor_text
        return payload


@dataclass(frozen=True)
class RagSource:
    """A knowledge-base passage returned by the chat API."""

    title: str
    url: str
    snippet: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "url": self.url, "text": self.snippet}


@dataclass(frozen=True)
class PathResult(Generic[T]):
    """Outcome of one provider path: items on success, error on failure."""

    items: List[T] = field(default_factory=list)
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, items: List[T]) -> "PathResult[T]":
        return cls(items=list(items))

    @classmethod
    def failure(cls, error: ProviderError) -> "PathResult[T]":
        return cls(items=[], error=error)

    def to_dict(self, **item_kwargs: Any) -> Dict[str, Any]:
        return {
            "items": [item.to_dict(**item_kwargs) for item in self.items],  # type: ignore[attr-defined]
            "error": self.error.to_dict() if self.error else None,
        }


class _NotApplicable:
    """Marks a path the orchestrator did not run for this request."""

    _instance: Optional["_NotApplicable"] = None

    def __new__(cls) -> "_NotApplicable":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"


NOT_APPLICABLE = _NotApplicable()


@dataclass(frozen=True)
class SuggestionOutcome:
    """Independent per-path results for one suggestion request."""

    llm: PathResult[LinkSuggestion]
    rag: Union[PathResult[RagSource], _NotApplicable] = NOT_APPLICABLE


__all__ = [
    "CandidateDocument",
    "LinkSuggestion",
    "NOT_APPLICABLE",
    "PathResult",
    "PhraseLookup",
    "RagSource",
    "SuggestionOutcome",
    "SuggestionRequest",
    "WholeDocumentScan",
    "canonical_id",
]
