"""Validation of raw LLM output and resolution against the candidate corpus."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from .errors import ProviderError
from .models import (
    CandidateDocument,
    LinkSuggestion,
    PhraseLookup,
    SuggestionRequest,
    WholeDocumentScan,
    canonical_id,
)

logger = logging.getLogger("link_weaver.suggestions")

SCAN_ID_KEY = "post_id_to_link"
LOOKUP_ID_KEY = "post_id"


def unwrap_suggestions(raw: Any) -> List[Any]:
    """Accept either ``[...]`` or ``{"suggestions": [...]}``.

    Any other shape is reported as an invalid provider response; the joiner
    never invents structure.
    """

    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("suggestions"), list):
        return raw["suggestions"]
    raise ProviderError.invalid_response("API returned a response without a suggestions array.")


def _raw_target(entry: Dict[str, Any], primary_key: str) -> Any:
    fallback_key = LOOKUP_ID_KEY if primary_key == SCAN_ID_KEY else SCAN_ID_KEY
    value = entry.get(primary_key)
    if value is None:
        value = entry.get(fallback_key)
    return value


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _index_candidates(candidates: Sequence[CandidateDocument]) -> Dict[str, CandidateDocument]:
    """Map canonical ids to documents; on a collision the first document wins."""

    by_key: Dict[str, CandidateDocument] = {}
    for doc in candidates:
        key = doc.key
        if key is None:
            continue
        existing = by_key.get(key)
        if existing is not None:
            logger.warning(
                "Corpus ids %r and %r share key %r; keeping the first",
                existing.id,
                doc.id,
                key,
            )
            continue
        by_key[key] = doc
    return by_key


def _resolve(
    value: Any,
    exact: Dict[Any, CandidateDocument],
    by_key: Dict[str, CandidateDocument],
) -> CandidateDocument | None:
    if isinstance(value, str) and value in exact:
        return exact[value]
    key = canonical_id(value)
    return by_key.get(key) if key is not None else None


def join_suggestions(
    raw: Any,
    candidates: Sequence[CandidateDocument],
    request: SuggestionRequest,
) -> List[LinkSuggestion]:
    """Turn a provider payload into suggestions that point at real documents.

    Entries that are not objects, carry no usable id, point at a document
    outside ``candidates`` or (for a whole-document scan) have no anchor text
    are skipped. Provider order is kept and nothing is truncated.
    """

    entries = unwrap_suggestions(raw)
    by_key = _index_candidates(candidates)
    exact = {doc.id: doc for doc in candidates if isinstance(doc.id, str)}
    is_scan = isinstance(request, WholeDocumentScan)
    id_key = SCAN_ID_KEY if is_scan else LOOKUP_ID_KEY
    echoed_anchor = request.anchor_text.strip() if isinstance(request, PhraseLookup) else None

    joined: List[LinkSuggestion] = []
    dropped = 0
    for entry in entries:
        if not isinstance(entry, dict):
            dropped += 1
            logger.debug("Skipping non-object suggestion entry: %r", entry)
            continue
        raw_id = _raw_target(entry, id_key)
        document = _resolve(raw_id, exact, by_key)
        if document is None:
            dropped += 1
            logger.debug("Skipping suggestion for unknown document id %r", raw_id)
            continue

        anchor = _optional_text(entry.get("anchor_text")) if is_scan else echoed_anchor
        if is_scan and not anchor:
            dropped += 1
            logger.debug("Skipping scan suggestion without anchor text for id %r", document.id)
            continue

        joined.append(
            LinkSuggestion(
                target_id=document.id,
                title=document.title,
                url=document.url,
                anchor_text=anchor,
                reasoning=_optional_text(entry.get("reasoning")),
            )
        )

    if dropped:
        logger.warning(
            "Dropped unusable suggestions",
            extra={"mode": "scan" if is_scan else "lookup", "dropped": dropped, "suggestions": len(joined)},
        )
    return joined


__all__ = ["LOOKUP_ID_KEY", "SCAN_ID_KEY", "join_suggestions", "unwrap_suggestions"]
