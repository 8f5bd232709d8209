"""Prompt construction for the two suggestion modes.

Both prompts embed the candidate documents as JSON, quote the user's text
verbatim, list the selection rules and pin the exact JSON envelope the model
must answer with (including the empty fallback). Building a prompt performs no
I/O; identical inputs always yield the identical string.

The opening persona line of each mode can be replaced from a YAML file::

    scan_intro: "You are an editor building an internal link graph..."
    lookup_intro: "You are an editor. A writer selected this phrase..."

Rules and output envelopes are fixed and cannot be overridden.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Sequence

import yaml

from .models import CandidateDocument, PhraseLookup, SuggestionRequest, WholeDocumentScan

logger = logging.getLogger("link_weaver.prompts")

MAX_SUGGESTIONS = 5
MIN_ANCHOR_WORDS = 4
MAX_ANCHOR_WORDS = 6

EMPTY_ENVELOPE = '{"suggestions": []}'


@dataclass(frozen=True)
class PromptTemplates:
    """Replaceable introductory text for each suggestion mode."""

    scan_intro: str = (
        "You are an expert SEO who is building an internal link graph for a blog. "
        "Your task is to analyze the draft article and suggest internal links."
    )
    lookup_intro: str = (
        "You are an expert SEO. A blog editor has selected the following phrase "
        "as a potential anchor text for an internal link:"
    )


DEFAULT_TEMPLATES = PromptTemplates()


def load_prompt_templates(path: Path | str) -> PromptTemplates:
    """Load intro overrides from a YAML file, keeping defaults for absent keys."""

    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Prompt template file {path} must contain a mapping")

    overrides = {}
    for key in ("scan_intro", "lookup_intro"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            overrides[key] = value.strip()
    unknown = sorted(set(data) - {"scan_intro", "lookup_intro"})
    if unknown:
        logger.warning("Ignoring unknown prompt template keys: %s", ", ".join(unknown))
    return replace(DEFAULT_TEMPLATES, **overrides)


def _candidates_json(candidates: Sequence[CandidateDocument]) -> str:
    return json.dumps([doc.to_prompt_dict() for doc in candidates], ensure_ascii=False)


def build_scan_prompt(
    draft_text: str,
    candidates: Sequence[CandidateDocument],
    templates: PromptTemplates = DEFAULT_TEMPLATES,
) -> str:
    """Prompt asking the model to find anchor phrases in a whole draft."""

    return (
        f"{templates.scan_intro}\n\n"
        "Here is a JSON list of all available articles to link to "
        "(including their 'id', 'title', and 'url'):\n"
        f"{_candidates_json(candidates)}\n\n"
        "Here is the content of the new draft article:\n"
        "---\n"
        f"{draft_text}\n"
        "---\n\n"
        "Follow these rules STRICTLY:\n"
        "1. The 'anchor_text' MUST be a phrase that exists verbatim within the draft "
        "article's content. Do NOT invent or summarize phrases.\n"
        f"2. The 'anchor_text' MUST be between {MIN_ANCHOR_WORDS} and {MAX_ANCHOR_WORDS} "
        "words long. This is a strict range.\n"
        "3. The selected 'anchor_text' should be a self-contained, natural-sounding phrase. "
        "Avoid selecting awkward sentence fragments.\n"
        f"4. Find up to {MAX_SUGGESTIONS} of the best possible linking opportunities, then "
        "find the single most contextually relevant article from the JSON list for each one.\n"
        "5. NEVER use the title of an article from the JSON list as the 'anchor_text' "
        "unless that exact phrase also appears in the draft article.\n\n"
        "Return your answer ONLY as a JSON object with a single key 'suggestions' whose "
        "value is an array of objects. Each object must have three keys: 'anchor_text', "
        "'post_id_to_link', and 'reasoning'. If you cannot find any good matches that "
        f"follow all the rules, return {EMPTY_ENVELOPE}."
    )


def build_lookup_prompt(
    anchor_text: str,
    candidates: Sequence[CandidateDocument],
    templates: PromptTemplates = DEFAULT_TEMPLATES,
) -> str:
    """Prompt asking the model to rank candidates for one selected phrase."""

    return (
        f"{templates.lookup_intro}\n"
        f'"{anchor_text}"\n\n'
        "Here is a JSON list of all available articles to link to "
        "(including their 'id', 'title', and 'url'):\n"
        f"{_candidates_json(candidates)}\n\n"
        f"Your task: Find the TOP {MAX_SUGGESTIONS} most contextually relevant articles "
        "that would be the best link targets for this specific anchor text phrase.\n\n"
        "Return ONLY a JSON object with a single key 'suggestions' whose value is an array "
        "of objects. Each object must have exactly two keys: 'post_id' (integer) and "
        "'reasoning' (brief explanation). Sort by relevance, most relevant first. If no "
        f"suitable match exists, return {EMPTY_ENVELOPE}."
    )


def build_prompt(
    request: SuggestionRequest,
    candidates: Sequence[CandidateDocument],
    templates: PromptTemplates = DEFAULT_TEMPLATES,
) -> str:
    if isinstance(request, WholeDocumentScan):
        return build_scan_prompt(request.draft_text, candidates, templates)
    if isinstance(request, PhraseLookup):
        return build_lookup_prompt(request.anchor_text.strip(), candidates, templates)
    raise TypeError(f"Unsupported suggestion request: {type(request).__name__}")


__all__ = [
    "DEFAULT_TEMPLATES",
    "MAX_SUGGESTIONS",
    "PromptTemplates",
    "build_lookup_prompt",
    "build_prompt",
    "build_scan_prompt",
    "load_prompt_templates",
]
