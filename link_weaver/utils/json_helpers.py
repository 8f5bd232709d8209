"""Utility helpers for parsing JSON produced by LLM responses."""

from __future__ import annotations

import json
from typing import Any


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ``` or ```json fence if the model added one."""

    stripped = (text or "").strip()
    if not stripped.startswith("```"):
        return stripped
    lines = stripped.splitlines()
    if lines and lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].strip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def parse_json_payload(text: str) -> Any:
    """Parse generated text as a single JSON document.

    Unlike a lenient extractor this never searches for JSON embedded in prose:
    anything other than one JSON value (optionally fenced) raises ValueError.
    """

    stripped = strip_code_fence(text)
    if not stripped:
        raise ValueError("Generated text is empty")
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Generated text is not valid JSON: {exc.msg} at char {exc.pos}") from exc


__all__ = ["parse_json_payload", "strip_code_fence"]
