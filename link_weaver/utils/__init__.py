"""Utility modules for Link Weaver."""

from .json_helpers import parse_json_payload, strip_code_fence

__all__ = ["parse_json_payload", "strip_code_fence"]
