"""Link Weaver: LLM and knowledge-base link suggestions for draft documents."""

from .errors import ErrorKind, LinkWeaverError, ProviderError, RequestError
from .models import (
    NOT_APPLICABLE,
    CandidateDocument,
    LinkSuggestion,
    PathResult,
    PhraseLookup,
    RagSource,
    SuggestionOutcome,
    WholeDocumentScan,
)
from .orchestrator import LinkWeaver

__version__ = "0.1.0"

__all__ = [
    "CandidateDocument",
    "ErrorKind",
    "LinkSuggestion",
    "LinkWeaver",
    "LinkWeaverError",
    "NOT_APPLICABLE",
    "PathResult",
    "PhraseLookup",
    "ProviderError",
    "RagSource",
    "RequestError",
    "SuggestionOutcome",
    "WholeDocumentScan",
]
