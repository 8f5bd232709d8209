"""Error taxonomy shared by the adapters, the orchestrator and the HTTP layer."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    CONFIG_MISSING = "config_missing"
    API_ERROR = "api_error"
    INVALID_RESPONSE = "invalid_response"
    REQUEST_FAILED = "request_failed"
    EMPTY_INPUT = "empty_input"
    EMPTY_CORPUS = "empty_corpus"


class LinkWeaverError(RuntimeError):
    """Base error carrying a machine-readable kind next to the message."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "kind": self.kind.value}


class ProviderError(LinkWeaverError):
    """Raised by an LLM or RAG adapter; reported per path by the orchestrator."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(kind, message)
        self.status_code = status_code
        self.body = body

    @classmethod
    def config_missing(cls, message: str) -> "ProviderError":
        return cls(ErrorKind.CONFIG_MISSING, message)

    @classmethod
    def invalid_response(cls, message: str) -> "ProviderError":
        return cls(ErrorKind.INVALID_RESPONSE, message)

    @classmethod
    def api_error(cls, message: str, status_code: int, body: str) -> "ProviderError":
        return cls(ErrorKind.API_ERROR, message, status_code=status_code, body=body)

    @classmethod
    def request_failed(cls, message: str) -> "ProviderError":
        return cls(ErrorKind.REQUEST_FAILED, message)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        return payload


class RequestError(LinkWeaverError):
    """Precondition failure detected before any provider is contacted."""


__all__ = ["ErrorKind", "LinkWeaverError", "ProviderError", "RequestError"]
