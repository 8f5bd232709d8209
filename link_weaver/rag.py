"""Source discovery through an external knowledge-base chat API."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .config import RagConfig
from .errors import ProviderError
from .models import RagSource

CONVERSATION_TIMEOUT = 15
CHAT_TIMEOUT = 60
MAX_SOURCES = 5
SNIPPET_CHARS = 200


class RagClient:
    """Two-step client: open a conversation, then ask it for sources.

    The second call needs the conversation id from the first, so the steps
    always run in sequence.
    """

    def __init__(self, config: RagConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.session = session or requests.Session()
        self.logger = logging.getLogger("link_weaver.rag")

    @property
    def base_url(self) -> str:
        return (self.config.base_url or "").strip().rstrip("/")

    def get_sources(self, query: str) -> List[RagSource]:
        if not self.base_url:
            raise ProviderError.config_missing("RAG Chatbot API URL is not configured.")

        start = time.perf_counter()
        conversation_id = self._open_conversation()
        data = self._post(
            f"{self.base_url}/api/chat/{quote(conversation_id, safe='')}",
            {"user_ip": self.config.user_ip, "message": query, "user_type": "general"},
            timeout=CHAT_TIMEOUT,
        )

        raw_sources = data.get("sources")
        if raw_sources is None:
            raw_sources = []
        if not isinstance(raw_sources, list):
            raise ProviderError.invalid_response("Chatbot API returned malformed sources.")

        sources = select_sources(raw_sources)
        self.logger.info(
            "RAG sources retrieved",
            extra={
                "sources": len(sources),
                "elapsed_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return sources

    def _open_conversation(self) -> str:
        data = self._post(
            f"{self.base_url}/api/conversation/get_id",
            {"conversation_id": None},
            timeout=CONVERSATION_TIMEOUT,
        )
        conversation_id = data.get("conversationId")
        if not conversation_id:
            raise ProviderError.invalid_response("Could not obtain conversation ID from chatbot API.")
        return str(conversation_id)

    def _post(self, url: str, payload: Dict[str, Any], *, timeout: int) -> Dict[str, Any]:
        try:
            response = self.session.post(url, json=payload, timeout=timeout)
        except requests.exceptions.RequestException as exc:
            self.logger.error(
                "Chatbot API request failed",
                extra={"error_kind": "request_failed"},
            )
            raise ProviderError.request_failed(f"Chatbot API request failed: {exc}") from exc

        if response.status_code != 200:
            self.logger.error("Chatbot API request failed", extra={"status_code": response.status_code})
            raise ProviderError.api_error(
                f"Chatbot API returned status {response.status_code}.",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError.invalid_response("Could not parse chatbot API response.") from exc
        if not isinstance(data, dict):
            raise ProviderError.invalid_response("Could not parse chatbot API response.")
        return data


def select_sources(raw_sources: List[Any], limit: int = MAX_SOURCES) -> List[RagSource]:
    """Deduplicate by plain URL, prefer deep links, trim snippets, cap the list."""

    seen = set()
    selected: List[RagSource] = []
    for source in raw_sources:
        if not isinstance(source, dict):
            continue
        deep_link = source.get("deep_link_url") or ""
        plain_url = source.get("url") or deep_link
        if not plain_url or plain_url in seen:
            continue
        seen.add(plain_url)
        selected.append(
            RagSource(
                title=str(source.get("title") or source.get("name") or ""),
                url=str(deep_link or plain_url),
                snippet=str(source.get("text") or "")[:SNIPPET_CHARS],
            )
        )
        if len(selected) >= limit:
            break
    return selected


__all__ = ["CHAT_TIMEOUT", "CONVERSATION_TIMEOUT", "MAX_SOURCES", "RagClient", "select_sources"]
