"""HTTP clients for the LLM backends that rank link candidates.

Two backends are supported: Google's hosted Gemini ``generateContent`` API
(asked for an ``application/json`` response) and any OpenAI-compatible
``/chat/completions`` endpoint (asked for a ``json_object`` response). Both
expose :meth:`get_suggestions`, which returns the parsed JSON value the model
generated or raises :class:`ProviderError`. No retries are attempted.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Protocol

import requests

from .config import GeminiConfig, LLMConfig, OpenAICompatibleConfig
from .errors import ProviderError
from .utils.json_helpers import parse_json_payload

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
REQUEST_TIMEOUT = 60


class SuggestionClient(Protocol):
    """Interface implemented by every LLM backend."""

    provider: str

    def get_suggestions(self, prompt_text: str) -> Any:
        """Send the prompt and return the JSON value the model produced."""


class _JSONChatClient:
    """Shared transport: one POST, status check, JSON body decoding."""

    provider = "llm"

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()
        self.logger = logging.getLogger(f"link_weaver.llm_client.{self.provider}")

    def get_suggestions(self, prompt_text: str) -> Any:
        text = self._generate(prompt_text)
        try:
            return parse_json_payload(text)
        except ValueError as exc:
            self.logger.warning(
                "Generated text was not JSON",
                extra={"provider": self.provider, "error_kind": "invalid_response"},
            )
            raise ProviderError.invalid_response(
                f"{self._label} response was not valid JSON: {exc}"
            ) from exc

    @property
    def _label(self) -> str:
        return "LLM API"

    def _generate(self, prompt_text: str) -> str:
        raise NotImplementedError

    def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        *,
        headers: Dict[str, str],
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        start = time.perf_counter()
        try:
            response = self.session.post(
                url,
                params=params,
                data=json.dumps(payload),
                headers=headers,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.Timeout as exc:
            msg = f"{self._label} request timed out after {REQUEST_TIMEOUT}s."
            self.logger.error(msg, extra={"provider": self.provider, "error_kind": "request_failed"})
            raise ProviderError.request_failed(msg) from exc
        except requests.exceptions.RequestException as exc:
            msg = f"{self._label} request failed: {exc}"
            self.logger.error(msg, extra={"provider": self.provider, "error_kind": "request_failed"})
            raise ProviderError.request_failed(msg) from exc
        elapsed = time.perf_counter() - start

        if response.status_code != 200:
            self.logger.error(
                "LLM request failed",
                extra={
                    "provider": self.provider,
                    "status_code": response.status_code,
                    "elapsed_ms": round(elapsed * 1000, 2),
                },
            )
            raise ProviderError.api_error(
                f"{self._label} returned status {response.status_code}.",
                status_code=response.status_code,
                body=response.text,
            )

        self.logger.info(
            "LLM request completed",
            extra={
                "provider": self.provider,
                "status_code": response.status_code,
                "elapsed_ms": round(elapsed * 1000, 2),
            },
        )
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError.invalid_response(f"Could not parse {self._label} response.") from exc
        if not isinstance(data, dict):
            raise ProviderError.invalid_response(f"Could not parse {self._label} response.")
        return data


class GeminiClient(_JSONChatClient):
    """Client for Gemini's generateContent endpoint with JSON output."""

    provider = "gemini"

    def __init__(self, config: GeminiConfig, session: Optional[requests.Session] = None) -> None:
        super().__init__(session)
        self.config = config

    @property
    def _label(self) -> str:
        return "Gemini API"

    def _generate(self, prompt_text: str) -> str:
        if not self.config.api_key:
            raise ProviderError.config_missing("Gemini API key is not configured in Link Weaver settings.")

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        data = self._post_json(
            GEMINI_URL.format(model=self.config.model),
            payload,
            headers={"Content-Type": "application/json"},
            params={"key": self.config.api_key},
        )
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text or not isinstance(text, str):
            raise ProviderError.invalid_response("Could not parse Gemini API response.")
        return text


class OpenAICompatibleClient(_JSONChatClient):
    """Client for endpoints implementing OpenAI's /chat/completions."""

    provider = "local"

    def __init__(self, config: OpenAICompatibleConfig, session: Optional[requests.Session] = None) -> None:
        super().__init__(session)
        self.config = config

    @property
    def _label(self) -> str:
        return "Local LLM API"

    @property
    def endpoint(self) -> str:
        return (self.config.base_url or "").rstrip("/") + "/chat/completions"

    def _generate(self, prompt_text: str) -> str:
        base_url = (self.config.base_url or "").rstrip("/")
        if not base_url or not self.config.model:
            raise ProviderError.config_missing(
                "Local LLM URL or model name is not configured in Link Weaver settings."
            )

        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt_text}],
            "response_format": {"type": "json_object"},
        }
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        data = self._post_json(self.endpoint, payload, headers=headers)
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text or not isinstance(text, str):
            raise ProviderError.invalid_response("Could not parse local LLM API response.")
        return text


def create_llm_client(config: LLMConfig, session: Optional[requests.Session] = None) -> SuggestionClient:
    """Return the client for the active provider variant."""

    if isinstance(config, GeminiConfig):
        return GeminiClient(config, session=session)
    if isinstance(config, OpenAICompatibleConfig):
        return OpenAICompatibleClient(config, session=session)
    raise TypeError(f"Unsupported LLM configuration: {type(config).__name__}")


__all__ = [
    "GEMINI_URL",
    "GeminiClient",
    "OpenAICompatibleClient",
    "REQUEST_TIMEOUT",
    "SuggestionClient",
    "create_llm_client",
]
