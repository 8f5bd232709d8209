"""Request orchestration for link suggestions.

One :class:`LinkWeaver` call handles one suggestion request. Corpus and
provider configuration are read once at entry; the LLM path (prompt, provider
call, join) and, for phrase lookups, the RAG path run independently and each
reports its own :class:`PathResult`. Provider failures never escape as
exceptions; only request preconditions raise :class:`RequestError`.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Union

from .config import ProviderConfig, RagConfig
from .corpus import CorpusProvider
from .errors import ErrorKind, ProviderError, RequestError
from .llm_client import SuggestionClient, create_llm_client
from .models import (
    NOT_APPLICABLE,
    CandidateDocument,
    LinkSuggestion,
    PathResult,
    PhraseLookup,
    RagSource,
    SuggestionOutcome,
    SuggestionRequest,
    WholeDocumentScan,
)
from .prompts import DEFAULT_TEMPLATES, PromptTemplates, build_prompt
from .rag import RagClient
from .suggestions import join_suggestions

LLM_PATH = "llm"
RAG_PATH = "rag"

SettledCallback = Callable[[str, PathResult], None]
ConfigSource = Union[ProviderConfig, Callable[[], ProviderConfig]]


class LinkWeaver:
    """Entry point combining LLM ranking with optional RAG source discovery."""

    def __init__(
        self,
        corpus: CorpusProvider,
        config_source: ConfigSource,
        *,
        llm_factory: Callable[[Any], SuggestionClient] = create_llm_client,
        rag_factory: Callable[[RagConfig], RagClient] = RagClient,
        templates: PromptTemplates = DEFAULT_TEMPLATES,
    ) -> None:
        self.corpus = corpus
        self.config_source = config_source
        self.llm_factory = llm_factory
        self.rag_factory = rag_factory
        self.templates = templates
        self.logger = logging.getLogger("link_weaver.orchestrator")

    def scan_document(self, draft_text: str, exclude_id: Any = None) -> SuggestionOutcome:
        return self.suggest(WholeDocumentScan(draft_text=draft_text, exclude_id=exclude_id))

    def lookup_phrase(
        self,
        anchor_text: str,
        exclude_id: Any = None,
        on_settled: Optional[SettledCallback] = None,
    ) -> SuggestionOutcome:
        return self.suggest(PhraseLookup(anchor_text=anchor_text, exclude_id=exclude_id), on_settled)

    def rank_phrase(self, anchor_text: str, exclude_id: Any = None) -> PathResult[LinkSuggestion]:
        """Run only the LLM path for a selected phrase; the RAG API is never called."""

        request = self._phrase_request(PhraseLookup(anchor_text=anchor_text, exclude_id=exclude_id))
        candidates = self.corpus.list_candidates(request.exclude_id)
        config = self._config_snapshot()
        self.logger.info(
            "Ranking phrase",
            extra={
                "mode": "lookup",
                "provider": config.provider.value,
                "candidates": len(candidates),
                "path": LLM_PATH,
            },
        )
        return self._run_llm(request, candidates, config)

    def discover_sources(self, query: str) -> PathResult[RagSource]:
        """Run only the RAG path for ``query``."""

        query = (query or "").strip()
        if not query:
            raise RequestError(ErrorKind.EMPTY_INPUT, "query is required.")
        config = self._config_snapshot()
        if not config.rag.enabled:
            return PathResult.failure(ProviderError.config_missing("RAG Chatbot API URL is not configured."))
        return self._run_rag(query, config.rag)

    def suggest(
        self,
        request: SuggestionRequest,
        on_settled: Optional[SettledCallback] = None,
    ) -> SuggestionOutcome:
        """Serve one request; ``on_settled`` fires as soon as each path finishes."""

        if isinstance(request, WholeDocumentScan):
            return self._scan(request, on_settled)
        if isinstance(request, PhraseLookup):
            return self._lookup(request, on_settled)
        raise TypeError(f"Unsupported suggestion request: {type(request).__name__}")

    def _scan(self, request: WholeDocumentScan, on_settled: Optional[SettledCallback]) -> SuggestionOutcome:
        if not (request.draft_text or "").strip():
            raise RequestError(ErrorKind.EMPTY_INPUT, "Content is empty.")
        candidates = self.corpus.list_candidates(request.exclude_id)
        if not candidates:
            raise RequestError(ErrorKind.EMPTY_CORPUS, "No other published posts available to link to.")
        config = self._config_snapshot()

        self.logger.info(
            "Scanning document",
            extra={"mode": "scan", "provider": config.provider.value, "candidates": len(candidates)},
        )
        result = self._run_llm(request, candidates, config)
        if on_settled is not None:
            on_settled(LLM_PATH, result)
        return SuggestionOutcome(llm=result, rag=NOT_APPLICABLE)

    @staticmethod
    def _phrase_request(request: PhraseLookup) -> PhraseLookup:
        anchor_text = (request.anchor_text or "").strip()
        if not anchor_text:
            raise RequestError(ErrorKind.EMPTY_INPUT, "anchor_text is required.")
        return PhraseLookup(anchor_text=anchor_text, exclude_id=request.exclude_id)

    def _lookup(self, request: PhraseLookup, on_settled: Optional[SettledCallback]) -> SuggestionOutcome:
        request = self._phrase_request(request)
        anchor_text = request.anchor_text
        candidates = self.corpus.list_candidates(request.exclude_id)
        config = self._config_snapshot()

        tasks: Dict[str, Callable[[], PathResult]] = {
            LLM_PATH: lambda: self._run_llm(request, candidates, config),
        }
        if config.rag.enabled:
            tasks[RAG_PATH] = lambda: self._run_rag(anchor_text, config.rag)

        self.logger.info(
            "Looking up phrase",
            extra={
                "mode": "lookup",
                "provider": config.provider.value,
                "candidates": len(candidates),
                "path": "+".join(tasks),
            },
        )

        results: Dict[str, PathResult] = {}
        with ThreadPoolExecutor(max_workers=len(tasks)) as executor:
            future_to_path = {executor.submit(task): name for name, task in tasks.items()}
            for future in as_completed(future_to_path):
                name = future_to_path[future]
                results[name] = future.result()
                if on_settled is not None:
                    on_settled(name, results[name])

        return SuggestionOutcome(llm=results[LLM_PATH], rag=results.get(RAG_PATH, NOT_APPLICABLE))

    def _config_snapshot(self) -> ProviderConfig:
        if isinstance(self.config_source, ProviderConfig):
            return self.config_source
        return self.config_source()

    def _run_llm(
        self,
        request: SuggestionRequest,
        candidates: List[CandidateDocument],
        config: ProviderConfig,
    ) -> PathResult[LinkSuggestion]:
        if not candidates:
            return PathResult.success([])
        try:
            client = self.llm_factory(config.llm)
            raw = client.get_suggestions(build_prompt(request, candidates, self.templates))
            suggestions = join_suggestions(raw, candidates, request)
        except ProviderError as exc:
            self._log_failure(LLM_PATH, exc)
            return PathResult.failure(exc)
        except Exception as exc:
            self.logger.error("LLM path failed unexpectedly", exc_info=True, extra={"path": LLM_PATH})
            return PathResult.failure(ProviderError.request_failed(f"LLM suggestion failed: {exc}"))
        self.logger.info("LLM path settled", extra={"path": LLM_PATH, "suggestions": len(suggestions)})
        return PathResult.success(suggestions)

    def _run_rag(self, query: str, config: RagConfig) -> PathResult[RagSource]:
        try:
            sources = self.rag_factory(config).get_sources(query)
        except ProviderError as exc:
            self._log_failure(RAG_PATH, exc)
            return PathResult.failure(exc)
        except Exception as exc:
            self.logger.error("RAG path failed unexpectedly", exc_info=True, extra={"path": RAG_PATH})
            return PathResult.failure(ProviderError.request_failed(f"Source discovery failed: {exc}"))
        self.logger.info("RAG path settled", extra={"path": RAG_PATH, "sources": len(sources)})
        return PathResult.success(sources)

    def _log_failure(self, path: str, exc: ProviderError) -> None:
        extra: Dict[str, Any] = {"path": path, "error_kind": exc.kind.value}
        if exc.status_code is not None:
            extra["status_code"] = exc.status_code
        self.logger.warning("Provider path failed: %s", exc.message, extra=extra)


__all__ = ["LLM_PATH", "LinkWeaver", "RAG_PATH", "SettledCallback"]
