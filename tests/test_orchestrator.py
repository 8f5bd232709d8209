"""Tests for LinkWeaver request orchestration with fake providers."""

from __future__ import annotations

import threading
import time
from typing import Any, List
from unittest import mock

import pytest

from conftest import FakeResponse
from link_weaver.config import GeminiConfig, ProviderConfig, RagConfig
from link_weaver.corpus import InMemoryCorpus, StoredDocument
from link_weaver.errors import ErrorKind, ProviderError, RequestError
from link_weaver.models import NOT_APPLICABLE, PathResult, PhraseLookup, RagSource
from link_weaver.orchestrator import LLM_PATH, RAG_PATH, LinkWeaver
from link_weaver.rag import RagClient

RAG_ON = ProviderConfig(llm=GeminiConfig(api_key="k"), rag=RagConfig(base_url="https://kb.example"))
RAG_OFF = ProviderConfig(llm=GeminiConfig(api_key="k"))


class FakeLLM:
    def __init__(self, response: Any = None, *, error: Exception | None = None, delay: float = 0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []

    def get_suggestions(self, prompt_text: str) -> Any:
        self.prompts.append(prompt_text)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


class FakeRag:
    def __init__(self, sources=None, *, error: Exception | None = None, delay: float = 0.0):
        self.sources = sources or []
        self.error = error
        self.delay = delay
        self.queries: List[str] = []

    def get_sources(self, query: str):
        self.queries.append(query)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.sources)


def make_weaver(corpus, llm, rag=None, config=RAG_ON) -> LinkWeaver:
    rag = rag or FakeRag()
    return LinkWeaver(corpus, config, llm_factory=lambda _cfg: llm, rag_factory=lambda _cfg: rag)


@pytest.fixture
def single_doc_corpus():
    return InMemoryCorpus([StoredDocument(id=1, title="Guide to X", url="/x")])


def test_scan_joins_suggestion_with_corpus(single_doc_corpus):
    llm = FakeLLM(
        {"suggestions": [{"anchor_text": "the complete guide to setup", "post_id_to_link": 1, "reasoning": "matches topic"}]}
    )

    outcome = make_weaver(single_doc_corpus, llm).scan_document("Read the complete guide to setup first.", exclude_id=9)

    assert outcome.rag is NOT_APPLICABLE
    assert outcome.llm.ok
    assert [s.to_dict() for s in outcome.llm.items] == [
        {
            "anchor_text": "the complete guide to setup",
            "post_id_to_link": 1,
            "title": "Guide to X",
            "url": "/x",
            "reasoning": "matches topic",
        }
    ]


def test_lookup_paths_fail_independently(single_doc_corpus):
    llm = FakeLLM(error=ProviderError.api_error("Gemini API returned status 500.", status_code=500, body="boom"))
    rag = FakeRag([RagSource(title="Mesh docs", url="https://kb/mesh", snippet="About meshes")])

    outcome = make_weaver(single_doc_corpus, llm, rag).lookup_phrase("service mesh")

    assert not outcome.llm.ok
    assert outcome.llm.error.kind == ErrorKind.API_ERROR
    assert outcome.llm.error.status_code == 500
    assert outcome.rag.ok
    assert [s.url for s in outcome.rag.items] == ["https://kb/mesh"]
    assert rag.queries == ["service mesh"]


def test_rag_failure_does_not_affect_llm(single_doc_corpus):
    llm = FakeLLM([{"post_id": 1, "reasoning": "close"}])
    rag = FakeRag(error=ProviderError.invalid_response("Could not obtain conversation ID from chatbot API."))

    outcome = make_weaver(single_doc_corpus, llm, rag).lookup_phrase("guide")

    assert [s.target_id for s in outcome.llm.items] == [1]
    assert outcome.rag.error.kind == ErrorKind.INVALID_RESPONSE


@pytest.mark.parametrize("anchor", ["", "   \n\t"])
def test_blank_anchor_rejected_before_any_provider_call(single_doc_corpus, anchor):
    llm, rag = FakeLLM([]), FakeRag()
    with pytest.raises(RequestError) as excinfo:
        make_weaver(single_doc_corpus, llm, rag).lookup_phrase(anchor)
    assert excinfo.value.kind == ErrorKind.EMPTY_INPUT
    assert llm.prompts == [] and rag.queries == []


def test_scan_preconditions(corpus):
    llm = FakeLLM([])
    weaver = make_weaver(corpus, llm)

    with pytest.raises(RequestError) as excinfo:
        weaver.scan_document("   ")
    assert excinfo.value.kind == ErrorKind.EMPTY_INPUT

    empty = make_weaver(InMemoryCorpus([StoredDocument(id=5, title="Only", url="/only")]), llm)
    with pytest.raises(RequestError) as excinfo:
        empty.scan_document("Some draft", exclude_id="5")
    assert excinfo.value.kind == ErrorKind.EMPTY_CORPUS
    assert llm.prompts == []


def test_scan_excludes_current_and_unpublished_documents(corpus):
    llm = FakeLLM({"suggestions": []})

    outcome = make_weaver(corpus, llm).scan_document("Draft body", exclude_id=4)

    assert outcome.llm.ok and outcome.llm.items == []
    (prompt,) = llm.prompts
    assert '"Guide to X"' in prompt and '"Deploying Y"' in prompt
    assert "Draft about Z" not in prompt and "Current post" not in prompt


def test_lookup_without_rag_url_marks_rag_not_applicable(single_doc_corpus):
    rag = FakeRag()
    outcome = make_weaver(single_doc_corpus, FakeLLM([]), rag, config=RAG_OFF).lookup_phrase("guide")
    assert outcome.rag is NOT_APPLICABLE
    assert rag.queries == []


def test_lookup_with_empty_corpus_skips_llm_call():
    llm = FakeLLM([])
    outcome = make_weaver(InMemoryCorpus(), llm).lookup_phrase("anything")
    assert outcome.llm.ok and outcome.llm.items == []
    assert llm.prompts == []
    assert outcome.rag.ok


def test_lookup_runs_paths_concurrently(single_doc_corpus):
    delay = 0.4
    weaver = make_weaver(single_doc_corpus, FakeLLM([], delay=delay), FakeRag(delay=delay))

    start = time.perf_counter()
    weaver.lookup_phrase("guide")
    elapsed = time.perf_counter() - start

    assert elapsed < delay * 1.5


def test_on_settled_reports_faster_path_first(single_doc_corpus):
    settled = []
    lock = threading.Lock()

    def record(name: str, result: PathResult) -> None:
        with lock:
            settled.append((name, result.ok))

    weaver = make_weaver(single_doc_corpus, FakeLLM([], delay=0.3), FakeRag(delay=0.0))
    weaver.lookup_phrase("guide", on_settled=record)

    assert settled == [(RAG_PATH, True), (LLM_PATH, True)]


def test_unexpected_exception_is_isolated_to_its_path(single_doc_corpus):
    rag = FakeRag([RagSource(title="t", url="https://kb/t")])
    outcome = make_weaver(single_doc_corpus, FakeLLM(error=RuntimeError("kaboom")), rag).lookup_phrase("guide")

    assert outcome.llm.error.kind == ErrorKind.REQUEST_FAILED
    assert "kaboom" in outcome.llm.error.message
    assert outcome.rag.ok


def test_malformed_llm_output_is_invalid_response(single_doc_corpus):
    outcome = make_weaver(single_doc_corpus, FakeLLM({"links": []})).scan_document("Draft")
    assert outcome.llm.error.kind == ErrorKind.INVALID_RESPONSE


def test_config_source_is_read_once_per_request(single_doc_corpus):
    calls = []

    def config_source():
        calls.append(1)
        return RAG_ON

    weaver = LinkWeaver(
        single_doc_corpus,
        config_source,
        llm_factory=lambda _cfg: FakeLLM([]),
        rag_factory=lambda _cfg: FakeRag(),
    )
    weaver.suggest(PhraseLookup(anchor_text="guide"))
    assert len(calls) == 1


def test_discover_sources(single_doc_corpus):
    rag = FakeRag([RagSource(title="t", url="https://kb/t")])
    weaver = make_weaver(single_doc_corpus, FakeLLM([]), rag)

    result = weaver.discover_sources("  kubernetes ")
    assert [s.title for s in result.items] == ["t"]
    assert rag.queries == ["kubernetes"]

    with pytest.raises(RequestError):
        weaver.discover_sources("")

    disabled = make_weaver(single_doc_corpus, FakeLLM([]), rag, config=RAG_OFF).discover_sources("q")
    assert disabled.error.kind == ErrorKind.CONFIG_MISSING


def test_missing_conversation_id_fails_rag_only(single_doc_corpus):
    session = mock.MagicMock()
    session.post.return_value = FakeResponse(200, {})
    llm = FakeLLM([{"post_id": 1, "reasoning": "close"}])
    weaver = LinkWeaver(
        single_doc_corpus,
        RAG_ON,
        llm_factory=lambda _cfg: llm,
        rag_factory=lambda cfg: RagClient(cfg, session=session),
    )

    outcome = weaver.lookup_phrase("service mesh")

    assert outcome.rag.error.kind == ErrorKind.INVALID_RESPONSE
    assert "conversation ID" in outcome.rag.error.message
    assert session.post.call_count == 1
    assert outcome.llm.ok
    assert [s.target_id for s in outcome.llm.items] == [1]


def test_rank_phrase_runs_llm_path_only(single_doc_corpus):
    llm = FakeLLM({"suggestions": [{"post_id": "1", "reasoning": "close"}]})
    rag = FakeRag(delay=1.0)

    result = make_weaver(single_doc_corpus, llm, rag).rank_phrase("  guide ")

    assert [(s.target_id, s.anchor_text) for s in result.items] == [(1, "guide")]
    assert rag.queries == []
    assert '"guide"' in llm.prompts[0]

    with pytest.raises(RequestError) as excinfo:
        make_weaver(single_doc_corpus, llm, rag).rank_phrase("   ")
    assert excinfo.value.kind == ErrorKind.EMPTY_INPUT
    assert len(llm.prompts) == 1
