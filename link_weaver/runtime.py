"""Application runtime bootstrap helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .config import AppConfig, CONFIG
from .corpus import CorpusProvider, InMemoryCorpus, load_corpus_file
from .orchestrator import LinkWeaver
from .prompts import DEFAULT_TEMPLATES, load_prompt_templates
from .settings_store import SettingsStore

logger = logging.getLogger("link_weaver.runtime")


@dataclass
class WeaverRuntime:
    """Bundle of shared services for the Link Weaver application."""

    config: AppConfig
    settings: SettingsStore
    corpus: CorpusProvider
    weaver: LinkWeaver


def create_runtime(
    config: AppConfig = CONFIG,
    *,
    corpus: Optional[CorpusProvider] = None,
    settings: Optional[SettingsStore] = None,
) -> WeaverRuntime:
    """Instantiate shared services once and wire dependencies explicitly.

    The weaver reads provider settings through ``settings.load_provider_config``
    on every request, so saved changes apply to the next request without a
    restart.
    """
    settings = settings or SettingsStore(config.paths.sqlite_path, config=config)

    if corpus is None:
        if config.corpus_path:
            corpus = load_corpus_file(config.corpus_path)
        else:
            logger.warning("No corpus file configured; link targets will be empty")
            corpus = InMemoryCorpus()

    templates = DEFAULT_TEMPLATES
    if config.llm.prompt_templates:
        templates = load_prompt_templates(config.llm.prompt_templates)

    weaver = LinkWeaver(corpus, settings.load_provider_config, templates=templates)
    return WeaverRuntime(config=config, settings=settings, corpus=corpus, weaver=weaver)


__all__ = ["WeaverRuntime", "create_runtime"]
