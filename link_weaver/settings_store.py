"""SQLite persistence for provider selection and credentials."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Dict, Mapping, Optional

from .config import (
    CONFIG,
    AppConfig,
    GeminiConfig,
    LLMProvider,
    OpenAICompatibleConfig,
    ProviderConfig,
    RagConfig,
)

PROVIDER = "llm_provider"
GEMINI_API_KEY = "gemini_api_key"
LLM_URL = "llm_url"
LLM_MODEL = "llm_model"
LLM_KEY = "llm_key"
RAG_API_URL = "rag_api_url"

SETTING_NAMES = (PROVIDER, GEMINI_API_KEY, LLM_URL, LLM_MODEL, LLM_KEY, RAG_API_URL)
SECRET_NAMES = frozenset({GEMINI_API_KEY, LLM_KEY})


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


class SettingsStore:
    """Key/value settings table; every provider keeps its own rows.

    Selecting a provider only rewrites ``llm_provider``, so the credentials of
    the inactive provider survive any number of switches.
    """

    def __init__(self, path: Path | str = CONFIG.paths.sqlite_path, config: AppConfig = CONFIG) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.config = config
        self.logger = logging.getLogger("link_weaver.settings")
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    name TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                );
                """
            )

    def _defaults(self) -> Dict[str, str]:
        llm = self.config.llm
        return {
            PROVIDER: LLMProvider.from_raw(llm.provider).value,
            GEMINI_API_KEY: llm.gemini_api_key,
            LLM_URL: llm.base_url,
            LLM_MODEL: llm.model,
            LLM_KEY: llm.api_key,
            RAG_API_URL: self.config.rag.base_url,
        }

    def get(self, name: str) -> str:
        if name not in SETTING_NAMES:
            raise KeyError(f"Unknown setting '{name}'")
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE name = ?", (name,)).fetchone()
        if row is None:
            return self._defaults()[name]
        return row["value"]

    def update(self, values: Mapping[str, Optional[str]]) -> None:
        """Persist the given settings; ``None`` values are left untouched."""

        unknown = sorted(set(values) - set(SETTING_NAMES))
        if unknown:
            raise KeyError(f"Unknown settings: {', '.join(unknown)}")

        rows = []
        for name, value in values.items():
            if value is None:
                continue
            cleaned = str(value).strip()
            if name == PROVIDER:
                cleaned = LLMProvider.from_raw(cleaned).value
            rows.append((name, cleaned))
        if not rows:
            return
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO settings(name, value) VALUES (?, ?)
                ON CONFLICT(name) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                """,
                rows,
            )
        self.logger.info("Settings updated: %s", ", ".join(name for name, _ in rows))

    def set(self, name: str, value: str) -> None:
        self.update({name: value})

    def select_provider(self, provider: LLMProvider | str) -> LLMProvider:
        selected = LLMProvider.from_raw(provider.value if isinstance(provider, LLMProvider) else provider)
        self.update({PROVIDER: selected.value})
        return selected

    def active_provider(self) -> LLMProvider:
        return LLMProvider.from_raw(self.get(PROVIDER))

    def all(self) -> Dict[str, str]:
        values = self._defaults()
        with self._connect() as conn:
            for row in conn.execute("SELECT name, value FROM settings"):
                if row["name"] in values:
                    values[row["name"]] = row["value"]
        return values

    def masked(self) -> Dict[str, str]:
        return {
            name: mask_secret(value) if name in SECRET_NAMES else value
            for name, value in self.all().items()
        }

    def load_provider_config(self) -> ProviderConfig:
        """Snapshot the active provider and RAG settings for one request."""

        values = self.all()
        if LLMProvider.from_raw(values[PROVIDER]) is LLMProvider.GEMINI:
            llm = GeminiConfig(api_key=values[GEMINI_API_KEY], model=self.config.llm.gemini_model)
        else:
            llm = OpenAICompatibleConfig(
                base_url=values[LLM_URL],
                model=values[LLM_MODEL],
                api_key=values[LLM_KEY] or None,
            )
        rag = RagConfig(base_url=values[RAG_API_URL] or None, user_ip=self.config.rag.user_ip)
        return ProviderConfig(llm=llm, rag=rag)


__all__ = [
    "GEMINI_API_KEY",
    "LLM_KEY",
    "LLM_MODEL",
    "LLM_URL",
    "PROVIDER",
    "RAG_API_URL",
    "SETTING_NAMES",
    "SettingsStore",
    "mask_secret",
]
