"""Central configuration for Link Weaver."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Final, Optional, Union

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for 3.10
    import tomli as tomllib

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_PATH = Path(os.environ.get("WEAVER_CONFIG_FILE", PROJECT_ROOT / "weaver.toml"))

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_RAG_USER_IP = "127.0.0.1"


def _load_config_data() -> Dict[str, Any]:
    if DEFAULT_CONFIG_PATH.exists():
        with DEFAULT_CONFIG_PATH.open("rb") as fh:
            return tomllib.load(fh)
    return {}


_CONFIG_DATA = _load_config_data()


def _get_data_setting(name: str, default: str) -> str:
    env_key = f"WEAVER_{name.upper()}"
    if env_key in os.environ:
        return os.environ[env_key]
    data_section = _CONFIG_DATA.get("data", {})
    return str(data_section.get(name, default))


def _get_section_setting(section: str, name: str, default: str) -> str:
    env_key = f"WEAVER_{section.upper()}_{name.upper()}"
    if env_key in os.environ:
        return os.environ[env_key]
    values = _CONFIG_DATA.get(section, {})
    return str(values.get(name, default))


STATE_DIR = Path(_get_data_setting("state_dir", str(PROJECT_ROOT / "state")))
SQLITE_PATH = Path(_get_data_setting("sqlite_path", str(STATE_DIR / "link_weaver.sqlite3")))
CORPUS_PATH = _get_data_setting("corpus_path", "")


class LLMProvider(str, Enum):
    """Which LLM backend answers suggestion prompts."""

    GEMINI = "gemini"
    LOCAL = "local"

    @classmethod
    def from_raw(cls, value: str | None) -> "LLMProvider":
        """Convert a stored or user-supplied string into an LLMProvider."""

        if not value:
            return cls.GEMINI
        normalized = str(value).strip().lower()
        for provider in cls:
            if provider.value == normalized:
                return provider
        return cls.GEMINI


@dataclass(frozen=True)
class GeminiConfig:
    """Credentials for the hosted Gemini generateContent API."""

    api_key: str = ""
    model: str = DEFAULT_GEMINI_MODEL


@dataclass(frozen=True)
class OpenAICompatibleConfig:
    """Settings for any endpoint that speaks /chat/completions."""

    base_url: str = ""
    model: str = ""
    api_key: Optional[str] = None


LLMConfig = Union[GeminiConfig, OpenAICompatibleConfig]


@dataclass(frozen=True)
class RagConfig:
    """Knowledge-base chat API used for source discovery.

    An empty ``base_url`` disables source discovery for the deployment.
    """

    base_url: Optional[str] = None
    user_ip: str = DEFAULT_RAG_USER_IP

    @property
    def enabled(self) -> bool:
        return bool((self.base_url or "").strip())


@dataclass(frozen=True)
class ProviderConfig:
    """Provider snapshot taken once at the start of a request."""

    llm: LLMConfig
    rag: RagConfig = field(default_factory=RagConfig)

    @property
    def provider(self) -> LLMProvider:
        if isinstance(self.llm, GeminiConfig):
            return LLMProvider.GEMINI
        return LLMProvider.LOCAL


@dataclass(frozen=True)
class LLMDefaults:
    """Fallback provider values used until settings are saved."""

    provider: str = _get_section_setting("llm", "provider", LLMProvider.GEMINI.value)
    gemini_api_key: str = _get_section_setting("llm", "gemini_api_key", "")
    gemini_model: str = _get_section_setting("llm", "gemini_model", DEFAULT_GEMINI_MODEL)
    base_url: str = _get_section_setting("llm", "base_url", "")
    model: str = _get_section_setting("llm", "model", "")
    api_key: str = _get_section_setting("llm", "api_key", "")
    prompt_templates: str = _get_section_setting("llm", "prompt_templates", "")


@dataclass(frozen=True)
class RagDefaults:
    base_url: str = _get_section_setting("rag", "base_url", "")
    user_ip: str = _get_section_setting("rag", "user_ip", DEFAULT_RAG_USER_IP)


@dataclass(frozen=True)
class WebConfig:
    host: str = _get_section_setting("web", "host", "0.0.0.0")
    port: int = int(_get_section_setting("web", "port", "3211"))
    token: Optional[str] = _get_section_setting("web", "token", "") or None


@dataclass(frozen=True)
class Paths:
    """Filesystem paths used throughout the project."""

    project_root: Path = PROJECT_ROOT
    state_dir: Path = STATE_DIR
    sqlite_path: Path = SQLITE_PATH
    config_file: Path = DEFAULT_CONFIG_PATH


@dataclass(frozen=True)
class AppConfig:
    """Aggregate configuration for the Link Weaver runtime."""

    paths: Paths = Paths()
    llm: LLMDefaults = LLMDefaults()
    rag: RagDefaults = RagDefaults()
    web: WebConfig = WebConfig()
    corpus_path: str = CORPUS_PATH


CONFIG: Final[AppConfig] = AppConfig()
