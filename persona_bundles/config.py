"""
config.py - Runtime settings read from the environment (.env supported)

Environment variables:
    PERSONA_AI_PROVIDER   none | openai | anthropic | ollama (default: none)
    PERSONA_AI_MODEL      model id for the provider
    PERSONA_AI_TIMEOUT    seconds to wait for the AI classifier (default: 15)
    OPENAI_API_KEY, ANTHROPIC_API_KEY, OLLAMA_HOST
    CATALOG_URL           HTTP endpoint returning the active product list
    CATALOG_FILE          YAML/JSON product list (used when CATALOG_URL is unset)
    CATALOG_TIMEOUT       seconds for the catalog fetch (default: 10)
    LOG_LEVEL             default: info
    API_HOST, API_PORT    bind address for the HTTP service
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

SUPPORTED_AI_PROVIDERS = ("openai", "anthropic", "ollama")

DEFAULT_AI_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-5",
    "ollama": "llama3.1:8b",
}


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r (using %s)", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    ai_provider: str = "none"
    ai_model: str = ""
    ai_timeout: float = 15.0
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    ollama_host: str = ""
    catalog_url: str = ""
    catalog_file: Optional[Path] = None
    catalog_timeout: float = 10.0
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        provider = os.getenv("PERSONA_AI_PROVIDER", "none").strip().lower() or "none"
        catalog_file = os.getenv("CATALOG_FILE", "").strip()
        return cls(
            ai_provider=provider,
            ai_model=os.getenv("PERSONA_AI_MODEL", "") or DEFAULT_AI_MODELS.get(provider, ""),
            ai_timeout=_float_env("PERSONA_AI_TIMEOUT", 15.0),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            ollama_host=os.getenv("OLLAMA_HOST", ""),
            catalog_url=os.getenv("CATALOG_URL", "").strip(),
            catalog_file=Path(catalog_file) if catalog_file else None,
            catalog_timeout=_float_env("CATALOG_TIMEOUT", 10.0),
            log_level=os.getenv("LOG_LEVEL", "info").upper(),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=int(_float_env("API_PORT", 8000)),
        )

    def ai_credential(self) -> str:
        """Key (or host, for Ollama) the configured provider needs; empty if missing."""
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "ollama": self.ollama_host,
        }.get(self.ai_provider, "")

    @property
    def ai_enabled(self) -> bool:
        return self.ai_provider in SUPPORTED_AI_PROVIDERS and bool(self.ai_credential())


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
