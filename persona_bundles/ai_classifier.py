"""
ai_classifier.py - Optional language-model persona classifier

The detector depends only on the AIClassifier interface. Two implementations:
  - NullAIClassifier: no provider configured; always "unavailable"
  - LLMClassifier: one chat-completion call to OpenAI, Anthropic or Ollama

A call is a single attempt bounded by a timeout. Transport errors, non-200
replies and unparseable content all come back as None and are logged; they
never reach the caller.

Usage:
    from persona_bundles.ai_classifier import build_classifier
    classifier = build_classifier(Settings.from_env())
    reply = await classifier.classify(prompt)   # dict or None
"""

import json
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from persona_bundles.config import Settings

logger = logging.getLogger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

SYSTEM_PROMPT = (
    "You are an expert customer persona analyst for smart home technology. "
    "Analyze customer communication to identify their specific persona type with high accuracy."
)
TEMPERATURE = 0.1
MAX_TOKENS = 500

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


def parse_persona_reply(content: Optional[str]) -> Optional[dict]:
    """
    Extract the structured reply from model output.

    Returns:
        dict with persona, confidence (clamped to [0, 1]), reasoning and
        key_indicators; None when no usable JSON object is present
    """
    if not content:
        return None
    match = _JSON_BLOCK.search(content)
    if not match:
        logger.warning("AI reply contained no JSON object")
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("AI reply JSON invalid: %s", e)
        return None
    return normalize_reply(parsed)


def normalize_reply(parsed: Any) -> Optional[dict]:
    """
    Validate a reply object from any classifier.

    Accepts keyIndicators or key_indicators. Returns None unless the reply
    is a dict with a persona string and a finite numeric confidence.
    """
    if not isinstance(parsed, dict):
        logger.warning("AI reply is not an object: %r", type(parsed).__name__)
        return None

    persona = parsed.get("persona")
    if not isinstance(persona, str) or not persona.strip():
        logger.warning("AI reply missing persona field")
        return None
    try:
        confidence = float(parsed.get("confidence"))
    except (TypeError, ValueError):
        logger.warning("AI reply confidence not numeric: %r", parsed.get("confidence"))
        return None
    if not math.isfinite(confidence):
        logger.warning("AI reply confidence not finite: %r", confidence)
        return None

    indicators = parsed.get("keyIndicators", parsed.get("key_indicators")) or []
    if not isinstance(indicators, list):
        indicators = [indicators]

    return {
        "persona": persona.strip().lower(),
        "confidence": min(max(confidence, 0.0), 1.0),
        "reasoning": str(parsed.get("reasoning") or ""),
        "key_indicators": [str(i) for i in indicators],
    }


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------

class AIClassifier(ABC):
    """Capability interface for an external persona classifier."""

    @abstractmethod
    async def classify(self, prompt: str) -> Optional[dict]:
        """Return a parsed reply dict, or None when the classifier is unavailable."""

    async def aclose(self) -> None:
        return None


class NullAIClassifier(AIClassifier):
    async def classify(self, prompt: str) -> Optional[dict]:
        return None


# ---------------------------------------------------------------------------
# LLM provider calls
# ---------------------------------------------------------------------------

class LLMClassifier(AIClassifier):
    """Sends the persona prompt to a hosted or local chat model."""

    def __init__(
        self,
        provider: str,
        model: str,
        credential: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.provider = provider.lower()
        self.model = model
        self._credential = credential
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        logger.info("LLMClassifier initialized (%s/%s, timeout=%.1fs)", self.provider, model, timeout)

    async def classify(self, prompt: str) -> Optional[dict]:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            content = await self._complete(messages)
        except httpx.HTTPError as e:
            logger.warning("AI persona classifier unavailable (%s): %s", self.provider, e)
            return None
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("AI persona classifier returned an unexpected payload: %s", e)
            return None
        return parse_persona_reply(content)

    async def _complete(self, messages: list[dict]) -> str:
        if self.provider == "anthropic":
            return await self._call_anthropic(messages)
        if self.provider == "openai":
            return await self._call_openai(messages)
        if self.provider == "ollama":
            return await self._call_ollama(messages)
        raise ValueError(f"Unsupported provider: {self.provider}")

    async def _call_anthropic(self, messages: list[dict]) -> str:
        system_text = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        payload = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
            "system": system_text,
            "messages": [m for m in messages if m["role"] != "system"],
        }
        resp = await self._http.post(
            ANTHROPIC_URL,
            headers={
                "x-api-key": self._credential,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            json=payload,
        )
        resp.raise_for_status()
        blocks = resp.json().get("content", [])
        return "\n".join(b.get("text", "") for b in blocks if b.get("type") == "text").strip()

    async def _call_openai(self, messages: list[dict]) -> str:
        payload = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
            "messages": messages,
        }
        resp = await self._http.post(
            OPENAI_URL,
            headers={
                "Authorization": f"Bearer {self._credential}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        resp.raise_for_status()
        return _first_choice(resp.json())

    async def _call_ollama(self, messages: list[dict]) -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": TEMPERATURE},
        }
        resp = await self._http.post(
            f"{self._credential.rstrip('/')}/v1/chat/completions",
            headers={"Content-Type": "application/json"},
            json=payload,
        )
        resp.raise_for_status()
        return _first_choice(resp.json())

    async def aclose(self) -> None:
        await self._http.aclose()


def _first_choice(data: dict) -> str:
    return data["choices"][0]["message"]["content"].strip()


def build_classifier(settings: Settings) -> AIClassifier:
    """Pick the classifier implementation from configuration."""
    if settings.ai_provider == "none":
        logger.info("AI persona classifier disabled; rule-based detection only")
        return NullAIClassifier()
    if not settings.ai_enabled:
        logger.warning(
            "PERSONA_AI_PROVIDER=%s but no credential configured; rule-based detection only",
            settings.ai_provider,
        )
        return NullAIClassifier()
    return LLMClassifier(
        provider=settings.ai_provider,
        model=settings.ai_model,
        credential=settings.ai_credential(),
        timeout=settings.ai_timeout,
    )
