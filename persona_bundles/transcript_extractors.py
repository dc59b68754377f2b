"""
transcript_extractors.py - Pull budget, size, urgency and requirements out of transcripts

Callers run these over a voice transcript before building a
RecommendationRequest, for any field the request leaves empty.

Usage:
    from persona_bundles.transcript_extractors import extract_budget
    extract_budget("our budget is around $15,000")   # 15000.0
"""

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

BUDGET_MIN = 1_000
BUDGET_MAX = 500_000
SIZE_MIN = 500
SIZE_MAX = 50_000
SQFT_PER_BEDROOM = 1_200
SQFT_PER_STORY = 2_000

_AMOUNT = r"(\d{1,3}(?:,\d{3})*(?:\.\d{2})?)"

BUDGET_PATTERNS = [
    re.compile(rf"budget\s+(?:is\s+|of\s+)?\$?{_AMOUNT}", re.IGNORECASE),
    re.compile(rf"\${_AMOUNT}\s+budget", re.IGNORECASE),
    re.compile(rf"around\s+\$?{_AMOUNT}", re.IGNORECASE),
    re.compile(rf"about\s+\$?{_AMOUNT}", re.IGNORECASE),
    re.compile(rf"up\s+to\s+\$?{_AMOUNT}", re.IGNORECASE),
    re.compile(rf"\b{_AMOUNT}\s*(?:dollars?|k\b|thousand)", re.IGNORECASE),
]
_THOUSANDS_SUFFIX = re.compile(r"\s*(?:k\b|thousand)", re.IGNORECASE)

_SQFT = r"(\d{1,2}(?:,\d{3})+|\d{3,5})"
SQFT_PATTERNS = [
    re.compile(rf"\b{_SQFT}\s+(?:square\s+)?(?:feet|foot|ft|sq\.?\s*ft)", re.IGNORECASE),
    re.compile(rf"\b{_SQFT}\s*sf\b", re.IGNORECASE),
]
DIMENSIONS_PATTERN = re.compile(r"\b(\d{1,3})\s*(?:x|\*|by)\s*(\d{1,3})\s*(?:feet|foot|ft)\b", re.IGNORECASE)
BEDROOMS_PATTERN = re.compile(r"\b(\d{1,2})[\s-]+(?:bedroom|bed)", re.IGNORECASE)
STORIES_PATTERN = re.compile(r"\b(\d{1,2})[\s-]+(?:story|stories|floor)", re.IGNORECASE)

URGENCY_TERMS = [
    ("high", ("urgent", "asap", "immediately")),
    ("medium", ("soon", "quickly", "fast")),
    ("low", ("when convenient", "no rush", "flexible timing")),
]
DEFAULT_URGENCY = "medium"

REQUIREMENT_TERMS = [
    ("security", ("security", "camera", "alarm")),
    ("lighting", ("light", "dimmer")),
    ("audio-video", ("audio", "speaker", "music", "sound")),
    ("climate", ("temperature", "thermostat", "hvac", "climate")),
    ("networking", ("wifi", "network", "internet", "connectivity")),
]


def _to_number(raw: str) -> float:
    return float(raw.replace(",", ""))


def extract_budget(transcript: Optional[str]) -> Optional[float]:
    """
    First plausible dollar budget in the transcript.

    A "k" or "thousand" right after the number scales amounts under 1,000.
    Only amounts between $1,000 and $500,000 are accepted; patterns are
    tried in order and the first accepted amount wins.
    """
    if not transcript:
        return None
    for pattern in BUDGET_PATTERNS:
        match = pattern.search(transcript)
        if not match:
            continue
        amount = _to_number(match.group(1))
        if amount < 1_000 and _THOUSANDS_SUFFIX.match(transcript, match.end(1)):
            amount *= 1_000
        if BUDGET_MIN <= amount <= BUDGET_MAX:
            logger.debug("Extracted budget $%s", f"{amount:,.0f}")
            return amount
    return None


def extract_project_size(transcript: Optional[str]) -> Optional[int]:
    """Square-feet estimate from explicit area, L x W, bedrooms or stories."""
    if not transcript:
        return None

    candidates = []
    for pattern in SQFT_PATTERNS:
        match = pattern.search(transcript)
        if match:
            candidates.append(int(_to_number(match.group(1))))
    match = DIMENSIONS_PATTERN.search(transcript)
    if match:
        candidates.append(int(match.group(1)) * int(match.group(2)))
    match = BEDROOMS_PATTERN.search(transcript)
    if match:
        candidates.append(int(match.group(1)) * SQFT_PER_BEDROOM)
    match = STORIES_PATTERN.search(transcript)
    if match:
        candidates.append(int(match.group(1)) * SQFT_PER_STORY)

    for size in candidates:
        if SIZE_MIN <= size <= SIZE_MAX:
            logger.debug("Extracted project size %s sq ft", f"{size:,}")
            return size
    return None


def extract_urgency(transcript: Optional[str]) -> str:
    text = (transcript or "").lower()
    for level, terms in URGENCY_TERMS:
        if any(t in text for t in terms):
            return level
    return DEFAULT_URGENCY


def extract_specific_requirements(transcript: Optional[str]) -> list[str]:
    """Product categories the transcript asks for, in fixed category order."""
    text = (transcript or "").lower()
    return [category for category, terms in REQUIREMENT_TERMS if any(t in text for t in terms)]
