"""
persona_detector.py - Persona detection from project descriptions and transcripts

Pipeline:
    text -> ProjectTypeClassifier -> PersonaRuleEngine (always)
                                  -> PersonaAIClassifier (when configured)
         -> combine_results() -> DetectionResult

Usage:
    from persona_bundles.persona_detector import PersonaDetector
    detector = PersonaDetector(ai_classifier=NullAIClassifier())
    result = await detector.detect(PersonaDetectionRequest(text="..."))
"""

import asyncio
import logging
from typing import Optional

from persona_bundles.ai_classifier import AIClassifier, NullAIClassifier, normalize_reply
from persona_bundles.exceptions import EmptyInputError, UnknownPersonaError
from persona_bundles.keyword_scorer import count_keywords, count_phrases, matched_terms, normalize_text
from persona_bundles.models import (
    COMBINED_AI_PRIMARY,
    COMBINED_RULE_ONLY,
    COMBINED_RULE_PRIMARY,
    COMBINED_WEIGHTED,
    METHOD_AI,
    METHOD_COMBINED,
    METHOD_RULE_BASED,
    DetectionResult,
    PersonaCandidate,
    PersonaDetectionRequest,
    ProjectType,
)
from persona_bundles.personas import (
    COMMERCIAL_TERMS,
    RESIDENTIAL_TERMS,
    PersonaProfile,
    eligible_personas,
    parse_persona,
)

logger = logging.getLogger(__name__)

# Rule scoring weights
KEYWORD_WEIGHT = 1.0
PHRASE_WEIGHT = 2.0
CONTEXT_WEIGHT = 3.0
PHRASE_POINTS = 2           # each matched phrase is worth 2 before PHRASE_WEIGHT
SCORE_SCALE = 10.0
RULE_CONFIDENCE_CAP = 0.95

# Combination policy
AI_PRIMARY_THRESHOLD = 0.8
RULE_PRIMARY_MARGIN = 0.2
AI_WEIGHT = 0.6
RULE_WEIGHT = 0.4

DEFAULT_AI_TIMEOUT = 15.0


def _rule_confidence(score: float) -> float:
    return min(score / SCORE_SCALE, RULE_CONFIDENCE_CAP)


# ---------------------------------------------------------------------------
# Project type
# ---------------------------------------------------------------------------

class ProjectTypeClassifier:
    """Residential unless commercial terms strictly outscore residential ones."""

    def classify(self, text: str) -> ProjectType:
        residential = count_keywords(text, RESIDENTIAL_TERMS)
        commercial = count_keywords(text, COMMERCIAL_TERMS)
        project_type = ProjectType.COMMERCIAL if commercial > residential else ProjectType.RESIDENTIAL
        logger.debug("Project type scores: residential=%d commercial=%d -> %s",
                     residential, commercial, project_type.value)
        return project_type


# ---------------------------------------------------------------------------
# Rule-based detection
# ---------------------------------------------------------------------------

class PersonaRuleEngine:
    """Weighted keyword / phrase / context-clue scoring over eligible personas."""

    def score(self, text: str, profile: PersonaProfile) -> float:
        score = KEYWORD_WEIGHT * count_keywords(text, profile.keywords)
        score += PHRASE_WEIGHT * PHRASE_POINTS * count_phrases(text, profile.phrases)
        score += CONTEXT_WEIGHT * count_keywords(text, profile.context_clues)
        return score * (1 + profile.confidence_boost)

    def detect(self, text: str, project_type: ProjectType) -> DetectionResult:
        text = normalize_text(text)
        profiles = eligible_personas(project_type)
        scores = [(p, self.score(text, p)) for p in profiles]

        # sorted() is stable: equal scores keep table order
        ranked = sorted(scores, key=lambda pair: pair[1], reverse=True)[:3]
        top_profile, top_score = ranked[0]

        indicators = matched_terms(text, top_profile.context_clues + top_profile.keywords)
        indicators += [p for p in top_profile.phrases if normalize_text(p) in text]

        result = DetectionResult(
            persona=top_profile.persona,
            confidence=_rule_confidence(top_score),
            method=METHOD_RULE_BASED,
            project_type=project_type,
            key_indicators=tuple(dict.fromkeys(indicators))[:8],
            alternatives=tuple(
                PersonaCandidate(p.persona, _rule_confidence(s)) for p, s in ranked[1:3]
            ),
            detailed_scores=tuple((p.persona.value, round(s, 4)) for p, s in scores),
        )
        logger.info("Rule-based detection: %s (confidence %.2f, scores=%s)",
                    result.persona.value, result.confidence, dict(result.detailed_scores))
        return result


# ---------------------------------------------------------------------------
# AI-assisted detection
# ---------------------------------------------------------------------------

class PersonaAIClassifier:
    """Builds the persona prompt, calls the AIClassifier, validates the reply."""

    def __init__(self, classifier: AIClassifier, timeout: float = DEFAULT_AI_TIMEOUT):
        self.classifier = classifier
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return not isinstance(self.classifier, NullAIClassifier)

    def build_prompt(self, text: str, project_type: ProjectType, context: Optional[dict] = None) -> str:
        persona_lines = "\n".join(
            f"- {p.persona.value}: Focus areas: {', '.join(p.keywords[:5])}"
            for p in eligible_personas(project_type)
        )
        context_lines = "\n".join(f"{k}: {v}" for k, v in (context or {}).items()) or "None"
        return f"""Analyze the following customer communication and identify the most appropriate persona:

CUSTOMER INPUT:
"{text}"

PROJECT TYPE: {project_type.value}

AVAILABLE PERSONAS:
{persona_lines}

ADDITIONAL CONTEXT:
{context_lines}

Please respond in this exact JSON format:
{{
  "persona": "detected_persona_name",
  "confidence": 0.85,
  "reasoning": "Brief explanation of why this persona was selected",
  "keyIndicators": ["indicator1", "indicator2", "indicator3"]
}}

Focus on identifying specific language patterns, professional terminology, and context clues that indicate the customer's role and priorities.
"""

    async def classify(
        self,
        text: str,
        project_type: ProjectType,
        context: Optional[dict] = None,
    ) -> Optional[DetectionResult]:
        """
        Run the external classifier once.

        Returns:
            DetectionResult with method "ai", or None when the classifier is
            disabled, times out, fails, replies malformed, or names a persona
            we do not know
        """
        if not self.enabled:
            return None

        prompt = self.build_prompt(text, project_type, context)
        try:
            reply = await asyncio.wait_for(self.classifier.classify(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("AI persona classifier timed out after %.1fs", self.timeout)
            return None
        except Exception as e:
            logger.error("AI persona classifier failed: %s", e)
            return None

        if reply is None:
            return None
        reply = normalize_reply(reply)
        if reply is None:
            return None
        try:
            persona = parse_persona(reply["persona"])
        except UnknownPersonaError:
            logger.warning("AI classifier named an unknown persona: %r", reply["persona"])
            return None

        result = DetectionResult(
            persona=persona,
            confidence=reply["confidence"],
            method=METHOD_AI,
            project_type=project_type,
            reasoning=reply.get("reasoning") or None,
            key_indicators=tuple(reply["key_indicators"]),
        )
        logger.info("AI detection: %s (confidence %.2f)", result.persona.value, result.confidence)
        return result


# ---------------------------------------------------------------------------
# Combination policy
# ---------------------------------------------------------------------------

def combine_results(ai_result: Optional[DetectionResult], rule_result: DetectionResult) -> DetectionResult:
    """
    Merge AI and rule-based results. Branches are checked in order; the
    first match wins.
    """
    if ai_result is None:
        return _tag(rule_result, COMBINED_RULE_ONLY)

    if ai_result.confidence > AI_PRIMARY_THRESHOLD:
        return _tag(ai_result, COMBINED_AI_PRIMARY, rule_based_backup=rule_result)

    if rule_result.confidence > ai_result.confidence + RULE_PRIMARY_MARGIN:
        return _tag(rule_result, COMBINED_RULE_PRIMARY, ai_backup=ai_result)

    confidence = AI_WEIGHT * ai_result.confidence + RULE_WEIGHT * rule_result.confidence
    leader = ai_result if ai_result.confidence > rule_result.confidence else rule_result
    return DetectionResult(
        persona=leader.persona,
        confidence=confidence,
        method=METHOD_COMBINED,
        project_type=rule_result.project_type,
        combined_method=COMBINED_WEIGHTED,
        reasoning=ai_result.reasoning,
        key_indicators=leader.key_indicators,
        alternatives=rule_result.alternatives,
        detailed_scores=rule_result.detailed_scores,
        rule_based_backup=rule_result,
        ai_backup=ai_result,
    )


def _tag(result: DetectionResult, combined_method: str, **backups) -> DetectionResult:
    return DetectionResult(
        persona=result.persona,
        confidence=result.confidence,
        method=result.method,
        project_type=result.project_type,
        combined_method=combined_method,
        reasoning=result.reasoning,
        key_indicators=result.key_indicators,
        alternatives=result.alternatives,
        detailed_scores=result.detailed_scores,
        **backups,
    )


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------

class PersonaDetector:
    """
    Orchestrates project-type classification, rule-based scoring and the
    optional AI classifier into one DetectionResult.
    """

    def __init__(
        self,
        ai_classifier: Optional[AIClassifier] = None,
        ai_timeout: float = DEFAULT_AI_TIMEOUT,
    ):
        self.project_types = ProjectTypeClassifier()
        self.rules = PersonaRuleEngine()
        self.ai = PersonaAIClassifier(ai_classifier or NullAIClassifier(), timeout=ai_timeout)
        logger.info("PersonaDetector initialized (AI classifier: %s)",
                    "enabled" if self.ai.enabled else "disabled")

    async def detect(self, request: PersonaDetectionRequest) -> DetectionResult:
        """
        Detect the customer persona.

        Raises:
            EmptyInputError: if neither text nor voice_transcript has content
        """
        combined = " ".join(t for t in (request.text, request.voice_transcript) if t and t.strip())
        text = normalize_text(combined)
        if not text:
            raise EmptyInputError("No text input provided for persona detection")

        project_type = self.project_types.classify(text)
        logger.info("Detected project type: %s", project_type.value)

        ai_result = await self.ai.classify(text, project_type, request.additional_context)
        rule_result = self.rules.detect(text, project_type)
        result = combine_results(ai_result, rule_result)

        logger.info(
            "Persona detection complete: %s (confidence %.2f, method %s/%s)",
            result.persona.value, result.confidence, result.method, result.combined_method,
        )
        return result
