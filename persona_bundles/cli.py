"""
cli.py - Command line access to the proposal advisor

Usage:
    python -m persona_bundles detect "We have kids and want cameras for our family home"
    python -m persona_bundles recommend --persona homeowner --budget 15000
    python -m persona_bundles recommend --transcript "I'm a builder doing 20 spec homes, budget around 12k"
    python -m persona_bundles personas
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from persona_bundles.advisor import ProposalAdvisor, build_advisor
from persona_bundles.config import Settings, configure_logging
from persona_bundles.exceptions import PersonaBundlesError
from persona_bundles.models import PersonaDetectionRequest, RecommendationRequest
from persona_bundles.transcript_extractors import (
    extract_budget,
    extract_project_size,
    extract_specific_requirements,
    extract_urgency,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="persona_bundles", description="Persona detection and bundle recommendations")
    commands = parser.add_subparsers(dest="command", required=True)

    detect = commands.add_parser("detect", help="Detect the customer persona from text")
    detect.add_argument("text", help="Project description or transcript")

    recommend = commands.add_parser("recommend", help="Generate Good/Better/Best bundles")
    recommend.add_argument("--persona", help="Persona id; detected from --transcript when omitted")
    recommend.add_argument("--budget", type=float)
    recommend.add_argument("--project-size", type=float, help="Square feet")
    recommend.add_argument("--transcript", help="Voice transcript used for detection and enrichment")

    commands.add_parser("personas", help="List personas and bundle strategies")
    return parser


async def run_detect(advisor: ProposalAdvisor, args: argparse.Namespace) -> dict:
    result = await advisor.detect_persona(PersonaDetectionRequest(text=args.text))
    return result.to_dict()


async def run_recommend(advisor: ProposalAdvisor, args: argparse.Namespace) -> dict:
    transcript = args.transcript
    persona, confidence = await advisor.resolve_persona(args.persona, transcript)
    result = await advisor.recommend(RecommendationRequest(
        persona=persona.value,
        persona_confidence=confidence,
        voice_transcript=transcript,
        budget=args.budget or extract_budget(transcript),
        project_size=args.project_size or extract_project_size(transcript),
        urgency=extract_urgency(transcript) if transcript else None,
        specific_requirements=tuple(extract_specific_requirements(transcript)),
    ))
    return result.to_dict()


async def run(args: argparse.Namespace, advisor: Optional[ProposalAdvisor] = None) -> dict:
    advisor = advisor or build_advisor(Settings.from_env())
    try:
        if args.command == "detect":
            return await run_detect(advisor, args)
        if args.command == "recommend":
            return await run_recommend(advisor, args)
        return advisor.list_personas()
    finally:
        await advisor.aclose()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(Settings.from_env().log_level)
    try:
        output = asyncio.run(run(args))
    except PersonaBundlesError as e:
        logger.error("%s", e)
        print(json.dumps({"success": False, "error": str(e)}), file=sys.stderr)
        return 1
    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
