"""
api.py - HTTP surface for persona detection and product recommendations

Endpoints:
    POST /api/persona-detection/detect
    POST /api/product-recommendations/generate
    GET  /api/product-recommendations/bundles/{persona}
    GET  /api/product-recommendations/personas
    GET  /api/product-recommendations/pricing/{persona}/{tier}
    GET  /health

Usage:
    uvicorn persona_bundles.api:create_app --factory --port 8000
    python -m persona_bundles.api --port 8000
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from persona_bundles import __version__
from persona_bundles.advisor import ProposalAdvisor, build_advisor
from persona_bundles.config import Settings, configure_logging
from persona_bundles.exceptions import (
    EmptyInputError,
    NoProductsAvailableError,
    PersonaBundlesError,
    RecommendationFailedError,
    UnknownPersonaError,
)
from persona_bundles.models import PersonaDetectionRequest, RecommendationRequest, Tier
from persona_bundles.transcript_extractors import (
    extract_budget,
    extract_project_size,
    extract_specific_requirements,
    extract_urgency,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type, int] = {
    EmptyInputError: 400,
    UnknownPersonaError: 400,
    NoProductsAvailableError: 503,
    RecommendationFailedError: 500,
}


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class DetectBody(BaseModel):
    text: Optional[str] = Field(default=None, max_length=20_000)
    voice_transcript: Optional[str] = Field(default=None, max_length=50_000)
    additional_context: dict = Field(default_factory=dict)


class GenerateBody(BaseModel):
    persona: Optional[str] = Field(default=None)
    voice_transcript: Optional[str] = Field(default=None, max_length=50_000)
    description: Optional[str] = Field(default=None, max_length=20_000)
    budget: Optional[float] = Field(default=None, gt=0)
    project_size: Optional[float] = Field(default=None, gt=0)
    urgency: Optional[str] = Field(default=None, pattern="^(low|medium|high)$")
    additional_requirements: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(advisor: Optional[ProposalAdvisor] = None) -> FastAPI:
    owns_advisor = advisor is None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.advisor is None:
            app.state.advisor = build_advisor(Settings.from_env())
        logger.info("Persona bundles API v%s ready", __version__)
        yield
        if owns_advisor:
            await app.state.advisor.aclose()
        logger.info("Persona bundles API shut down")

    app = FastAPI(
        title="Persona Bundles",
        description="Customer persona detection and Good/Better/Best smart home bundles",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.advisor = advisor

    def get_advisor() -> ProposalAdvisor:
        if app.state.advisor is None:
            raise HTTPException(status_code=503, detail="Advisor not initialized")
        return app.state.advisor

    @app.exception_handler(PersonaBundlesError)
    async def domain_error(request: Request, exc: PersonaBundlesError) -> JSONResponse:
        status = ERROR_STATUS.get(type(exc), 500)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status, content={"success": False, "error": str(exc)})

    # ---- Routes ----

    @app.get("/health")
    async def health():
        return {"ok": True, "service": "persona-bundles", "version": __version__,
                "ts": datetime.now(timezone.utc).isoformat()}

    @app.post("/api/persona-detection/detect")
    async def detect_persona(body: DetectBody):
        result = await get_advisor().detect_persona(PersonaDetectionRequest(
            text=body.text,
            voice_transcript=body.voice_transcript,
            additional_context=body.additional_context,
        ))
        return {"success": True, "data": result.to_dict()}

    @app.post("/api/product-recommendations/generate")
    async def generate(body: GenerateBody):
        advisor = get_advisor()
        transcript = body.voice_transcript or body.description
        persona, confidence = await advisor.resolve_persona(body.persona, transcript)

        request = RecommendationRequest(
            persona=persona.value,
            persona_confidence=confidence,
            voice_transcript=transcript,
            budget=body.budget or extract_budget(transcript),
            project_size=body.project_size or extract_project_size(transcript),
            urgency=body.urgency or (extract_urgency(transcript) if transcript else None),
            specific_requirements=tuple(
                body.additional_requirements or extract_specific_requirements(transcript)
            ),
        )
        result = await advisor.recommend(request)
        return {
            "success": True,
            "data": result.to_dict(),
            "metadata": {
                "persona_detection": {
                    "detected": not body.persona,
                    "persona": persona.value,
                    "confidence": confidence,
                },
                "budget": request.budget,
                "project_size": request.project_size,
                "urgency": request.urgency,
            },
        }

    @app.get("/api/product-recommendations/bundles/{persona}")
    async def bundles(persona: str, budget: Optional[float] = None, project_size: Optional[float] = None):
        result = await get_advisor().recommend(RecommendationRequest(
            persona=persona, budget=budget, project_size=project_size, persona_confidence=1.0,
        ))
        data = result.to_dict()
        return {
            "success": True,
            "data": {
                "persona": data["persona"],
                "bundles": {
                    "good": data["recommendations"]["good_tier"],
                    "better": data["recommendations"]["better_tier"],
                    "best": data["recommendations"]["best_tier"],
                },
                "recommended_tier": data["recommendations"]["recommended_tier"],
            },
        }

    @app.get("/api/product-recommendations/personas")
    async def personas():
        return {"success": True, "data": get_advisor().list_personas()}

    @app.get("/api/product-recommendations/pricing/{persona}/{tier}")
    async def pricing(persona: str, tier: str, budget: Optional[float] = None):
        if tier not in {t.value for t in Tier}:
            raise HTTPException(status_code=400, detail=f"Invalid tier: {tier}. Use good, better, or best")
        guidance = get_advisor().pricing_guidance(persona, tier, budget)
        return {"success": True, "data": guidance}

    return app


def main():
    import argparse
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(description="Persona Bundles API")
    parser.add_argument("--host", default=settings.api_host)
    parser.add_argument("--port", type=int, default=settings.api_port)
    args = parser.parse_args()

    configure_logging(settings.log_level)
    logger.info("Starting Persona Bundles API on %s:%d", args.host, args.port)
    uvicorn.run(
        "persona_bundles.api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
