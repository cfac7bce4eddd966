"""Enrichment run and status endpoints."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from wine_pipeline.core.errors import ConfigError
from wine_pipeline.db.engine import get_session
from wine_pipeline.db.repositories import WineRepository
from wine_pipeline.enrichment.batch import create_batch_processor
from wine_pipeline.enrichment.budget import get_default_budget
from wine_pipeline.enrichment.research import ResearchProvider, create_research_providers_from_env

router = APIRouter(prefix="/enrichment", tags=["enrichment"])


class EnrichmentRunRequest(BaseModel):
    """Body of POST /enrichment/run."""

    limit: int | None = Field(default=None, ge=1, le=500)


def get_research_providers() -> list[ResearchProvider]:
    """Research providers configured from the environment."""
    return create_research_providers_from_env()


@router.post("/run")
async def run_enrichment(payload: EnrichmentRunRequest | None = None) -> JSONResponse:
    """Run one enrichment batch in-process and return its stats."""
    try:
        providers = get_research_providers()
    except ConfigError as e:
        raise HTTPException(status_code=503, detail=f"Research providers unavailable: {e}")

    limit = payload.limit if payload else None
    with get_session() as session:
        processor = create_batch_processor(session, providers=providers)
        stats = await processor.run_batch(limit=limit)

    return JSONResponse(stats.to_dict())


@router.get("/status")
async def enrichment_status() -> JSONResponse:
    """Verification counts and today's budget."""
    with get_session() as session:
        stats = WineRepository(session).verification_stats()

    return JSONResponse({
        "wines": {
            "total": stats.total,
            "verified": stats.verified,
            "unverified": stats.unverified,
            "pending": stats.pending,
            "failed": stats.failed,
            "verification_rate": stats.verification_rate,
        },
        "budget": get_default_budget().snapshot().to_dict(),
    })
