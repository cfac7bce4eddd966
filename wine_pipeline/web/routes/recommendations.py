"""Guest wine recommendation endpoint."""

import asyncio
import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from wine_pipeline.core.errors import ConfigError
from wine_pipeline.db.engine import get_session
from wine_pipeline.db.repositories import RecommendationLogRepository, RestaurantWineRepository
from wine_pipeline.recommendation.engine import RecommendationEngine
from wine_pipeline.recommendation.preferences import AIPreferenceParser, PreferenceParser
from wine_pipeline.services.ai.client import create_client_from_env

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["recommendations"])


class RecommendationRequest(BaseModel):
    """Body of POST /recommendations."""

    restaurant_id: int
    guest_description: str = Field(min_length=1, max_length=2000)


def get_preference_parser() -> PreferenceParser:
    """Preference parser configured from the environment."""
    return AIPreferenceParser(create_client_from_env())


@router.post("")
async def create_recommendations(payload: RecommendationRequest) -> JSONResponse:
    """Parse the guest's request and recommend up to three wines."""
    try:
        parser = get_preference_parser()
    except ConfigError as e:
        raise HTTPException(status_code=503, detail=f"Preference parsing unavailable: {e}")

    preference = await asyncio.to_thread(parser.parse, payload.guest_description)

    with get_session() as session:
        inventory = RestaurantWineRepository(session).list_inventory(payload.restaurant_id)
        engine = RecommendationEngine(log_repository=RecommendationLogRepository(session))
        result = engine.recommend(
            inventory,
            preference,
            restaurant_id=payload.restaurant_id,
            search_query=payload.guest_description,
        )

    logger.info(
        f"Restaurant {payload.restaurant_id}: {len(result.recommendations)} recommendation(s) "
        f"from {result.total_inventory_count} wine(s)"
    )
    return JSONResponse(result.model_dump(mode="json"))
