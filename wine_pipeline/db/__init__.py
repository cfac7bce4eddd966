"""Database initialization and persistence layer."""

from wine_pipeline.db.engine import get_session, init_db
from wine_pipeline.db.repositories import (
    RecommendationLogRepository,
    RestaurantWineRepository,
    WineRepository,
)

__all__ = [
    "get_session",
    "init_db",
    "WineRepository",
    "RestaurantWineRepository",
    "RecommendationLogRepository",
]
