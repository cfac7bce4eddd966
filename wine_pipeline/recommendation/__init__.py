"""Wine recommendations for guest requests."""

from wine_pipeline.recommendation.engine import RecommendationEngine, ScoredWine
from wine_pipeline.recommendation.preferences import AIPreferenceParser, PreferenceParser
from wine_pipeline.recommendation.scoring import (
    characteristics_for,
    describe_match,
    find_missed_criteria,
    score_wine,
)

__all__ = [
    "AIPreferenceParser",
    "PreferenceParser",
    "RecommendationEngine",
    "ScoredWine",
    "characteristics_for",
    "describe_match",
    "find_missed_criteria",
    "score_wine",
]
