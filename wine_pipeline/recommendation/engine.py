"""
Recommendation Engine
=====================

Scores a restaurant's inventory against a guest preference and picks a
small, diversified set: up to two close matches ("perfect"), one near miss
("surprise") with the criteria it misses, then the best of the rest until
the list is full. Each call is logged for analytics; a logging failure never
fails the recommendation.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from wine_pipeline.core.config import RecommendationConfig, get_default_config
from wine_pipeline.core.enums import MatchType
from wine_pipeline.core.errors import LogWriteError
from wine_pipeline.core.schema import (
    GuestPreference,
    InventoryWine,
    RecommendationResult,
    WineMatch,
)
from wine_pipeline.db.repositories import RecommendationLogRepository
from wine_pipeline.recommendation.scoring import (
    characteristics_for,
    describe_match,
    find_missed_criteria,
    score_wine,
)

logger = logging.getLogger(__name__)


@dataclass
class ScoredWine:
    """An inventory entry with its score and original position."""

    entry: InventoryWine
    score: float
    position: int

    @property
    def sort_key(self) -> tuple[float, float]:
        rating = self.entry.wine.rating
        return (-self.score, -(rating if rating is not None else -1.0))


class RecommendationEngine:
    """Stateless apart from configuration; safe to share between requests."""

    def __init__(
        self,
        config: RecommendationConfig | None = None,
        log_repository: RecommendationLogRepository | None = None,
    ):
        self.config = config or get_default_config().recommendation
        self.log_repository = log_repository

    def rank(
        self, inventory: Sequence[InventoryWine], preference: GuestPreference
    ) -> list[ScoredWine]:
        """Score every wine; best first, ties broken by rating then inventory order."""
        scored = [
            ScoredWine(entry=entry, score=score_wine(entry.wine, preference, self.config.weights), position=i)
            for i, entry in enumerate(inventory)
        ]
        # sorted() is stable, so equal keys keep inventory order
        return sorted(scored, key=lambda s: s.sort_key)

    def select(
        self, ranked: list[ScoredWine], preference: GuestPreference
    ) -> list[WineMatch]:
        """Apply the perfect / surprise / backfill selection to a ranked list."""
        cfg = self.config
        picks: list[tuple[ScoredWine, MatchType]] = []
        taken: set[int] = set()

        for candidate in ranked:
            if len(picks) >= cfg.max_perfect:
                break
            if candidate.score >= cfg.perfect_threshold:
                picks.append((candidate, MatchType.PERFECT))
                taken.add(candidate.position)

        surprises = 0
        for candidate in ranked:
            if surprises >= cfg.max_surprise:
                break
            if candidate.position in taken:
                continue
            if cfg.surprise_threshold <= candidate.score < cfg.perfect_threshold:
                picks.append((candidate, MatchType.SURPRISE))
                taken.add(candidate.position)
                surprises += 1

        perfect_count = sum(1 for _, kind in picks if kind is MatchType.PERFECT)
        for candidate in ranked:
            if len(picks) >= cfg.max_results:
                break
            # A wine matching nothing is not a recommendation
            if candidate.position in taken or candidate.score <= 0:
                continue
            if perfect_count < cfg.max_perfect:
                kind = MatchType.PERFECT
                perfect_count += 1
            else:
                kind = MatchType.SURPRISE
            picks.append((candidate, kind))
            taken.add(candidate.position)

        return [self._to_match(c, kind, preference) for c, kind in picks[: cfg.max_results]]

    def recommend(
        self,
        inventory: Sequence[InventoryWine],
        preference: GuestPreference,
        restaurant_id: int | None = None,
        search_query: str = "",
    ) -> RecommendationResult:
        """
        Recommend wines from an inventory.

        Args:
            inventory: The restaurant's available wines.
            preference: Parsed guest preference.
            restaurant_id: Recorded in the analytics log.
            search_query: The guest's original words, recorded in the log.

        Returns:
            RecommendationResult with at most ``max_results`` matches; an
            empty or short list is a normal outcome.
        """
        started = time.perf_counter()

        matches = self.select(self.rank(inventory, preference), preference) if inventory else []
        result = RecommendationResult(
            recommendations=matches,
            guest_preferences=preference,
            total_inventory_count=len(inventory),
            processing_time_ms=int((time.perf_counter() - started) * 1000),
        )

        self._log(restaurant_id, preference, result, search_query)
        return result

    def _to_match(
        self, scored: ScoredWine, kind: MatchType, preference: GuestPreference
    ) -> WineMatch:
        entry = scored.entry
        wine = entry.wine
        return WineMatch(
            wine_id=wine.id,
            restaurant_wine_id=entry.restaurant_wine_id,
            name=wine.name,
            producer=wine.producer,
            vintage=wine.vintage,
            price=entry.price or "Market Price",
            match_score=scored.score,
            match_type=kind,
            characteristics=characteristics_for(wine),
            description=describe_match(entry),
            missed_criteria=(
                find_missed_criteria(wine, preference) if kind is MatchType.SURPRISE else None
            ),
        )

    def _log(
        self,
        restaurant_id: int | None,
        preference: GuestPreference,
        result: RecommendationResult,
        search_query: str,
    ) -> None:
        if self.log_repository is None:
            return
        try:
            self.log_repository.create(
                restaurant_id=restaurant_id,
                preference=preference,
                wine_ids=result.wine_ids,
                search_query=search_query,
            )
        except LogWriteError as e:
            logger.error(f"Recommendation served but not logged: {e}")
