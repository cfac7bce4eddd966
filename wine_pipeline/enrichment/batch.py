"""
Batch Processor
===============

Walks the wines that still need enrichment, one at a time, handing each to
the orchestrator under a per-item timeout with a fixed pause between items.
A batch ends early only when the daily budget runs out or a stop is
requested; individual wine failures are counted and the batch moves on.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from wine_pipeline.core.config import PipelineConfig, get_default_config
from wine_pipeline.core.enums import EnrichmentStatus, ErrorKind, StopReason
from wine_pipeline.core.errors import StorageWriteError
from wine_pipeline.core.schema import WineRecord
from wine_pipeline.db.repositories import WineRepository
from wine_pipeline.enrichment.budget import DailyBudget, get_default_budget
from wine_pipeline.enrichment.orchestrator import EnrichmentOrchestrator, EnrichmentResult
from wine_pipeline.enrichment.research import ResearchProvider, create_research_providers_from_env

logger = logging.getLogger(__name__)


@dataclass
class BatchStats:
    """Counters for one batch run."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0
    skipped: int = 0
    stopped_reason: StopReason = StopReason.COMPLETED
    results: list[EnrichmentResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "skipped": self.skipped,
            "stopped_reason": self.stopped_reason.value,
        }


class BatchProcessor:
    """Sequential enrichment of not-yet-verified wines."""

    def __init__(
        self,
        repository: WineRepository,
        orchestrator: EnrichmentOrchestrator,
        default_limit: int,
        pacing_delay: float,
        item_timeout: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.repository = repository
        self.orchestrator = orchestrator
        self.default_limit = default_limit
        self.pacing_delay = pacing_delay
        self.item_timeout = item_timeout
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        repository: WineRepository,
        orchestrator: EnrichmentOrchestrator,
        config: PipelineConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> BatchProcessor:
        config = config or get_default_config()
        return cls(
            repository=repository,
            orchestrator=orchestrator,
            default_limit=config.batch.default_limit,
            pacing_delay=config.batch.pacing_delay,
            item_timeout=config.batch.item_timeout,
            sleep=sleep,
        )

    @property
    def budget(self):
        return self.orchestrator.budget

    async def run_batch(
        self,
        limit: int | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> BatchStats:
        """
        Enrich up to ``limit`` wines that are not verified yet.

        Args:
            limit: Maximum wines to pick up (defaults to the configured limit).
            stop_event: Cooperative stop signal, checked between wines.

        Returns:
            BatchStats. Wines not reached because the batch stopped early are
            left untouched and counted as skipped.
        """
        limit = self.default_limit if limit is None else limit
        wines = self.repository.list_needing_enrichment(limit)
        stats = BatchStats()

        logger.info(
            f"Starting enrichment batch: {len(wines)} wine(s), "
            f"{self.budget.remaining} call(s) left in today's budget"
        )

        for index, wine in enumerate(wines):
            if stop_event is not None and stop_event.is_set():
                stats.stopped_reason = StopReason.CANCELLED
                stats.skipped = len(wines) - index
                logger.info("Enrichment batch cancelled")
                break

            if not self.budget.can_proceed():
                stats.stopped_reason = StopReason.BUDGET_EXHAUSTED
                stats.skipped = len(wines) - index
                logger.info("Daily budget exhausted; stopping batch until tomorrow")
                break

            if index > 0 and self.pacing_delay > 0:
                await self._sleep(self.pacing_delay)

            outcome = await self._process_one(wine, stats)
            if outcome is ErrorKind.BUDGET_EXHAUSTED:
                stats.stopped_reason = StopReason.BUDGET_EXHAUSTED
                stats.skipped = len(wines) - index
                break

        logger.info(
            f"Enrichment batch finished ({stats.stopped_reason.value}): "
            f"processed={stats.processed} succeeded={stats.succeeded} "
            f"failed={stats.failed} timed_out={stats.timed_out} skipped={stats.skipped}"
        )
        return stats

    async def _process_one(self, wine: WineRecord, stats: BatchStats) -> ErrorKind | None:
        """Enrich one wine and update the counters; returns the failure kind, if any."""
        previous_status = wine.enrichment_status
        try:
            pending = self.repository.set_status(wine.id, EnrichmentStatus.PENDING) or wine
            self.repository.commit()
            result = await asyncio.wait_for(
                self.orchestrator.enrich(pending), timeout=self.item_timeout
            )
        except TimeoutError:
            logger.error(f"Enrichment of '{wine.label}' timed out after {self.item_timeout}s")
            stats.processed += 1
            stats.failed += 1
            stats.timed_out += 1
            self._mark(wine, EnrichmentStatus.FAILED)
            return ErrorKind.TIMEOUT
        except StorageWriteError as e:
            logger.error(f"Could not store enrichment of '{wine.label}': {e}")
            stats.processed += 1
            stats.failed += 1
            return ErrorKind.STORAGE_WRITE_ERROR
        except Exception:
            logger.exception(f"Unexpected error enriching '{wine.label}'")
            stats.processed += 1
            stats.failed += 1
            self._mark(wine, EnrichmentStatus.FAILED)
            return ErrorKind.PROVIDER_ERROR

        if result.reason is ErrorKind.BUDGET_EXHAUSTED:
            self._mark(wine, previous_status)
            return ErrorKind.BUDGET_EXHAUSTED

        stats.processed += 1
        stats.results.append(result)
        if result.ok:
            stats.succeeded += 1
            return None
        stats.failed += 1
        return result.reason

    def _mark(self, wine: WineRecord, status: EnrichmentStatus) -> None:
        """Best-effort status change; a storage failure here is logged, not raised."""
        try:
            self.repository.set_status(wine.id, status)
            self.repository.commit()
        except StorageWriteError as e:
            logger.error(f"Could not mark '{wine.label}' as {status.value}: {e}")


def create_batch_processor(
    session,
    providers: Sequence[ResearchProvider] | None = None,
    budget: DailyBudget | None = None,
    config: PipelineConfig | None = None,
) -> BatchProcessor:
    """
    Wire a BatchProcessor for a database session.

    Providers default to those configured in the environment and the budget
    to the process-wide shared one.

    Raises:
        ConfigError: If no research provider can be created.
    """
    config = config or get_default_config()
    repository = WineRepository(session)
    orchestrator = EnrichmentOrchestrator.from_config(
        repository,
        providers if providers is not None else create_research_providers_from_env(),
        budget if budget is not None else get_default_budget(),
        config=config,
    )
    return BatchProcessor.from_config(repository, orchestrator, config=config)
