"""Tests for batch enrichment."""

import asyncio

import pytest

from wine_pipeline.core.config import PipelineConfig, QualityGateConfig
from wine_pipeline.core.enums import EnrichmentStatus, StopReason
from wine_pipeline.core.errors import ProviderError, StorageWriteError
from wine_pipeline.core.schema import WineRecord
from wine_pipeline.db.repositories import WineRepository
from wine_pipeline.enrichment.backoff import BackoffPolicy
from wine_pipeline.enrichment.batch import BatchProcessor, create_batch_processor
from wine_pipeline.enrichment.budget import DailyBudget
from wine_pipeline.enrichment.orchestrator import EnrichmentOrchestrator, EnrichmentResult
from wine_pipeline.enrichment.quality import QualityGate


@pytest.fixture
def repository(session) -> WineRepository:
    return WineRepository(session)


@pytest.fixture
def wines(repository) -> list[WineRecord]:
    stored = [
        repository.create(WineRecord(name=name, producer="Domaine Test", vintage="2020"))
        for name in ("Alpha", "Bravo", "Charlie", "Delta", "Echo")
    ]
    repository.commit()
    return stored


@pytest.fixture
def build(repository, no_sleep):
    """Build a batch processor around the given providers and budget."""

    def _build(providers, budget=None, max_retries=1, item_timeout=30.0, pacing_delay=1.0):
        orchestrator = EnrichmentOrchestrator(
            repository=repository,
            providers=providers,
            budget=budget or DailyBudget(100),
            quality_gate=QualityGate.from_config(QualityGateConfig()),
            backoff=BackoffPolicy(base_delay=2.0, max_delay=30.0, jitter=0.0),
            max_retries=max_retries,
            persist_partial_on_failure=True,
            sleep=no_sleep,
        )
        return BatchProcessor(
            repository,
            orchestrator,
            default_limit=15,
            pacing_delay=pacing_delay,
            item_timeout=item_timeout,
            sleep=no_sleep,
        )

    return _build


class TestRunBatch:
    """Tests for BatchProcessor.run_batch."""

    @pytest.mark.asyncio
    async def test_all_succeed(
        self, build, repository, wines, make_provider, complete_characteristics, sleeps
    ) -> None:
        processor = build([make_provider([complete_characteristics])])

        stats = await processor.run_batch()

        assert stats.processed == 5
        assert stats.succeeded == 5
        assert stats.stopped_reason == StopReason.COMPLETED
        # Pacing between items, not before the first
        assert sleeps == [1.0] * 4
        assert repository.verification_stats().verified == 5

    @pytest.mark.asyncio
    async def test_budget_ceiling_stops_batch(
        self, build, repository, wines, make_provider, complete_characteristics
    ) -> None:
        """A ceiling of two calls processes two wines and leaves the rest untouched."""
        processor = build([make_provider([complete_characteristics])], budget=DailyBudget(2))

        stats = await processor.run_batch(limit=5)

        assert stats.processed == 2
        assert stats.skipped == 3
        assert stats.stopped_reason == StopReason.BUDGET_EXHAUSTED
        statuses = [repository.get_by_id(w.id).enrichment_status for w in wines]
        assert statuses[:2] == [EnrichmentStatus.VERIFIED] * 2
        assert statuses[2:] == [EnrichmentStatus.UNVERIFIED] * 3

    @pytest.mark.asyncio
    async def test_budget_exhausted_mid_wine_restores_status(
        self, build, repository, wines, make_provider
    ) -> None:
        processor = build([make_provider([ProviderError("down")])], budget=DailyBudget(1), max_retries=3)

        stats = await processor.run_batch(limit=5)

        assert stats.processed == 0
        assert stats.stopped_reason == StopReason.BUDGET_EXHAUSTED
        assert stats.skipped == 5
        assert repository.get_by_id(wines[0].id).enrichment_status == EnrichmentStatus.UNVERIFIED

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_batch(
        self, build, repository, wines, make_provider, complete_characteristics
    ) -> None:
        provider = make_provider(
            [ProviderError("down"), complete_characteristics, complete_characteristics,
             ProviderError("down"), complete_characteristics]
        )
        stats = await build([provider]).run_batch()

        assert stats.processed == 5
        assert stats.succeeded == 3
        assert stats.failed == 2
        assert stats.stopped_reason == StopReason.COMPLETED
        assert repository.get_by_id(wines[0].id).enrichment_status == EnrichmentStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_is_retried(
        self, build, repository, wines, make_provider, complete_characteristics
    ) -> None:
        """A provider raising outside the ProviderError family is retried like any outage."""
        provider = make_provider([ConnectionResetError("socket reset"), complete_characteristics])

        stats = await build([provider], max_retries=2).run_batch()

        assert stats.processed == 5
        assert stats.succeeded == 5
        statuses = [repository.get_by_id(w.id).enrichment_status for w in wines]
        assert statuses == [EnrichmentStatus.VERIFIED] * 5

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_only_that_wine(
        self, build, repository, wines, make_provider, complete_characteristics
    ) -> None:
        processor = build([make_provider([complete_characteristics])])
        calls: list[int] = []
        real_enrich = processor.orchestrator.enrich

        async def broken_once(wine, *, force=False):
            calls.append(wine.id)
            if len(calls) == 1:
                raise KeyError("tannin")
            return await real_enrich(wine, force=force)

        processor.orchestrator.enrich = broken_once

        stats = await processor.run_batch(limit=3)

        assert stats.processed == 3
        assert stats.failed == 1
        assert stats.succeeded == 2
        assert stats.stopped_reason == StopReason.COMPLETED
        assert repository.get_by_id(wines[0].id).enrichment_status == EnrichmentStatus.FAILED

    @pytest.mark.asyncio
    async def test_limit(self, build, wines, make_provider, complete_characteristics) -> None:
        stats = await build([make_provider([complete_characteristics])]).run_batch(limit=2)
        assert stats.processed == 2

    @pytest.mark.asyncio
    async def test_stop_event(self, build, wines, make_provider, complete_characteristics) -> None:
        stop = asyncio.Event()
        stop.set()
        stats = await build([make_provider([complete_characteristics])]).run_batch(stop_event=stop)

        assert stats.processed == 0
        assert stats.skipped == 5
        assert stats.stopped_reason == StopReason.CANCELLED

    @pytest.mark.asyncio
    async def test_item_timeout(self, build, repository, wines, make_provider) -> None:
        processor = build([make_provider([{}])], item_timeout=0.01)

        async def slow_enrich(wine, *, force=False):
            await asyncio.sleep(1)

        processor.orchestrator.enrich = slow_enrich

        stats = await processor.run_batch(limit=2)

        assert stats.processed == 2
        assert stats.failed == 2
        assert stats.timed_out == 2
        assert repository.get_by_id(wines[0].id).enrichment_status == EnrichmentStatus.FAILED

    @pytest.mark.asyncio
    async def test_storage_error_continues(
        self, build, wines, make_provider, complete_characteristics
    ) -> None:
        processor = build([make_provider([complete_characteristics])])
        calls: list[int] = []

        async def flaky_enrich(wine, *, force=False):
            calls.append(wine.id)
            if len(calls) == 1:
                raise StorageWriteError("disk full")
            return EnrichmentResult(ok=True, record=wine)

        processor.orchestrator.enrich = flaky_enrich

        stats = await processor.run_batch(limit=3)

        assert stats.processed == 3
        assert stats.failed == 1
        assert stats.succeeded == 2

    @pytest.mark.asyncio
    async def test_pending_wines_first(
        self, build, repository, wines, make_provider, complete_characteristics
    ) -> None:
        repository.set_status(wines[3].id, EnrichmentStatus.PENDING)
        repository.commit()
        provider = make_provider([complete_characteristics])

        await build([provider]).run_batch(limit=1)

        assert provider.queries == ["Domaine Test Delta 2020"]


class TestBatchStats:
    """Tests for BatchStats serialization."""

    @pytest.mark.asyncio
    async def test_to_dict(self, build, wines, make_provider, complete_characteristics) -> None:
        stats = await build([make_provider([complete_characteristics])]).run_batch(limit=1)
        assert stats.to_dict() == {
            "processed": 1,
            "succeeded": 1,
            "failed": 0,
            "timed_out": 0,
            "skipped": 0,
            "stopped_reason": "completed",
        }


class TestCreateBatchProcessor:
    """Tests for create_batch_processor wiring."""

    def test_uses_config(self, session, make_provider) -> None:
        config = PipelineConfig.from_dict(
            {
                "batch": {"default_limit": 4, "item_timeout": 12, "pacing_delay": 0.5},
                "enrichment": {"max_retries": 3, "persist_partial_on_failure": False},
                "backoff": {"base_delay": 1.5},
            }
        )
        budget = DailyBudget(9)

        processor = create_batch_processor(
            session, providers=[make_provider([{}])], budget=budget, config=config
        )

        assert processor.default_limit == 4
        assert processor.item_timeout == 12.0
        assert processor.budget is budget
        assert processor.pacing_delay == 0.5
        assert processor.orchestrator.max_retries == 3
        assert processor.orchestrator.persist_partial_on_failure is False
        assert processor.orchestrator.backoff.base_delay == 1.5
