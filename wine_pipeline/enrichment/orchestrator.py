"""
Enrichment Orchestrator
=======================

Enriches a single wine: composes a research query, asks the research
providers under the retry policy and the daily budget, validates the answer
with the quality gate and persists the outcome.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from wine_pipeline.core.config import PipelineConfig, get_default_config
from wine_pipeline.core.enums import EnrichmentStatus, ErrorKind
from wine_pipeline.core.errors import (
    BudgetExhaustedError,
    ProviderError,
    QualityGateError,
    RetryExhaustedError,
)
from wine_pipeline.core.schema import WineRecord
from wine_pipeline.db.repositories import WineRepository
from wine_pipeline.enrichment.backoff import BackoffPolicy, with_retry
from wine_pipeline.enrichment.budget import DailyBudget
from wine_pipeline.enrichment.mapping import apply_characteristics, build_query
from wine_pipeline.enrichment.quality import QualityGate, QualityReport
from wine_pipeline.enrichment.research import EscalationPolicy, ResearchProvider

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


@dataclass
class EnrichmentResult:
    """Outcome of enriching one wine."""

    ok: bool
    record: WineRecord | None = None
    reason: ErrorKind | None = None
    attempts: int = 0
    completion_ratio: float | None = None
    missing_fields: list[str] = field(default_factory=list)
    source: str = ""
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "ok": self.ok,
            "wine_id": self.record.id if self.record else None,
            "status": self.record.enrichment_status.value if self.record else None,
            "reason": self.reason.value if self.reason else None,
            "attempts": self.attempts,
            "completion_ratio": self.completion_ratio,
            "missing_fields": self.missing_fields,
            "source": self.source,
            "error_message": self.error_message,
        }


class EnrichmentOrchestrator:
    """Runs the research, validate and persist cycle for one wine at a time."""

    def __init__(
        self,
        repository: WineRepository,
        providers: Sequence[ResearchProvider] | EscalationPolicy,
        budget: DailyBudget,
        quality_gate: QualityGate,
        backoff: BackoffPolicy,
        max_retries: int,
        persist_partial_on_failure: bool,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            repository: Storage for wine records.
            providers: Research providers in escalation order, or a ready
                EscalationPolicy.
            budget: Shared daily call budget.
            quality_gate: Gate a researched record must pass to be verified.
            backoff: Delay policy between attempts.
            max_retries: Total attempts per wine.
            persist_partial_on_failure: When the gate still fails on the last
                attempt, store the last researched characteristics with
                status failed instead of only flagging the wine.
            sleep: Awaitable sleep, replaceable in tests.
        """
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.repository = repository
        self.escalation = (
            providers if isinstance(providers, EscalationPolicy) else EscalationPolicy(providers)
        )
        self.budget = budget
        self.quality_gate = quality_gate
        self.backoff = backoff
        self.max_retries = max_retries
        self.persist_partial_on_failure = persist_partial_on_failure
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        repository: WineRepository,
        providers: Sequence[ResearchProvider],
        budget: DailyBudget,
        config: PipelineConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> EnrichmentOrchestrator:
        """Build an orchestrator with every tunable taken from configuration."""
        config = config or get_default_config()
        return cls(
            repository=repository,
            providers=EscalationPolicy(providers, config.enrichment.escalate_after),
            budget=budget,
            quality_gate=QualityGate.from_config(config.quality_gate),
            backoff=BackoffPolicy.from_config(config.backoff),
            max_retries=config.enrichment.max_retries,
            persist_partial_on_failure=config.enrichment.persist_partial_on_failure,
            sleep=sleep,
        )

    async def enrich(self, wine: WineRecord, *, force: bool = False) -> EnrichmentResult:
        """
        Enrich one stored wine.

        Args:
            wine: The wine to enrich; must already be stored.
            force: Re-research a wine that is already verified. A failed
                forced run leaves the verified record untouched.

        Returns:
            EnrichmentResult. ``ok`` is False for budget exhaustion, quality
            gate failure and exhausted retries; none of these raise.

        Raises:
            StorageWriteError: If persisting the outcome fails.
        """
        if wine.id is None:
            raise ValueError("Only stored wines can be enriched")

        if wine.is_verified and not force:
            return EnrichmentResult(ok=True, record=wine, source=wine.verified_source)

        query = build_query(wine)
        attempts_made = 0

        async def attempt(index: int) -> tuple[WineRecord, QualityReport, str]:
            nonlocal attempts_made
            # Claimed before the call; a timed-out call still counts
            if not self.budget.try_acquire():
                raise BudgetExhaustedError(
                    f"Daily budget of {self.budget.ceiling} calls exhausted"
                )

            provider = self.escalation.provider_for(index)
            attempts_made += 1
            logger.debug(f"Researching '{query}' via {provider.source} (attempt {index + 1})")
            try:
                raw = await asyncio.to_thread(provider.lookup, query)
            except ProviderError:
                raise
            except Exception as e:
                raise ProviderError(
                    f"{provider.source} lookup failed: {type(e).__name__}: {e}",
                    provider=provider.source,
                ) from e

            candidate = apply_characteristics(wine, raw)
            report = self.quality_gate.evaluate(candidate)
            if not report.passed:
                raise QualityGateError(report, record=candidate, source=provider.source)
            return candidate, report, provider.source

        try:
            candidate, report, source = await with_retry(
                attempt,
                self.backoff,
                self.max_retries,
                retry_on=(ProviderError, QualityGateError),
                sleep=self._sleep,
            )
        except BudgetExhaustedError as e:
            logger.info(f"Stopping enrichment of '{wine.label}': {e}")
            return EnrichmentResult(
                ok=False,
                record=wine,
                reason=ErrorKind.BUDGET_EXHAUSTED,
                attempts=attempts_made,
                error_message=str(e),
            )
        except RetryExhaustedError as e:
            return self._record_failure(wine, e.last_error, attempts_made)

        verified = candidate.model_copy(
            update={
                "enrichment_status": EnrichmentStatus.VERIFIED,
                "verified_source": source,
                "enrichment_attempts": wine.enrichment_attempts + attempts_made,
                "last_enriched_at": _utc_now(),
            }
        )
        stored = self.repository.update(verified)
        self.repository.commit()

        logger.info(
            f"Verified '{wine.label}' via {source} "
            f"({report.percentage}% complete, {attempts_made} attempt(s))"
        )
        return EnrichmentResult(
            ok=True,
            record=stored,
            attempts=attempts_made,
            completion_ratio=report.completion_ratio,
            missing_fields=report.missing_fields,
            source=source,
        )

    def _record_failure(
        self, wine: WineRecord, error: BaseException | None, attempts_made: int
    ) -> EnrichmentResult:
        """Persist a terminal failure and describe it."""
        if isinstance(error, QualityGateError):
            reason = ErrorKind.QUALITY_GATE_FAILURE
            report = error.report
            partial = error.record if self.persist_partial_on_failure else None
        else:
            reason = ErrorKind.MAX_RETRIES_EXCEEDED
            report = None
            partial = None

        logger.warning(f"Enrichment of '{wine.label}' failed after {attempts_made} attempt(s): {error}")

        result = EnrichmentResult(
            ok=False,
            reason=reason,
            attempts=attempts_made,
            completion_ratio=report.completion_ratio if report else None,
            missing_fields=list(report.missing_fields) if report else [],
            error_message=str(error) if error else None,
        )

        # A verified wine keeps its characteristics and status
        if wine.is_verified:
            result.record = wine
            return result

        base = partial if partial is not None else wine
        failed = base.model_copy(
            update={
                "enrichment_status": EnrichmentStatus.FAILED,
                "verified_source": "",
                "enrichment_attempts": wine.enrichment_attempts + attempts_made,
                "last_enriched_at": _utc_now(),
            }
        )
        result.record = self.repository.update(failed)
        self.repository.commit()
        return result
