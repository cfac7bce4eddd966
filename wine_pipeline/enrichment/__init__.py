"""Enrichment: research, validate and persist wine characteristics."""

from wine_pipeline.enrichment.backoff import BackoffPolicy, with_retry
from wine_pipeline.enrichment.batch import BatchProcessor, BatchStats, create_batch_processor
from wine_pipeline.enrichment.budget import (
    BudgetSnapshot,
    DailyBudget,
    get_default_budget,
    reset_default_budget,
)
from wine_pipeline.enrichment.orchestrator import EnrichmentOrchestrator, EnrichmentResult
from wine_pipeline.enrichment.quality import QualityGate, QualityReport
from wine_pipeline.enrichment.research import (
    AIResearchProvider,
    EscalationPolicy,
    ResearchProvider,
)

__all__ = [
    "AIResearchProvider",
    "BackoffPolicy",
    "BatchProcessor",
    "BatchStats",
    "BudgetSnapshot",
    "DailyBudget",
    "EnrichmentOrchestrator",
    "EnrichmentResult",
    "EscalationPolicy",
    "QualityGate",
    "QualityReport",
    "ResearchProvider",
    "create_batch_processor",
    "get_default_budget",
    "reset_default_budget",
    "with_retry",
]
