"""
Pipeline Configuration
======================

Loads enrichment, ingestion and recommendation settings from a YAML file
with a handful of environment overrides. Every tunable constant used by the
pipeline lives here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from wine_pipeline.core.errors import ConfigError


@dataclass
class BackoffConfig:
    """Exponential backoff settings (seconds)."""

    base_delay: float = 2.0
    max_delay: float = 30.0
    jitter: float = 1.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BackoffConfig:
        """Create from dictionary, using defaults for missing values."""
        if data is None:
            return cls()
        return cls(
            base_delay=float(data.get("base_delay", 2.0)),
            max_delay=float(data.get("max_delay", 30.0)),
            jitter=float(data.get("jitter", 1.0)),
        )


@dataclass
class BudgetConfig:
    """Daily external-call budget."""

    daily_limit: int = 500

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BudgetConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(daily_limit=int(data.get("daily_limit", 500)))


@dataclass
class QualityFieldRule:
    """A critical field and its minimum acceptable length (0 = must be present)."""

    name: str
    min_length: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QualityFieldRule:
        """Create from dictionary."""
        return cls(name=data["name"], min_length=int(data.get("min_length", 0)))


def _default_quality_fields() -> list[QualityFieldRule]:
    return [
        QualityFieldRule("tasting_notes", 50),
        QualityFieldRule("flavor_notes", 20),
        QualityFieldRule("aroma_notes", 20),
        QualityFieldRule("body_description", 15),
        QualityFieldRule("food_pairing", 10),
        QualityFieldRule("serving_temp", 5),
        QualityFieldRule("aging_potential", 5),
        QualityFieldRule("rating", 0),
    ]


@dataclass
class QualityGateConfig:
    """Completion-rate quality gate."""

    threshold: float = 0.98
    fields: list[QualityFieldRule] = field(default_factory=_default_quality_fields)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> QualityGateConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        fields_data = data.get("fields")
        return cls(
            threshold=float(data.get("threshold", 0.98)),
            fields=(
                [QualityFieldRule.from_dict(f) for f in fields_data]
                if fields_data
                else _default_quality_fields()
            ),
        )


@dataclass
class EnrichmentConfig:
    """Orchestrator settings."""

    max_retries: int = 5
    escalate_after: int = 2
    persist_partial_on_failure: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> EnrichmentConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            max_retries=int(data.get("max_retries", 5)),
            escalate_after=int(data.get("escalate_after", 2)),
            persist_partial_on_failure=bool(data.get("persist_partial_on_failure", True)),
        )


@dataclass
class BatchConfig:
    """Batch processor settings (seconds)."""

    default_limit: int = 15
    pacing_delay: float = 1.0
    item_timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BatchConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(
            default_limit=int(data.get("default_limit", 15)),
            pacing_delay=float(data.get("pacing_delay", 1.0)),
            item_timeout=float(data.get("item_timeout", 30.0)),
        )


@dataclass
class IngestionConfig:
    """Wine-list parsing settings."""

    min_line_length: int = 4

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> IngestionConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        return cls(min_line_length=int(data.get("min_line_length", 4)))


def _default_weights() -> dict[str, float]:
    return {
        "color": 0.30,
        "tannin": 0.20,
        "acidity": 0.20,
        "body": 0.15,
        "sweetness": 0.10,
        "flavor_note": 0.05,
    }


@dataclass
class RecommendationConfig:
    """Scoring weights and selection thresholds."""

    weights: dict[str, float] = field(default_factory=_default_weights)
    perfect_threshold: float = 0.70
    surprise_threshold: float = 0.40
    max_perfect: int = 2
    max_surprise: int = 1
    max_results: int = 3

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RecommendationConfig:
        """Create from dictionary."""
        if data is None:
            return cls()
        weights = _default_weights()
        weights.update({k: float(v) for k, v in (data.get("weights") or {}).items()})
        thresholds = data.get("thresholds", {})
        return cls(
            weights=weights,
            perfect_threshold=float(thresholds.get("perfect", 0.70)),
            surprise_threshold=float(thresholds.get("surprise", 0.40)),
            max_perfect=int(data.get("max_perfect", 2)),
            max_surprise=int(data.get("max_surprise", 1)),
            max_results=int(data.get("max_results", 3)),
        )


@dataclass
class PipelineConfig:
    """Top-level configuration."""

    backoff: BackoffConfig = field(default_factory=BackoffConfig)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    quality_gate: QualityGateConfig = field(default_factory=QualityGateConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    recommendation: RecommendationConfig = field(default_factory=RecommendationConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PipelineConfig:
        """Create from dictionary."""
        data = data or {}
        config = cls(
            backoff=BackoffConfig.from_dict(data.get("backoff")),
            budget=BudgetConfig.from_dict(data.get("budget")),
            quality_gate=QualityGateConfig.from_dict(data.get("quality_gate")),
            enrichment=EnrichmentConfig.from_dict(data.get("enrichment")),
            batch=BatchConfig.from_dict(data.get("batch")),
            ingestion=IngestionConfig.from_dict(data.get("ingestion")),
            recommendation=RecommendationConfig.from_dict(data.get("recommendation")),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigError: If any value is out of range.
        """
        errors: list[str] = []
        if self.backoff.base_delay < 0 or self.backoff.max_delay < self.backoff.base_delay:
            errors.append("backoff: require 0 <= base_delay <= max_delay")
        if self.backoff.jitter < 0:
            errors.append("backoff: jitter must be >= 0")
        if self.budget.daily_limit < 0:
            errors.append("budget: daily_limit must be >= 0")
        if not 0.0 < self.quality_gate.threshold <= 1.0:
            errors.append("quality_gate: threshold must be in (0, 1]")
        if not self.quality_gate.fields:
            errors.append("quality_gate: at least one field is required")
        if self.enrichment.max_retries < 1:
            errors.append("enrichment: max_retries must be >= 1")
        if self.enrichment.escalate_after < 1:
            errors.append("enrichment: escalate_after must be >= 1")
        if self.batch.item_timeout <= 0 or self.batch.pacing_delay < 0:
            errors.append("batch: item_timeout must be > 0 and pacing_delay >= 0")
        rec = self.recommendation
        if not 0.0 <= rec.surprise_threshold <= rec.perfect_threshold <= 1.0:
            errors.append("recommendation: require 0 <= surprise <= perfect <= 1")
        if errors:
            raise ConfigError("; ".join(errors))

    def apply_env_overrides(self, environ: dict[str, str] | None = None) -> None:
        """Apply WINE_* environment overrides on top of file values."""
        env = os.environ if environ is None else environ
        try:
            if env.get("WINE_DAILY_BUDGET"):
                self.budget.daily_limit = int(env["WINE_DAILY_BUDGET"])
            if env.get("WINE_QUALITY_THRESHOLD"):
                self.quality_gate.threshold = float(env["WINE_QUALITY_THRESHOLD"])
            if env.get("WINE_MAX_RETRIES"):
                self.enrichment.max_retries = int(env["WINE_MAX_RETRIES"])
        except ValueError as e:
            raise ConfigError(f"Invalid environment override: {e}") from e
        self.validate()


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the pipeline.yaml file

    Returns:
        The parsed PipelineConfig.
    """
    config_path = Path(config_path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return PipelineConfig.from_dict(data)


# Global configuration instance
_default_config: PipelineConfig | None = None


def get_default_config() -> PipelineConfig:
    """
    Get the default pipeline configuration.

    Loads from PIPELINE_CONFIG_PATH if set, otherwise config/pipeline.yaml at
    the project root, otherwise built-in defaults. Environment overrides are
    applied last.
    """
    global _default_config

    if _default_config is None:
        config_path = os.environ.get("PIPELINE_CONFIG_PATH")
        if config_path:
            path = Path(config_path)
        else:
            path = Path(__file__).parent.parent.parent / "config" / "pipeline.yaml"

        config = load_config(path) if path.exists() else PipelineConfig()
        config.apply_env_overrides()
        _default_config = config

    return _default_config


def reset_default_config() -> None:
    """Reset the default configuration (useful for testing)."""
    global _default_config
    _default_config = None
