"""
Completion-rate quality gate for enriched wine records.

A record passes when the share of critical fields that meet their minimum
length reaches the configured threshold. Field rules come from
configuration; a min_length of 0 means the field only has to be present.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from wine_pipeline.core.config import QualityFieldRule, QualityGateConfig
from wine_pipeline.core.schema import WineRecord

# Placeholder strings that upstream providers emit instead of leaving a field empty
MISSING_MARKERS = frozenset({"null", "undefined", "none", "n/a"})


@dataclass(frozen=True)
class QualityReport:
    """Outcome of a quality evaluation."""

    passed: bool
    completion_ratio: float
    missing_fields: list[str] = field(default_factory=list)

    @property
    def percentage(self) -> float:
        return round(self.completion_ratio * 100, 1)


def field_passes(value, min_length: int) -> bool:
    """Check one field value against its rule."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return min_length == 0 or len(str(value)) >= min_length
    text = str(value).strip()
    if not text or text.lower() in MISSING_MARKERS:
        return False
    return len(text) >= min_length


class QualityGate:
    """Evaluates records against an ordered list of critical fields."""

    def __init__(self, fields: Sequence[QualityFieldRule], threshold: float = 0.98):
        if not fields:
            raise ValueError("QualityGate needs at least one field")
        self.fields = list(fields)
        self.threshold = threshold

    @classmethod
    def from_config(cls, config: QualityGateConfig) -> QualityGate:
        return cls(fields=config.fields, threshold=config.threshold)

    def evaluate(self, record: WineRecord) -> QualityReport:
        """
        Score a record without modifying it.

        Args:
            record: The candidate record.

        Returns:
            QualityReport with pass/fail, completion ratio and missing fields
            in configured order.
        """
        missing = [
            rule.name
            for rule in self.fields
            if not field_passes(getattr(record, rule.name, None), rule.min_length)
        ]
        ratio = (len(self.fields) - len(missing)) / len(self.fields)
        return QualityReport(
            passed=ratio >= self.threshold,
            completion_ratio=ratio,
            missing_fields=missing,
        )
