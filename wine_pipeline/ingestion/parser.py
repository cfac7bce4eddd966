"""
Wine List Parser
================

Turns the lines of a free-text wine list into stored wine records. Lines
that are too short or that the classifier does not recognise as wines are
skipped. Ingestion is idempotent: a line whose (name, producer, vintage)
matches a stored wine returns that wine instead of creating another.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from wine_pipeline.core.config import IngestionConfig, get_default_config
from wine_pipeline.core.enums import ErrorKind
from wine_pipeline.core.errors import ProviderError, StorageWriteError
from wine_pipeline.core.schema import WineRecord
from wine_pipeline.db.repositories import WineRepository
from wine_pipeline.ingestion.classifier import WineClassifier

logger = logging.getLogger(__name__)


@dataclass
class IngestionStats:
    """Counters for one wine-list ingestion."""

    lines: int = 0
    created: int = 0
    duplicates: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    wines: list[WineRecord] = field(default_factory=list)
    # Lines that produced no wine, by outcome
    by_kind: Counter[ErrorKind] = field(default_factory=Counter)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "lines": self.lines,
            "created": self.created,
            "duplicates": self.duplicates,
            "skipped": self.skipped,
            "errors": self.errors,
            "wine_ids": [w.id for w in self.wines],
            "by_kind": {kind.value: count for kind, count in self.by_kind.items()},
        }


class IngestionParser:
    """Parses wine-list text into deduplicated WineRecords."""

    def __init__(
        self,
        repository: WineRepository,
        classifier: WineClassifier,
        min_line_length: int,
    ):
        self.repository = repository
        self.classifier = classifier
        self.min_line_length = min_line_length

    @classmethod
    def from_config(
        cls,
        repository: WineRepository,
        classifier: WineClassifier,
        config: IngestionConfig | None = None,
    ) -> IngestionParser:
        config = config or get_default_config().ingestion
        return cls(repository, classifier, min_line_length=config.min_line_length)

    def parse_line(self, line: str) -> WineRecord | None:
        """
        Parse one line and store the wine it describes.

        Returns:
            The new or already-stored WineRecord, or None when the line is
            not a wine.

        Raises:
            ProviderError: If the classifier fails.
            StorageWriteError: If the insert fails.
        """
        record, _ = self._ingest(line)
        return record

    def parse_text(self, text: str) -> IngestionStats:
        """
        Parse every line of a wine list.

        A failure on one line is recorded in ``errors`` and does not stop
        the run.
        """
        stats = IngestionStats()
        for raw_line in text.splitlines():
            if not raw_line.strip():
                continue
            stats.lines += 1
            try:
                record, created = self._ingest(raw_line)
            except (ProviderError, StorageWriteError) as e:
                logger.error(f"Line {stats.lines} failed: {e}")
                stats.errors.append(f"line {stats.lines}: {e}")
                stats.by_kind[e.kind] += 1
                continue

            if record is None:
                stats.skipped += 1
                stats.by_kind[ErrorKind.PARSE_SKIP] += 1
            elif created:
                stats.created += 1
                stats.wines.append(record)
            else:
                stats.duplicates += 1
                stats.wines.append(record)

        logger.info(
            f"Parsed {stats.lines} line(s): {stats.created} new, "
            f"{stats.duplicates} already known, {stats.skipped} skipped, "
            f"{len(stats.errors)} error(s)"
        )
        return stats

    def _ingest(self, line: str) -> tuple[WineRecord | None, bool]:
        """Returns (record, created)."""
        text = line.strip()
        if len(text) < self.min_line_length:
            return None, False

        structured = self.classifier.classify(text)
        if structured is None:
            return None, False

        existing = self.repository.get_by_key(
            structured.name, structured.producer, structured.vintage
        )
        if existing is not None:
            logger.debug(f"Already stored: {existing.label}")
            return existing, False

        record = self.repository.create(structured.to_record())
        self.repository.commit()
        logger.debug(f"Stored new wine: {record.label}")
        return record, True
