"""Wine-list ingestion."""

from wine_pipeline.ingestion.classifier import AIWineClassifier, WineClassifier, normalize_vintage
from wine_pipeline.ingestion.parser import IngestionParser, IngestionStats

__all__ = [
    "AIWineClassifier",
    "IngestionParser",
    "IngestionStats",
    "WineClassifier",
    "normalize_vintage",
]
