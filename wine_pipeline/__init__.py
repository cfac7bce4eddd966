"""Wine Pipeline: wine-list ingestion, enrichment and guest recommendations."""

__version__ = "0.1.0"
