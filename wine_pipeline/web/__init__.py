"""HTTP adapter for recommendations and enrichment runs."""
