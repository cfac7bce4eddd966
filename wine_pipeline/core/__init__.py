"""Domain models, scales, configuration and errors."""
