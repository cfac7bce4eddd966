"""AI client layer shared by research, classification and preference parsing."""

from wine_pipeline.services.ai.client import (
    AIClient,
    AIProvider,
    GenerationResult,
    create_client_from_env,
    get_ai_client,
)

__all__ = [
    "AIClient",
    "AIProvider",
    "GenerationResult",
    "create_client_from_env",
    "get_ai_client",
]
