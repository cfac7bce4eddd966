"""AI provider implementations."""

from wine_pipeline.services.ai.providers.anthropic import AnthropicClient
from wine_pipeline.services.ai.providers.openai import OpenAIClient

__all__ = ["AnthropicClient", "OpenAIClient"]
