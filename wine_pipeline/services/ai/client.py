"""AI client interface and provider abstraction."""

import json
import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import BaseModel

from wine_pipeline.core.errors import ConfigError

logger = logging.getLogger(__name__)

MAX_REPAIR_ATTEMPTS = 2


class AIProvider(str, Enum):
    """Supported AI providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


_API_KEY_ENV = {
    AIProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    AIProvider.OPENAI: "OPENAI_API_KEY",
}


class GenerationResult(BaseModel):
    """Result of an AI generation attempt."""

    success: bool
    raw_response: str
    parsed_json: dict[str, Any] | None = None
    error_message: str | None = None
    repair_attempts: int = 0


def strip_code_fences(raw_response: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    json_str = raw_response.strip()
    if json_str.startswith("```json"):
        json_str = json_str[7:]
    if json_str.startswith("```"):
        json_str = json_str[3:]
    if json_str.endswith("```"):
        json_str = json_str[:-3]
    return json_str.strip()


class AIClient(ABC):
    """Abstract base class for AI providers."""

    provider: AIProvider
    model: str

    @abstractmethod
    def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
    ) -> GenerationResult:
        """
        Ask the model for a JSON object.

        Args:
            prompt: The user prompt.
            system_prompt: Optional system prompt.

        Returns:
            GenerationResult with the parsed JSON object or error details.
        """
        pass

    @abstractmethod
    def repair_json(
        self,
        invalid_json: str,
        error_message: str,
    ) -> str:
        """
        Attempt to repair invalid JSON.

        Args:
            invalid_json: The malformed JSON string.
            error_message: The error message from the parser.

        Returns:
            The repaired JSON string.
        """
        pass

    def _parse_json_response(
        self,
        raw_response: str,
        repair_attempts: int = 0,
    ) -> GenerationResult:
        """
        Parse a JSON object out of a model response, repairing if needed.

        Args:
            raw_response: The raw text from the model.
            repair_attempts: Number of repair attempts made so far.

        Returns:
            GenerationResult with parsed data or error details.
        """
        json_str = strip_code_fences(raw_response)

        try:
            parsed_json = json.loads(json_str)
        except json.JSONDecodeError as e:
            error_msg = f"JSON parse error: {str(e)}"
            logger.warning(f"{error_msg} (attempt {repair_attempts + 1})")

            if repair_attempts < MAX_REPAIR_ATTEMPTS:
                repaired = self.repair_json(json_str, str(e))
                return self._parse_json_response(
                    repaired, repair_attempts=repair_attempts + 1
                )

            return GenerationResult(
                success=False,
                raw_response=raw_response,
                error_message=error_msg,
                repair_attempts=repair_attempts,
            )

        if not isinstance(parsed_json, dict):
            return GenerationResult(
                success=False,
                raw_response=raw_response,
                error_message=f"Expected a JSON object, got {type(parsed_json).__name__}",
                repair_attempts=repair_attempts,
            )

        return GenerationResult(
            success=True,
            raw_response=raw_response,
            parsed_json=parsed_json,
            repair_attempts=repair_attempts,
        )


def get_ai_client(
    provider: AIProvider | str,
    api_key: str,
    model: str | None = None,
) -> AIClient:
    """
    Factory function to get an AI client for the specified provider.

    Args:
        provider: The AI provider to use.
        api_key: The API key for the provider.
        model: Optional model name override.

    Returns:
        An AIClient instance for the specified provider.

    Raises:
        ValueError: If the provider is not supported.
    """
    if isinstance(provider, str):
        provider = AIProvider(provider.lower())

    if provider == AIProvider.ANTHROPIC:
        from wine_pipeline.services.ai.providers.anthropic import AnthropicClient

        return AnthropicClient(api_key=api_key, model=model)
    elif provider == AIProvider.OPENAI:
        from wine_pipeline.services.ai.providers.openai import OpenAIClient

        return OpenAIClient(api_key=api_key, model=model)
    else:
        raise ValueError(f"Unsupported AI provider: {provider}")


def create_client_from_env(
    provider_var: str = "AI_PROVIDER",
    default_provider: str = "anthropic",
    model_var: str = "AI_MODEL",
) -> AIClient:
    """
    Create an AI client from environment variables.

    Args:
        provider_var: Environment variable naming the provider.
        default_provider: Provider used when the variable is unset.
        model_var: Environment variable with an optional model override.

    Raises:
        ConfigError: If the provider is unknown or its API key is missing.
    """
    name = os.environ.get(provider_var, default_provider).lower()
    try:
        provider = AIProvider(name)
    except ValueError:
        raise ConfigError(f"Unsupported AI provider: {name}")

    key_var = _API_KEY_ENV[provider]
    api_key = os.environ.get(key_var)
    if not api_key:
        raise ConfigError(f"{key_var} environment variable is required")

    return get_ai_client(provider=provider, api_key=api_key, model=os.environ.get(model_var))
