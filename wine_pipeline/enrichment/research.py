"""Research providers: where enrichment gets wine characteristics from."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Sequence

from pydantic import ValidationError

from wine_pipeline.core.errors import ConfigError, ProviderError
from wine_pipeline.core.schema import RawCharacteristics
from wine_pipeline.services.ai.client import AIClient, create_client_from_env
from wine_pipeline.services.ai.prompts import RESEARCH_SYSTEM_PROMPT, build_research_prompt

logger = logging.getLogger(__name__)


class ResearchProvider(ABC):
    """A source of researched wine characteristics."""

    # Stored as verified_source on records this provider enriches
    source: str = "unknown"

    @abstractmethod
    def lookup(self, query: str) -> RawCharacteristics:
        """
        Research a wine.

        Args:
            query: Identity fields joined into one search string.

        Returns:
            The provider's characteristics, possibly incomplete.

        Raises:
            ProviderError: On transport or provider failure.
        """
        pass


class AIResearchProvider(ResearchProvider):
    """Research provider backed by an LLM client."""

    def __init__(self, client: AIClient, source: str | None = None):
        self.client = client
        self.source = source or f"{client.provider.value}:{client.model}"

    def lookup(self, query: str) -> RawCharacteristics:
        result = self.client.generate_json(
            build_research_prompt(query),
            system_prompt=RESEARCH_SYSTEM_PROMPT,
        )
        if not result.success or result.parsed_json is None:
            raise ProviderError(
                result.error_message or "Research provider returned no data",
                provider=self.source,
            )

        try:
            return RawCharacteristics.model_validate(result.parsed_json)
        except ValidationError as e:
            raise ProviderError(f"Unusable research response: {e}", provider=self.source) from e


class EscalationPolicy:
    """
    Chooses the provider for each attempt.

    The first provider handles the first ``escalate_after`` attempts, the next
    one the following ``escalate_after``, and so on; the last provider keeps
    every remaining attempt.
    """

    def __init__(self, providers: Sequence[ResearchProvider], escalate_after: int = 2):
        if not providers:
            raise ValueError("EscalationPolicy needs at least one provider")
        if escalate_after < 1:
            raise ValueError("escalate_after must be >= 1")
        self.providers = list(providers)
        self.escalate_after = escalate_after

    def provider_for(self, attempt: int) -> ResearchProvider:
        index = min(max(0, attempt) // self.escalate_after, len(self.providers) - 1)
        return self.providers[index]


def create_research_providers_from_env() -> list[ResearchProvider]:
    """
    Build the primary research provider and, when configured, a fallback.

    The primary comes from AI_PROVIDER (default anthropic). AI_FALLBACK_PROVIDER
    adds a second provider when its API key is also set.

    Raises:
        ConfigError: If the primary provider cannot be created.
    """
    providers: list[ResearchProvider] = [AIResearchProvider(create_client_from_env())]

    fallback = os.environ.get("AI_FALLBACK_PROVIDER")
    if fallback:
        try:
            providers.append(
                AIResearchProvider(
                    create_client_from_env(
                        provider_var="AI_FALLBACK_PROVIDER",
                        default_provider=fallback,
                        model_var="AI_FALLBACK_MODEL",
                    )
                )
            )
        except ConfigError as e:
            logger.warning(f"Fallback research provider disabled: {e}")

    return providers
