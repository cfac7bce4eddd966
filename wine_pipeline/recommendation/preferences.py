"""Guest preference parsing: free text in, GuestPreference out."""

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError

from wine_pipeline.core.schema import GuestPreference
from wine_pipeline.services.ai.client import AIClient
from wine_pipeline.services.ai.prompts import build_preference_prompt

logger = logging.getLogger(__name__)


class PreferenceParser(ABC):
    """Turns a guest's description into a structured preference."""

    @abstractmethod
    def parse(self, description: str) -> GuestPreference:
        pass


class AIPreferenceParser(PreferenceParser):
    """
    Preference parser backed by an LLM client.

    Never raises for a bad model answer: an unusable response yields an
    empty preference with a confidence score of 0.
    """

    def __init__(self, client: AIClient):
        self.client = client

    def parse(self, description: str) -> GuestPreference:
        if not description.strip():
            return GuestPreference(confidence_score=0.0)

        result = self.client.generate_json(build_preference_prompt(description))
        if not result.success or result.parsed_json is None:
            logger.error(f"Could not parse guest description: {result.error_message}")
            return GuestPreference(confidence_score=0.0)

        try:
            return GuestPreference.model_validate(result.parsed_json)
        except ValidationError as e:
            logger.warning(f"Discarding unusable preference response: {e}")
            return GuestPreference(confidence_score=0.0)
