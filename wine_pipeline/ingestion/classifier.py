"""Wine-list line classification."""

import logging
import re
from abc import ABC, abstractmethod

from pydantic import ValidationError

from wine_pipeline.core.errors import ProviderError
from wine_pipeline.core.schema import StructuredWine
from wine_pipeline.services.ai.client import AIClient
from wine_pipeline.services.ai.prompts import CLASSIFY_SYSTEM_PROMPT, build_classification_prompt

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"\b(18|19|20)\d{2}\b")
_NON_VINTAGE = {"NV", "N/V", "NON-VINTAGE", "NONVINTAGE"}


def normalize_vintage(value: str | int | None) -> str:
    """
    Reduce a vintage to a four-digit year, "NV", or "".

    Args:
        value: Raw vintage (e.g. "2019", 2019, "NV", "vintage 2015")
    """
    if value is None:
        return ""
    text = str(value).strip()
    if text.upper() in _NON_VINTAGE:
        return "NV"
    match = _YEAR_RE.search(text)
    return match.group() if match else ""


class WineClassifier(ABC):
    """Turns free text into a structured wine, or None for non-wine text."""

    @abstractmethod
    def classify(self, text: str) -> StructuredWine | None:
        """
        Classify one line of a wine list.

        Raises:
            ProviderError: If the underlying service fails.
        """
        pass


class AIWineClassifier(WineClassifier):
    """Classifier backed by an LLM client."""

    def __init__(self, client: AIClient):
        self.client = client

    def classify(self, text: str) -> StructuredWine | None:
        result = self.client.generate_json(
            build_classification_prompt(text),
            system_prompt=CLASSIFY_SYSTEM_PROMPT,
        )
        if not result.success:
            raise ProviderError(
                result.error_message or "Classification failed",
                provider=self.client.provider.value,
            )

        data = result.parsed_json or {}
        if not str(data.get("wine_name") or data.get("name") or "").strip():
            logger.debug(f"Not a wine: {text[:80]!r}")
            return None

        try:
            wine = StructuredWine.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding unusable classification for {text[:80]!r}: {e}")
            return None

        return wine.model_copy(
            update={"name": wine.name.strip(), "vintage": normalize_vintage(wine.vintage)}
        )
