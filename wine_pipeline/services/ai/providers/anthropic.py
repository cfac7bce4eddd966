"""Anthropic (Claude) AI provider implementation."""

import logging

from wine_pipeline.services.ai.client import AIClient, AIProvider, GenerationResult
from wine_pipeline.services.ai.prompts import build_repair_prompt

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class AnthropicClient(AIClient):
    """Anthropic Claude AI client."""

    provider = AIProvider.ANTHROPIC

    def __init__(self, api_key: str, model: str | None = None, max_tokens: int = 2048):
        """
        Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key.
            model: Model name (defaults to claude-sonnet-4-20250514).
            max_tokens: Response token ceiling.
        """
        import anthropic

        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model or DEFAULT_MODEL
        self.max_tokens = max_tokens

    def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
    ) -> GenerationResult:
        """Send a prompt to Claude and parse the JSON object it returns."""
        kwargs = {}
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
            raw_response = response.content[0].text
            logger.debug(f"Anthropic response ({len(raw_response)} chars): {raw_response[:500]}")
        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            return GenerationResult(
                success=False,
                raw_response="",
                error_message=f"API error: {str(e)}",
            )

        return self._parse_json_response(raw_response)

    def repair_json(self, invalid_json: str, error_message: str) -> str:
        """Ask Claude to fix malformed JSON; returns the input unchanged on API failure."""
        prompt = build_repair_prompt(invalid_json, error_message)

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
            return response.content[0].text
        except Exception as e:
            logger.error(f"JSON repair API error: {e}")
            return invalid_json
