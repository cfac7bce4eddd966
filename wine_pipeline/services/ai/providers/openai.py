"""OpenAI AI provider implementation."""

import logging

from wine_pipeline.services.ai.client import AIClient, AIProvider, GenerationResult
from wine_pipeline.services.ai.prompts import build_repair_prompt

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"


class OpenAIClient(AIClient):
    """OpenAI GPT AI client."""

    provider = AIProvider.OPENAI

    def __init__(self, api_key: str, model: str | None = None, max_tokens: int = 2048):
        """
        Initialize the OpenAI client.

        Args:
            api_key: OpenAI API key.
            model: Model name (defaults to gpt-4o).
            max_tokens: Response token ceiling.
        """
        import openai

        self.client = openai.OpenAI(api_key=api_key)
        self.model = model or DEFAULT_MODEL
        self.max_tokens = max_tokens

    def generate_json(
        self,
        prompt: str,
        system_prompt: str | None = None,
    ) -> GenerationResult:
        """Send a prompt to GPT in JSON mode and parse the returned object."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=messages,
                response_format={"type": "json_object"},
            )
            raw_response = response.choices[0].message.content or ""
            logger.debug(f"OpenAI response ({len(raw_response)} chars): {raw_response[:500]}")
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            return GenerationResult(
                success=False,
                raw_response="",
                error_message=f"API error: {str(e)}",
            )

        return self._parse_json_response(raw_response)

    def repair_json(self, invalid_json: str, error_message: str) -> str:
        """Ask GPT to fix malformed JSON; returns the input unchanged on API failure."""
        prompt = build_repair_prompt(invalid_json, error_message)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
                response_format={"type": "json_object"},
            )
            return response.choices[0].message.content or invalid_json
        except Exception as e:
            logger.error(f"JSON repair API error: {e}")
            return invalid_json
