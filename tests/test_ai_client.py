"""Tests for the AI client layer."""

import json
from unittest.mock import MagicMock, patch

import pytest

from wine_pipeline.core.errors import ConfigError
from wine_pipeline.services.ai.client import (
    AIProvider,
    create_client_from_env,
    get_ai_client,
    strip_code_fences,
)
from wine_pipeline.services.ai.prompts import (
    build_classification_prompt,
    build_preference_prompt,
    build_research_prompt,
)

SAMPLE_PREFERENCE = {"color": "red", "tannins": "medium-high", "confidence_score": 0.8}


def anthropic_response(text: str) -> MagicMock:
    """Build a fake messages.create() response."""
    response = MagicMock()
    response.content = [MagicMock(text=text)]
    return response


def openai_response(text: str) -> MagicMock:
    """Build a fake chat.completions.create() response."""
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=text))]
    return response


class TestStripCodeFences:
    """Tests for strip_code_fences."""

    def test_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self) -> None:
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestAnthropicClient:
    """Tests for AnthropicClient with the SDK mocked out."""

    @patch("anthropic.Anthropic")
    def test_generate_json(self, mock_anthropic: MagicMock) -> None:
        mock_client = mock_anthropic.return_value
        mock_client.messages.create.return_value = anthropic_response(
            "```json\n" + json.dumps(SAMPLE_PREFERENCE) + "\n```"
        )

        client = get_ai_client(AIProvider.ANTHROPIC, api_key="test-key")
        result = client.generate_json("prompt", system_prompt="system")

        assert result.success
        assert result.parsed_json == SAMPLE_PREFERENCE
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"
        assert kwargs["model"] == "claude-sonnet-4-20250514"

    @patch("anthropic.Anthropic")
    def test_repair_loop(self, mock_anthropic: MagicMock) -> None:
        """Malformed JSON is sent back for repair before giving up."""
        mock_client = mock_anthropic.return_value
        mock_client.messages.create.side_effect = [
            anthropic_response('{"color": "red",}'),
            anthropic_response(json.dumps({"color": "red"})),
        ]

        result = get_ai_client("anthropic", api_key="test-key").generate_json("prompt")

        assert result.success
        assert result.repair_attempts == 1
        assert result.parsed_json == {"color": "red"}

    @patch("anthropic.Anthropic")
    def test_repair_gives_up(self, mock_anthropic: MagicMock) -> None:
        mock_client = mock_anthropic.return_value
        mock_client.messages.create.return_value = anthropic_response("not json at all")

        result = get_ai_client("anthropic", api_key="test-key").generate_json("prompt")

        assert not result.success
        assert result.repair_attempts == 2
        assert "JSON parse error" in result.error_message
        # One generation plus two repairs
        assert mock_client.messages.create.call_count == 3

    @patch("anthropic.Anthropic")
    def test_non_object_rejected(self, mock_anthropic: MagicMock) -> None:
        mock_anthropic.return_value.messages.create.return_value = anthropic_response("[1, 2]")
        result = get_ai_client("anthropic", api_key="test-key").generate_json("prompt")
        assert not result.success
        assert "list" in result.error_message

    @patch("anthropic.Anthropic")
    def test_api_error(self, mock_anthropic: MagicMock) -> None:
        mock_anthropic.return_value.messages.create.side_effect = RuntimeError("overloaded")
        result = get_ai_client("anthropic", api_key="test-key").generate_json("prompt")
        assert not result.success
        assert result.error_message == "API error: overloaded"


class TestOpenAIClient:
    """Tests for OpenAIClient with the SDK mocked out."""

    @patch("openai.OpenAI")
    def test_generate_json(self, mock_openai: MagicMock) -> None:
        mock_client = mock_openai.return_value
        mock_client.chat.completions.create.return_value = openai_response(
            json.dumps(SAMPLE_PREFERENCE)
        )

        client = get_ai_client(AIProvider.OPENAI, api_key="test-key", model="gpt-4o-mini")
        result = client.generate_json("prompt", system_prompt="system")

        assert result.success
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}


class TestCreateClientFromEnv:
    """Tests for create_client_from_env."""

    def test_missing_key(self, monkeypatch) -> None:
        monkeypatch.setenv("AI_PROVIDER", "anthropic")
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ConfigError):
            create_client_from_env()

    def test_unknown_provider(self, monkeypatch) -> None:
        monkeypatch.setenv("AI_PROVIDER", "mystery")
        with pytest.raises(ConfigError):
            create_client_from_env()

    @patch("openai.OpenAI")
    def test_model_override(self, mock_openai: MagicMock, monkeypatch) -> None:
        monkeypatch.setenv("AI_PROVIDER", "OpenAI")
        monkeypatch.setenv("OPENAI_API_KEY", "test-key")
        monkeypatch.setenv("AI_MODEL", "gpt-4.1")

        client = create_client_from_env()

        assert client.provider == AIProvider.OPENAI
        assert client.model == "gpt-4.1"
        mock_openai.assert_called_once_with(api_key="test-key")


class TestPrompts:
    """Tests for prompt builders."""

    def test_research_prompt_contains_query(self) -> None:
        assert "Ridge Monte Bello 2018" in build_research_prompt("Ridge Monte Bello 2018")

    def test_quotes_are_neutralised(self) -> None:
        assert '"Grand Cru"' not in build_classification_prompt('Chablis "Grand Cru" 2019')
        assert "'bold'" in build_preference_prompt('something "bold"')
