from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from blogspace.ai.llm_client import LLMClient, _json_candidates
from blogspace.models import WritingAnalysis


def mock_openai(*contents: str) -> tuple[MagicMock, AsyncMock]:
    responses = []
    for content in contents:
        mock_message = MagicMock()
        mock_message.content = content
        mock_choice = MagicMock()
        mock_choice.message = mock_message
        mock_response = MagicMock()
        mock_response.choices = [mock_choice]
        responses.append(mock_response)

    mock_completions = MagicMock()
    mock_completions.create = AsyncMock(side_effect=responses)

    mock_chat = MagicMock()
    mock_chat.completions = mock_completions

    mock_client_instance = MagicMock()
    mock_client_instance.chat = mock_chat
    return mock_client_instance, mock_completions.create


@pytest.mark.asyncio
async def test_generate_structured_parses_fenced_json():
    client_instance, create = mock_openai(
        'Here you go:\n```json\n{"score": 8, "feedback": "Clear and concise."}\n```'
    )

    with patch("blogspace.ai.llm_client.AsyncOpenAI", return_value=client_instance):
        client = LLMClient(model_name="test-model", api_key="dummy_key")
        result = await client.generate_structured("Rate this", WritingAnalysis)

    assert isinstance(result, WritingAnalysis)
    assert result.score == 8
    assert result.feedback == "Clear and concise."
    create.assert_called_once()
    assert create.call_args.kwargs["model"] == "test-model"


@pytest.mark.asyncio
async def test_generate_structured_retries_once_then_fails():
    client_instance, create = mock_openai("not json", "still not json")

    with patch("blogspace.ai.llm_client.AsyncOpenAI", return_value=client_instance):
        client = LLMClient(model_name="test-model", api_key="dummy_key")
        with pytest.raises(ValueError):
            await client.generate_structured("Rate this", WritingAnalysis)

    assert create.call_count == 2


@pytest.mark.asyncio
async def test_generate_text_strips_whitespace():
    client_instance, create = mock_openai("  A short summary.  \n")

    with patch("blogspace.ai.llm_client.AsyncOpenAI", return_value=client_instance):
        client = LLMClient(model_name="test-model", api_key="dummy_key")
        text = await client.generate_text("Summarize", system_prompt="Be brief")

    assert text == "A short summary."
    messages = create.call_args.kwargs["messages"]
    assert [m["role"] for m in messages] == ["system", "user"]


def test_json_candidates_extracts_object_from_prose():
    candidates = _json_candidates('Sure! {"topics": ["a", "b"]} Hope that helps.')
    assert '{"topics": ["a", "b"]}' in candidates
