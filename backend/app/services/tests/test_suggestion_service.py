from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.errors import VendorConfigError
from app.schemas.intercom import MessageSuggestionRequest
from app.schemas.zendesk import ResponseSuggestionRequest
from app.services.suggestion_service import (
    message_confidence,
    response_confidence,
    suggest_messages,
    suggest_responses,
)


@pytest.fixture
def configured():
    settings = MagicMock(openai_api_key="sk-test", openai_suggestion_model="gpt-4o")
    with patch("app.services.suggestion_service.get_settings", return_value=settings):
        yield settings


@pytest.fixture
def response_request():
    return ResponseSuggestionRequest(
        ticket_id="102",
        subject="Refund request",
        description="I was charged twice this month",
        tone="friendly",
        response_count=3,
    )


@pytest.fixture
def message_request():
    return MessageSuggestionRequest(
        conversation_id="c-1",
        conversation_history=[
            {"author": "visitor", "message": "Hi, my export keeps failing"},
            {"author": "admin", "message": "Sorry to hear that, which format?"},
        ],
        message_type="response",
        suggestion_count=2,
    )


@pytest.mark.parametrize("index, expected", [(0, 0.95), (1, 0.90), (2, 0.85), (4, 0.75)])
def test_response_confidence(index, expected):
    assert response_confidence(index) == pytest.approx(expected)


@pytest.mark.parametrize(
    "message_type, index, expected",
    [
        ("greeting", 0, 0.98),
        ("greeting", 2, 0.98),
        ("response", 0, 0.92),
        ("response", 2, 0.82),
        ("suggestion", 1, 0.75),
    ],
)
def test_message_confidence(message_type, index, expected):
    assert message_confidence(message_type, index) == pytest.approx(expected)


class TestSuggestResponses:
    @pytest.mark.asyncio
    async def test_requires_openai_key(self, response_request):
        settings = MagicMock(openai_api_key=None)
        with patch("app.services.suggestion_service.get_settings", return_value=settings):
            with pytest.raises(VendorConfigError, match="AI service not configured"):
                await suggest_responses(response_request)

    @patch("app.services.suggestion_service.generate_text", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_one_completion_per_suggestion(self, mock_generate, configured, response_request):
        mock_generate.side_effect = ["  First reply  ", "Second reply", "Third reply"]

        result = await suggest_responses(response_request)

        assert result.ticket_id == "102"
        assert [s.response for s in result.suggestions] == ["First reply", "Second reply", "Third reply"]
        assert [s.reasoning for s in result.suggestions] == [
            "Most directly addresses the issue",
            "Empathetic and solution-focused approach",
            "Alternative perspective on the concern",
        ]
        temperatures = [c.kwargs["temperature"] for c in mock_generate.await_args_list]
        assert temperatures == pytest.approx([0.7, 0.8, 0.9])
        first = mock_generate.await_args_list[0]
        assert first.kwargs["model"] == "gpt-4o"
        assert first.kwargs["max_tokens"] == 150
        assert "Tone: friendly" in first.kwargs["system_prompt"]
        assert "Ticket Subject: Refund request" in first.args[0]

    @patch("app.services.suggestion_service.generate_text", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_llm_errors_propagate(self, mock_generate, configured, response_request):
        mock_generate.side_effect = TimeoutError("timed out")

        with pytest.raises(TimeoutError):
            await suggest_responses(response_request)


class TestSuggestMessages:
    @patch("app.services.suggestion_service.generate_text", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_transcript_and_type(self, mock_generate, configured, message_request):
        mock_generate.return_value = "Could you share the file format you picked?"

        result = await suggest_messages(message_request)

        assert result.conversation_id == "c-1"
        assert len(result.suggestions) == 2
        assert [s.confidence for s in result.suggestions] == pytest.approx([0.92, 0.87])
        assert result.suggestions[1].reasoning == "Alternative approach with different framing"

        first = mock_generate.await_args_list[0]
        assert "visitor: Hi, my export keeps failing\nadmin: Sorry to hear that" in first.args[0]
        assert "MESSAGE TYPE: response" in first.kwargs["system_prompt"]
        assert first.kwargs["max_tokens"] == 100
        temperatures = [c.kwargs["temperature"] for c in mock_generate.await_args_list]
        assert temperatures == pytest.approx([0.6, 0.75])

    @patch("app.services.suggestion_service.generate_text", new_callable=AsyncMock)
    @pytest.mark.asyncio
    async def test_greeting_instructions(self, mock_generate, configured, message_request):
        mock_generate.return_value = "Welcome!"
        request = message_request.model_copy(update={"message_type": "greeting", "suggestion_count": 1})

        result = await suggest_messages(request)

        assert result.suggestions[0].confidence == 0.98
        assert "friendly, welcoming greeting" in mock_generate.await_args.kwargs["system_prompt"]
