"""Agent-facing AI suggestions: ticket responses (Zendesk) and chat messages (Intercom).

Each suggestion is an independent completion at a slightly higher temperature
than the previous one, so the options read differently. Confidence is a fixed
ranking by position, not a model score.
"""

import asyncio
import logging
from datetime import UTC, datetime

from ..core.config import get_settings
from ..core.errors import VendorConfigError
from ..core.llm import generate_text
from ..schemas.intercom import MessageSuggestion, MessageSuggestionRequest, MessageSuggestions
from ..schemas.zendesk import ResponseSuggestionRequest, ResponseSuggestions, SuggestedResponse

logger = logging.getLogger(__name__)

RESPONSE_REASONING = [
    "Most directly addresses the issue",
    "Empathetic and solution-focused approach",
]
RESPONSE_REASONING_DEFAULT = "Alternative perspective on the concern"

MESSAGE_REASONING = [
    "Most direct answer to visitor concern",
    "Alternative approach with different framing",
    "Empathy-first approach",
]

MESSAGE_TYPE_INSTRUCTIONS = {
    "greeting": "Generate a friendly, welcoming greeting that acknowledges the visitor and offers help.",
    "response": "Generate a helpful response to the visitor's latest message that addresses their concern.",
    "suggestion": "Generate a proactive suggestion or offer based on the conversation context.",
}

RESPONSE_SYSTEM_PROMPT = """You are a professional support agent who generates empathetic and helpful responses to customer tickets.

REQUIREMENTS:
- Tone: {tone}
- Keep responses concise (2-3 sentences)
- Address the customer's concern directly
- Offer next steps or solutions
- End with "How can I help further?"
- Avoid generic phrases, personalize each response

Return ONLY the response text, nothing else."""

MESSAGE_SYSTEM_PROMPT = """You are a professional, empathetic customer support agent in live chat.

STYLE GUIDE:
- Be concise (1-2 sentences max)
- Sound natural, not robotic
- Use the visitor's name if mentioned
- Match the conversation tone (formal/casual)
- Be solution-focused
- End with clear next step

MESSAGE TYPE: {message_type}
{instructions}

Return ONLY the message text, nothing else. No markdown, no quotes."""


def _require_llm() -> str:
    settings = get_settings()
    if not settings.openai_api_key:
        raise VendorConfigError("AI service not configured")
    return settings.openai_suggestion_model


def response_confidence(index: int) -> float:
    return min(1.0, 0.95 - index * 0.05)


def message_confidence(message_type: str, index: int) -> float:
    if message_type == "greeting":
        confidence = 0.98
    elif message_type == "suggestion":
        confidence = 0.85 - index * 0.1
    else:
        confidence = 0.92 - index * 0.05
    return max(0.0, confidence)


async def suggest_responses(request: ResponseSuggestionRequest) -> ResponseSuggestions:
    """Draft ``response_count`` replies to a Zendesk ticket concurrently."""
    model = _require_llm()
    system_prompt = RESPONSE_SYSTEM_PROMPT.format(tone=request.tone)
    prompt = (
        f"Ticket Subject: {request.subject}\n\n"
        f"Customer Message:\n{request.description}\n\n"
        f"Generate a {request.tone} support response that acknowledges their issue and offers help."
    )

    async def _suggest(index: int) -> SuggestedResponse:
        text = await generate_text(
            prompt,
            system_prompt=system_prompt,
            temperature=0.7 + index * 0.1,
            max_tokens=150,
            model=model,
        )
        reasoning = (
            RESPONSE_REASONING[index] if index < len(RESPONSE_REASONING) else RESPONSE_REASONING_DEFAULT
        )
        return SuggestedResponse(
            response=text.strip(),
            confidence=response_confidence(index),
            reasoning=reasoning,
        )

    suggestions = await asyncio.gather(*(_suggest(i) for i in range(request.response_count)))
    logger.info("Generated %d suggestions for ticket %s", len(suggestions), request.ticket_id)
    return ResponseSuggestions(
        ticket_id=request.ticket_id,
        suggestions=list(suggestions),
        generated_at=datetime.now(UTC).isoformat(),
    )


async def suggest_messages(request: MessageSuggestionRequest) -> MessageSuggestions:
    """Draft chat messages that continue an Intercom conversation."""
    model = _require_llm()
    system_prompt = MESSAGE_SYSTEM_PROMPT.format(
        message_type=request.message_type,
        instructions=MESSAGE_TYPE_INSTRUCTIONS[request.message_type],
    )
    transcript = "\n".join(f"{m.author}: {m.message}" for m in request.conversation_history)
    prompt = (
        f"Conversation so far:\n{transcript}\n\n"
        f"Generate a {request.message_type} message that continues this conversation naturally."
    )

    async def _suggest(index: int) -> MessageSuggestion:
        text = await generate_text(
            prompt,
            system_prompt=system_prompt,
            temperature=0.6 + index * 0.15,
            max_tokens=100,
            model=model,
        )
        reasoning = MESSAGE_REASONING[index] if index < len(MESSAGE_REASONING) else "Alternative perspective"
        return MessageSuggestion(
            message=text.strip(),
            confidence=message_confidence(request.message_type, index),
            reasoning=reasoning,
        )

    suggestions = await asyncio.gather(*(_suggest(i) for i in range(request.suggestion_count)))
    logger.info(
        "Generated %d message suggestions for conversation %s",
        len(suggestions), request.conversation_id,
    )
    return MessageSuggestions(
        conversation_id=request.conversation_id,
        suggestions=list(suggestions),
        generated_at=datetime.now(UTC).isoformat(),
    )
