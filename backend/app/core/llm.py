"""LangChain-based LLM client for structured and free-text outputs."""

from typing import TypeVar

from langchain_openai import ChatOpenAI
from pydantic import BaseModel

from .config import get_settings

T = TypeVar("T", bound=BaseModel)

_llm_instance: ChatOpenAI | None = None


def get_llm() -> ChatOpenAI:
    """Get or create the LangChain ChatOpenAI instance."""
    global _llm_instance
    if _llm_instance is None:
        settings = get_settings()
        _llm_instance = ChatOpenAI(
            model=settings.openai_model,
            api_key=settings.openai_api_key,
        )
    return _llm_instance


def _configured_llm(
    model: str | None,
    temperature: float | None,
    max_tokens: int | None,
) -> ChatOpenAI:
    if model is None and temperature is None and max_tokens is None:
        return get_llm()
    settings = get_settings()
    kwargs: dict = {
        "model": model or settings.openai_model,
        "api_key": settings.openai_api_key,
    }
    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    return ChatOpenAI(**kwargs)


def _build_messages(prompt: str, system_prompt: str | None) -> list[tuple[str, str]]:
    messages: list[tuple[str, str]] = []
    if system_prompt:
        messages.append(("system", system_prompt))
    messages.append(("user", prompt))
    return messages


async def generate_structured_output(
    prompt: str,
    output_schema: type[T],
    system_prompt: str | None = None,
    temperature: float | None = None,
) -> T:
    """Generate structured output from the LLM."""
    llm = _configured_llm(None, temperature, None)
    structured_llm = llm.with_structured_output(output_schema)

    result = await structured_llm.ainvoke(_build_messages(prompt, system_prompt))
    return result  # type: ignore[return-value]


async def generate_text(
    prompt: str,
    system_prompt: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    model: str | None = None,
) -> str:
    """Generate a plain-text completion and return its content stripped."""
    llm = _configured_llm(model, temperature, max_tokens)
    message = await llm.ainvoke(_build_messages(prompt, system_prompt))
    content = message.content
    if isinstance(content, list):
        content = "".join(
            part if isinstance(part, str) else str(part.get("text", ""))
            for part in content
        )
    return str(content).strip()
