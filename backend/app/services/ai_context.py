"""Serialized ticket context injected into LLM system prompts.

The serialized block is rebuilt only when the snapshot's ``last_updated``
changes, so repeated questions against the same snapshot reuse it.
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

from .desk_summary import DeskSummary, SummaryTicket

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 100


@dataclass
class CachedContext:
    ticket_summaries: str
    stats_summary: str
    snapshot_timestamp: str
    built_at: float
    ticket_count: int


def summarize_ticket(ticket: SummaryTicket) -> str:
    word_count = len(ticket.description.split())
    preview = ticket.description[:PREVIEW_CHARS].replace("\n", " ")
    return (
        f"#{ticket.id} [{ticket.priority}/{ticket.status}] {ticket.subject} "
        f'| {word_count} words | "{preview}..."'
    )


def _pairs(counts: Dict[str, int]) -> str:
    return " | ".join(f"{key}:{value}" for key, value in counts.items())


def stats_block(summary: DeskSummary) -> str:
    age = summary.by_age
    lines = [
        "TICKET STATISTICS:",
        f"- Total: {summary.total}",
        f"- By Status: {_pairs(summary.by_status)}",
        f"- By Priority: {_pairs(summary.by_priority)}",
        f"- By Type: {_pairs(summary.by_type)}",
        (
            f"- By Age: <24h:{age.less_than_24h} | <7d:{age.less_than_7d} "
            f"| <30d:{age.less_than_30d} | >30d:{age.older_than_30d}"
        ),
    ]
    if summary.tag_counts:
        lines.append(f"- By Tag: {_pairs(summary.tag_counts)}")
    if summary.conversation_count:
        lines.append(
            f"- Conversations: {summary.conversation_count} "
            f"({_pairs(summary.conversations_by_state)})"
        )
    return "\n".join(lines)


PROMPT_TEMPLATE = """You are a helpful support analytics assistant for a {label} help desk. Answer questions about support tickets based on the provided data.

Be concise and direct. If asked for statistics, provide specific numbers. If asked to analyze, provide actionable insights.

CURRENT TICKET DATA (automatically updated):
{stats}

ALL TICKET DETAILS (with word counts and descriptions):
{tickets}
{history}
CAPABILITIES:
- You have access to ALL tickets with full metadata (subject, status, priority, word count, description preview)
- You can count tickets based on any criteria (status, priority, word count, content, etc.)
- You can analyze patterns, trends, and prioritize tickets based on context
- You can search ticket content and identify common issues

INSTRUCTIONS:
- Answer the user's question based on the provided ticket data
- Be accurate with numbers - count carefully
- When analyzing trends or problems, reference specific ticket IDs
- For word count queries, use the "X words" metadata provided for each ticket
- For prioritization queries, consider priority, status, subject, and description content
- If you don't have data to answer a question, say so clearly

RESPONSE FORMATTING:
- Use markdown formatting (**, ##, bullets) for structure and readability
- Keep individual lines under 250 characters
- Use bullet points for lists of 3+ items
- Use domain language: say "ticket" not "record" or "entry"
- Don't mention "cache", "database", "API", "JSON", "query", or code-specific terminology
- No apologies, disclaimers, or preambles like "Based on the data..."
- Start with the answer immediately, then provide supporting details"""


class AIContext:
    """Memoized prompt context for one desk."""

    def __init__(self):
        self._context: Optional[CachedContext] = None

    def get(self, summary: DeskSummary) -> CachedContext:
        if self._context and self._context.snapshot_timestamp == summary.last_updated:
            logger.debug("Reusing AI context (snapshot unchanged)")
            return self._context

        self._context = CachedContext(
            ticket_summaries="\n".join(summarize_ticket(t) for t in summary.tickets),
            stats_summary=stats_block(summary),
            snapshot_timestamp=summary.last_updated,
            built_at=time.time(),
            ticket_count=len(summary.tickets),
        )
        logger.info("Built AI context with %d tickets", len(summary.tickets))
        return self._context

    def build_system_prompt(self, summary: DeskSummary, history: str = "") -> str:
        context = self.get(summary)
        history_block = f"\n{history}\n" if history else ""
        return PROMPT_TEMPLATE.format(
            label=summary.label,
            stats=context.stats_summary,
            tickets=context.ticket_summaries,
            history=history_block,
        )

    def invalidate(self) -> None:
        self._context = None
        logger.info("AI context invalidated")

    def stats(self) -> dict:
        if self._context is None:
            return {"cached": False, "tickets_in_context": 0, "cache_age_seconds": 0}
        return {
            "cached": True,
            "tickets_in_context": self._context.ticket_count,
            "cache_age_seconds": round(time.time() - self._context.built_at),
        }
