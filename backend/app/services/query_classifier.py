"""Two-tier query classification.

Tier 1 answers discrete questions (counts by status, priority, type, tag or
age) straight from the cached summary. Anything that needs reading ticket
content, comparing, explaining or recommending goes to tier 2, the LLM.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .desk_summary import DeskSummary

logger = logging.getLogger(__name__)

DISCRETE_INDICATORS = {
    "counting": [
        "how many", "count", "total", "number of", "altogether", "in total",
        "how much", "quantity",
    ],
    "breakdown": ["breakdown", "distribution", "split", "categorize", "segment"],
    "ticket_type": ["question", "incident", "problem", "task"],
    "tags": [
        "billing", "technical", "feature-request", "bug", "urgent", "high-priority",
        "customer-success", "needs-review", "in-progress", "waiting-on-customer",
    ],
    "time_recent": ["today", "recent", "new", "latest", "last 24", "yesterday"],
    "time_weekly": ["this week", "past week", "last week", "last 7 days", "7d"],
    "time_monthly": ["this month", "past month", "last month", "last 30 days", "30d"],
    "time_old": ["old", "older", "ancient", "stale", "30+ days"],
}

# Words a user might type, per canonical status of each desk. The first
# canonical status with a matching word wins, so longer phrases come first.
STATUS_SYNONYMS = {
    "zendesk": {
        "hold": ["on hold", "hold", "paused"],
        "pending": ["pending", "waiting", "awaiting"],
        "open": ["open", "active", "ongoing", "in progress"],
        "solved": ["solved", "resolved", "fixed"],
        "closed": ["closed", "done", "finished", "completed"],
        "new": ["new", "just created", "unassigned"],
    },
    "intercom": {
        "waiting_on_customer": ["waiting on customer", "waiting", "pending", "on hold", "hold"],
        "in_progress": ["in progress", "open", "active", "ongoing"],
        "resolved": ["resolved", "solved", "closed", "done", "fixed"],
        "submitted": ["submitted", "new", "just created"],
    },
}

PRIORITY_SYNONYMS = {
    "urgent": ["urgent", "critical", "asap"],
    "high": ["high", "important", "major"],
    "normal": ["normal", "medium", "moderate"],
    "low": ["low", "minor"],
}

_PRIORITY_WORDS = {word for words in PRIORITY_SYNONYMS.values() for word in words}

# Checked in this order; the first group that matches decides the reasoning.
COMPLEX_INDICATORS = [
    ("content_search", "Requires content inspection", [
        "mentions", "contains", "includes", "talks about", "discusses", "regarding",
        "about", "related to",
    ]),
    ("analysis", "Requires analysis/reasoning", [
        "analyze", "review", "investigate", "examine", "assess", "evaluate", "study",
        "understand",
    ]),
    ("why", "Requires explanation/insight", [
        "why", "what's causing", "reason for", "root cause", "explain",
    ]),
    ("trends", "Requires pattern recognition", [
        "trending", "trend", "pattern", "common", "frequent", "recurring",
        "increasing", "decreasing",
    ]),
    ("sentiment", "Requires sentiment analysis", [
        "angry", "frustrated", "happy", "satisfied", "upset", "negative", "positive",
    ]),
    ("length", "Requires length/word count analysis", [
        "longer than", "shorter than", "more than", "less than", "words",
        "characters", "lengthy", "detailed",
    ]),
    ("recommendations", "Requires recommendations/prioritization", [
        "should", "recommend", "suggest", "prioritize", "focus on",
        "needs attention", "next steps",
    ]),
    ("action_verbs", "Requires action recommendations", [
        "which ones", "tell me which", "need attention", "require action",
        "must address",
    ]),
    ("conditionals", "Requires complex filtering logic", [
        "if", "when", "where", "with more than", "with less than", "without",
    ]),
]

RANKING_WORDS = ["most", "least", "top", "bottom", "best", "worst", "highest", "lowest"]

_SYSTEM_COMMAND_RE = re.compile(r"^(refresh|update|sync|help|commands)\b", re.IGNORECASE)
_SIMPLE_COMPARISON_RE = re.compile(
    r"\b(which|what)\b.*\b(status|priority|type)\b.*\b(has|have)\b.*\b(most|least)\b",
    re.IGNORECASE,
)
_TICKET_NOUN_RE = re.compile(r"\b(tickets?|issues?)\b", re.IGNORECASE)
_COUNT_NOUN_RE = re.compile(r"\b(tickets?|issues?|cases?)\b", re.IGNORECASE)
_TAG_NOUN_RE = re.compile(r"\b(tag(ged)?|tickets?|issues?)\b", re.IGNORECASE)
_EXPLICIT_TAG_RE = re.compile(r"\b(tag(s|ged)?|label(s|ed)?)\b", re.IGNORECASE)


@dataclass
class ClassifiedQuery:
    matched: bool
    source: str
    confidence: float
    processing_time_ms: int
    answer: Optional[str] = None
    reasoning: Optional[str] = None


def _has_word(query: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", query, re.IGNORECASE) is not None


def _first_word(query: str, keywords: Iterable[str]) -> Optional[str]:
    return next((kw for kw in keywords if _has_word(query, kw)), None)


def should_use_ai(query: str) -> Tuple[bool, str]:
    """Decide whether a query needs the LLM. Returns ``(use_ai, reasoning)``."""
    q = query.lower().strip()

    if _SYSTEM_COMMAND_RE.match(q):
        return False, "System command handled by cache"

    for _, reasoning, keywords in COMPLEX_INDICATORS:
        if _first_word(q, keywords):
            return True, reasoning

    if _first_word(q, RANKING_WORDS) and not _SIMPLE_COMPARISON_RE.search(q):
        return True, "Requires comparative analysis"

    return False, "Simple discrete query"


def _time_match(q: str, summary: DeskSummary) -> Optional[Tuple[str, float, str]]:
    if _first_word(q, DISCRETE_INDICATORS["time_recent"]):
        count = summary.created_within_days(1)
        return f"**{count}** tickets created in the last 24 hours.", 0.95, "Time filter: last 24 hours"
    if _first_word(q, DISCRETE_INDICATORS["time_weekly"]):
        count = summary.created_within_days(7)
        return f"**{count}** tickets created in the last 7 days.", 0.95, "Time filter: last 7 days"
    if _first_word(q, DISCRETE_INDICATORS["time_monthly"]):
        count = summary.created_within_days(30)
        return f"**{count}** tickets created in the last 30 days.", 0.95, "Time filter: last 30 days"
    if _first_word(q, DISCRETE_INDICATORS["time_old"]):
        count = summary.by_age.older_than_30d
        return f"**{count}** tickets older than 30 days.", 0.95, "Time filter: older than 30 days"
    return None


def _format_breakdown(counts: dict) -> str:
    return " | ".join(f"**{key}**: {value}" for key, value in counts.items())


def _breakdown_match(q: str, summary: DeskSummary) -> Optional[Tuple[str, float, str]]:
    if not _first_word(q, DISCRETE_INDICATORS["breakdown"]):
        return None
    if re.search(r"\b(status|state)\b", q):
        return f"Status breakdown: {_format_breakdown(summary.by_status)}", 0.95, "Status distribution"
    if re.search(r"\b(priority|priorities)\b", q):
        return f"Priority breakdown: {_format_breakdown(summary.by_priority)}", 0.95, "Priority distribution"
    if re.search(r"\b(type|types|ticket type)\b", q):
        return f"Ticket type breakdown: {_format_breakdown(summary.by_type)}", 0.95, "Type distribution"
    return None


def canonical_status(query: str, desk: str) -> Optional[str]:
    """Map the status words in a query onto the desk's own status name."""
    for status, words in STATUS_SYNONYMS[desk].items():
        if _first_word(query, words):
            return status
    return None


def canonical_priority(query: str) -> Optional[str]:
    for priority, words in PRIORITY_SYNONYMS.items():
        if _first_word(query, words):
            return priority
    return None


def try_discrete_match(query: str, summary: DeskSummary) -> Optional[Tuple[str, float, str]]:
    """Answer from cached counts, or ``None`` when no discrete pattern applies."""
    q = query.lower()

    # "urgent" is both a tag and a priority; it only counts as a tag when named as one
    tag = _first_word(q, DISCRETE_INDICATORS["tags"])
    if tag and _TAG_NOUN_RE.search(q) and (tag not in _PRIORITY_WORDS or _EXPLICIT_TAG_RE.search(q)):
        return f"Tickets with tag **{tag}**: {summary.tickets_with_tag(tag)}", 0.95, f"Tag filter: {tag}"

    ticket_type = _first_word(q, DISCRETE_INDICATORS["ticket_type"])
    if ticket_type and _TICKET_NOUN_RE.search(q):
        count = summary.by_type.get(ticket_type, 0)
        return f"Ticket type breakdown: **{ticket_type}**: {count}", 0.95, f"Type filter: {ticket_type}"

    priority = canonical_priority(q)
    if priority and _TICKET_NOUN_RE.search(q):
        count = summary.by_priority.get(priority, 0)
        return f"Priority breakdown: **{priority}**: {count}", 0.95, f"Priority filter: {priority}"

    status = canonical_status(q, summary.desk)
    if status and _TICKET_NOUN_RE.search(q):
        count = summary.by_status.get(status, 0)
        return f"Status breakdown: **{status}**: {count}", 0.95, f"Status filter: {status}"

    time_answer = _time_match(q, summary)
    if time_answer:
        return time_answer

    breakdown = _breakdown_match(q, summary)
    if breakdown:
        return breakdown

    if _first_word(q, DISCRETE_INDICATORS["counting"]) and _COUNT_NOUN_RE.search(q):
        return f"We have **{summary.total}** tickets in total.", 0.99, "Total count from cache"

    return None


def classify_query(query: str, summary: Optional[DeskSummary]) -> ClassifiedQuery:
    start = time.perf_counter()

    def elapsed() -> int:
        return int((time.perf_counter() - start) * 1000)

    if summary is None:
        return ClassifiedQuery(False, "ai", 0, elapsed(), reasoning="No cache available")

    use_ai, reasoning = should_use_ai(query)
    if use_ai:
        return ClassifiedQuery(False, "ai", 0, elapsed(), reasoning=reasoning)

    discrete = try_discrete_match(query, summary)
    if discrete is None:
        return ClassifiedQuery(False, "ai", 0, elapsed(), reasoning="No discrete pattern matched")

    answer, confidence, reasoning = discrete
    logger.debug("Cache answer for %r: %s", query, reasoning)
    return ClassifiedQuery(True, "cache", confidence, elapsed(), answer=answer, reasoning=reasoning)
