"""Natural-language query interpretation into Zendesk API calls.

Most queries are handled by regex intents. Queries no pattern recognizes are
sent to the LLM for structured interpretation; if that fails the pattern
result is returned with a floor confidence.
"""

import logging
import re
import time
from typing import Any, Dict, Optional, Tuple

from ..core.llm import generate_structured_output, generate_text
from ..schemas.query import (
    APICall,
    DisplayFormat,
    LLMInterpretation,
    ParsedQuery,
    QueryIntent,
    QueryInterpretation,
)

logger = logging.getLogger(__name__)

PATTERN_CONFIDENCE = 0.9
LLM_THRESHOLD = 0.8
FALLBACK_MIN_CONFIDENCE = 0.3
MAX_MEMO_ENTRIES = 256

# Order matters: the first matching intent wins.
INTENT_PATTERNS: Dict[str, re.Pattern] = {
    "help": re.compile(r"^(help|commands|what can|show commands|list commands|available commands)", re.I),
    "ticket_status": re.compile(
        r"^(how many|count|total).*(tickets?|issues?).*(open|close[d]?|pending|solved|on.hold|new)", re.I
    ),
    "recent_tickets": re.compile(
        r"^(show|get|last|recent).*(convo|conversation|ticket|message|activity|update)", re.I
    ),
    "problem_areas": re.compile(
        r"(area|areas|topic|topics|tag|category).*(need|help|attention|focus|issues?|problem)", re.I
    ),
    "raw_data": re.compile(r"^(show|display|return).*(raw|json|data|response)", re.I),
    "ticket_list": re.compile(
        r"^(show|list|get|display)\s+(all\s+)?(open|closed|pending|solved)?\s*(support\s+)?(tickets|issues)", re.I
    ),
    "ticket_filter": re.compile(r"ticket.*(status|priority|type|assignee|tag|organization)", re.I),
    "analytics": re.compile(
        r"^(show|what's|whats|what is|display).*"
        r"(statistic|metric|average|total|count|performance|analytics|summary)",
        re.I,
    ),
    "user_query": re.compile(r"(find|show|list).*(user|agent|customer|contact)", re.I),
    "organization_query": re.compile(r"(find|show|list).*(organization|customer|account|company)", re.I),
    "chat_query": re.compile(r"(chat|conversation|message).*(session|history|active)", re.I),
    "call_query": re.compile(r"(call|phone|voice).*(log|history|missed|incoming|outgoing)", re.I),
    "help_article": re.compile(r"(find|search).*(article|help|knowledge|doc|faq)", re.I),
    "automation": re.compile(r"(show|list|create).*(automation|rule|workflow|macro)", re.I),
}

_SUSPICIOUS_RE = re.compile(r"[;'\"`<>]")

SYSTEM_PROMPT = """You are an expert at interpreting natural language queries for a Zendesk support ticketing system.

Analyze the support query and extract:
1. The intent (what the user is asking for)
2. Filters that should be applied
3. Your confidence (0-1) in the interpretation

Common intents:
- ticket_list: user wants to see/list tickets (e.g., "show open tickets")
- ticket_filter: user wants filtered tickets (e.g., "high priority from Acme Corp")
- analytics: user wants statistics/metrics (e.g., "average response time")
- user_query: user wants info about support agents (e.g., "list agents")
- organization_query: user wants info about customers/orgs (e.g., "customers from XYZ")
- help_article: user wants documentation (e.g., "how to configure SSO")
- automation: user wants automation rules info
- unknown: query doesn't fit other categories

Focus on extracting all relevant filters. If something is ambiguous, lower your confidence."""


def extract_filters(query: str) -> Dict[str, Any]:
    filters: Dict[str, Any] = {}

    status = re.search(r"\b(open|closed|pending|solved|on-hold)\b", query, re.I)
    if status:
        filters["status"] = status.group(1).lower()

    priority = re.search(r"\b(urgent|high|normal|low)\s+(priority)?\b", query, re.I)
    if priority:
        filters["priority"] = priority.group(1).lower()

    ticket_type = re.search(r"\b(problem|incident|question|task)\b", query, re.I)
    if ticket_type:
        filters["type"] = ticket_type.group(1).lower()

    if re.search(r"assigned to me|my tickets|for me", query, re.I):
        filters["assignee"] = "me"

    org = re.search(r"from\s+(\w+(?:\s+\w+)?)\b|organization:\s*(\S+)", query, re.I)
    if org and (org.group(1) or org.group(2)):
        filters["organization"] = org.group(1) or org.group(2)

    if re.search(r"today|last 24 hours?", query, re.I):
        filters["created_date"] = "today"
    elif re.search(r"this week|last 7 days?|7d", query, re.I):
        filters["created_date"] = "this_week"
    elif re.search(r"this month|last 30 days?|30d", query, re.I):
        filters["created_date"] = "this_month"

    age = re.search(r"older than|not updated in|(\d+)\s*(hours?|days?|weeks?|months?)", query, re.I)
    if age:
        filters["age_filter"] = age.group(0)

    tags = re.search(r"tag(?:ged)?\s+with\s+(\w+)|tagged:\s*(\S+)", query, re.I)
    if tags and (tags.group(1) or tags.group(2)):
        filters["tags"] = tags.group(1) or tags.group(2)

    return filters


def build_zql(filters: Dict[str, Any]) -> str:
    """Render filters as a Zendesk search (ZQL) string."""
    clauses = []
    for key in ("status", "priority", "type", "assignee"):
        if filters.get(key):
            clauses.append(f"{key}:{filters[key]}")
    if filters.get("organization"):
        clauses.append(f'organization:"{filters["organization"]}"')
    if filters.get("tags"):
        clauses.append(f"tags:{filters['tags']}")
    return " ".join(clauses)


def suggest_format(intent: str) -> DisplayFormat:
    if intent == "analytics":
        return "metrics"
    if intent in ("chat_query", "call_query"):
        return "timeline"
    if intent == "help_article":
        return "list"
    return "table"


def build_api_call(intent: str, filters: Dict[str, Any], now: Optional[float] = None) -> APICall:
    if intent in ("ticket_list", "ticket_filter"):
        return APICall(
            endpoint="/api/v2/tickets",
            params={
                "query": build_zql(filters),
                "sort_by": "created_at",
                "sort_order": "desc",
                "per_page": 50,
            },
        )
    if intent == "analytics":
        now = time.time() if now is None else now
        # Last 30 days
        return APICall(
            endpoint="/api/v2/incremental/tickets",
            params={"start_time": int(now) - 86400 * 30},
        )
    listing_endpoints = {
        "user_query": ("/api/v2/users", 100),
        "organization_query": ("/api/v2/organizations", 100),
        "help_article": ("/api/v2/help_center/articles", 25),
        "automation": ("/api/v2/automations", 100),
    }
    if intent in listing_endpoints:
        endpoint, per_page = listing_endpoints[intent]
        return APICall(endpoint=endpoint, params={"per_page": per_page})
    return APICall(endpoint="/api/v2/tickets", params={"per_page": 50})


def interpret_query(query: str) -> ParsedQuery:
    intent: QueryIntent = "unknown"
    confidence = 0.0
    for name, pattern in INTENT_PATTERNS.items():
        if pattern.search(query):
            intent = name  # type: ignore[assignment]
            confidence = PATTERN_CONFIDENCE
            break

    filters = extract_filters(query)
    return ParsedQuery(
        intent=intent,
        api_call=build_api_call(intent, filters),
        suggested_format=suggest_format(intent),
        confidence=confidence,
        filters=filters,
    )


def validate_query(query: str) -> Tuple[bool, Optional[str]]:
    if len(query) < 3:
        return False, "Query too short"
    if _SUSPICIOUS_RE.search(query):
        return False, "Query contains suspicious characters"
    return True, None


def _cache_key(query: str) -> str:
    return "query:" + " ".join(query.lower().split())


class QueryInterpreter:
    """Pattern-first interpreter with an LLM fallback and a memo of past answers."""

    def __init__(self):
        self._memo: Dict[str, QueryInterpretation] = {}

    @property
    def cache_size(self) -> int:
        return len(self._memo)

    def clear(self) -> None:
        self._memo.clear()

    def _remember(self, key: str, result: QueryInterpretation) -> None:
        # dicts keep insertion order, so the first key is the oldest
        if len(self._memo) >= MAX_MEMO_ENTRIES:
            self._memo.pop(next(iter(self._memo)))
        self._memo[key] = result

    async def interpret(self, query: str) -> QueryInterpretation:
        key = _cache_key(query)
        if key in self._memo:
            return self._memo[key]

        parsed = interpret_query(query)
        if parsed.confidence >= LLM_THRESHOLD:
            result = QueryInterpretation(
                intent=parsed.intent,
                filters=parsed.filters,
                confidence=parsed.confidence,
                method="pattern_match",
                reasoning=f"Pattern match for {parsed.intent}",
                api_call=parsed.api_call,
                suggested_format=parsed.suggested_format,
            )
            self._remember(key, result)
            return result

        logger.info("Pattern confidence low (%.2f), asking the LLM", parsed.confidence)
        try:
            llm_result = await generate_structured_output(
                prompt=f'Interpret this Zendesk support query: "{query}"',
                output_schema=LLMInterpretation,
                system_prompt=SYSTEM_PROMPT,
                temperature=0.3,
            )
        except Exception:
            logger.exception("LLM interpretation failed; using pattern result")
            # Not memoized so a later call can retry the LLM
            return QueryInterpretation(
                intent=parsed.intent,
                filters=parsed.filters,
                confidence=max(FALLBACK_MIN_CONFIDENCE, parsed.confidence),
                method="pattern_match",
                reasoning=f"Pattern match (OpenAI fallback) for {parsed.intent}",
                api_call=parsed.api_call,
                suggested_format=parsed.suggested_format,
            )

        filters = dict(llm_result.filters)
        result = QueryInterpretation(
            intent=llm_result.intent,
            filters=filters,
            confidence=min(1.0, max(0.0, llm_result.confidence)),
            method="openai",
            reasoning=llm_result.reasoning or "OpenAI interpretation",
            api_call=build_api_call(llm_result.intent, filters),
            suggested_format=suggest_format(llm_result.intent),
        )
        self._remember(key, result)
        return result

    async def check_llm(self) -> bool:
        """Round-trip a trivial prompt to confirm the LLM is reachable."""
        try:
            await generate_text("Say 'OK' only.", max_tokens=5)
        except Exception:
            logger.exception("LLM connection check failed")
            return False
        return True


_interpreter: Optional[QueryInterpreter] = None


def get_query_interpreter() -> QueryInterpreter:
    global _interpreter
    if _interpreter is None:
        _interpreter = QueryInterpreter()
    return _interpreter
