"""Models for the natural-language query endpoints."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .cache import QuerySource
from .common import TicketSummary

QueryIntent = Literal[
    "help",
    "ticket_status",
    "recent_tickets",
    "problem_areas",
    "raw_data",
    "ticket_list",
    "ticket_filter",
    "analytics",
    "user_query",
    "organization_query",
    "chat_query",
    "call_query",
    "help_article",
    "automation",
    "unknown",
]

DisplayFormat = Literal["table", "metrics", "list", "timeline"]


class QueryContext(BaseModel):
    """Tickets shown by the previous answer, so 'the second ticket' resolves."""
    last_query: Optional[str] = None
    last_tickets: List[TicketSummary] = Field(default_factory=list)


class QueryRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)
    context: Optional[QueryContext] = None


class QueryResponse(BaseModel):
    """Answer produced by the smart query handler."""
    success: bool = True
    answer: str
    source: QuerySource
    confidence: float
    processing_time_ms: int
    tickets: Optional[List[Dict[str, Any]]] = None


# ── Interpretation ───────────────────────────────────────────────────


class APICall(BaseModel):
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    endpoint: str
    params: Dict[str, Any] = Field(default_factory=dict)


class ParsedQuery(BaseModel):
    intent: QueryIntent
    api_call: APICall
    suggested_format: DisplayFormat
    confidence: float
    filters: Dict[str, Any] = Field(default_factory=dict)


class LLMInterpretation(BaseModel):
    """Structured output requested from the LLM for ambiguous queries."""
    intent: QueryIntent = Field(description="What the user is asking for")
    filters: Dict[str, str] = Field(
        default_factory=dict,
        description=(
            "Optional keys: status (open|closed|pending|solved|on-hold), "
            "priority (urgent|high|normal|low), organization, assignee, contains, "
            "type (incident|problem|question|task)"
        ),
    )
    confidence: float = Field(ge=0, le=1)
    reasoning: str = Field(description="Brief explanation of the interpretation")


class QueryInterpretation(BaseModel):
    success: bool = True
    intent: QueryIntent
    filters: Dict[str, Any] = Field(default_factory=dict)
    confidence: float
    method: Literal["pattern_match", "openai"]
    reasoning: Optional[str] = None
    api_call: Optional[APICall] = None
    suggested_format: Optional[DisplayFormat] = None
    error: Optional[str] = None


class InterpreterHealth(BaseModel):
    status: Literal["ok", "error"]
    cache_size: int
    openai_connected: bool


# ── Cache endpoints ──────────────────────────────────────────────────


class CacheStatus(BaseModel):
    """Summary of an on-disk snapshot for the stats/refresh GET endpoints."""
    exists: bool
    fresh: bool = False
    last_updated: Optional[str] = None
    ticket_count: int = 0
    conversation_count: int = 0
    cache_file: str
    stats: Optional[Dict[str, Any]] = None


class DeskStats(BaseModel):
    """Rendered statistics block plus snapshot metadata."""
    summary: Optional[str] = None
    cache: CacheStatus
    live: Optional[Dict[str, int]] = None
