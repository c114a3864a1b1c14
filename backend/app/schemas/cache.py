"""Snapshot models persisted by the ticket, conversation and history caches."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class AgeBuckets(BaseModel):
    """Counts of items by how long ago they were created."""
    less_than_24h: int = 0
    less_than_7d: int = 0
    less_than_30d: int = 0
    older_than_30d: int = 0


# ── Zendesk ──────────────────────────────────────────────────────────


class CachedTicket(BaseModel):
    """Flat projection of a Zendesk Support ticket."""
    id: int
    subject: str = ""
    description: str = ""
    status: str = "new"
    priority: str = "none"
    type: str = "question"
    created_at: str
    updated_at: str
    assignee_id: Optional[int] = None
    requester_id: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    organization_id: Optional[int] = None
    group_id: Optional[int] = None


class TicketStats(BaseModel):
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_age: AgeBuckets = Field(default_factory=AgeBuckets)


class TicketCacheSnapshot(BaseModel):
    last_updated: str
    ticket_count: int
    tickets: List[CachedTicket]
    stats: TicketStats


# ── Intercom ─────────────────────────────────────────────────────────


class ConversationStatistics(BaseModel):
    """Response-time figures Intercom reports per conversation, in seconds."""
    time_to_assignment: Optional[float] = None
    time_to_admin_reply: Optional[float] = None
    time_to_first_close: Optional[float] = None
    median_time_to_reply: Optional[float] = None


class CachedConversation(BaseModel):
    id: str
    state: str
    priority: bool = False
    created_at: int
    updated_at: int
    waiting_since: Optional[int] = None
    admin_assignee_id: Optional[str] = None
    team_assignee_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    contact_ids: List[str] = Field(default_factory=list)
    statistics: Optional[ConversationStatistics] = None


class CachedIntercomTicket(BaseModel):
    id: str
    ticket_type_id: str = ""
    ticket_type_name: str = ""
    state: str
    title: str = "Untitled"
    description: str = ""
    created_at: int
    updated_at: int
    admin_assignee_id: Optional[str] = None
    contact_emails: List[str] = Field(default_factory=list)
    priority: Optional[str] = None


class PriorityCounts(BaseModel):
    priority: int = 0
    no_priority: int = 0


class ResponseTimeStats(BaseModel):
    """Averages in seconds over conversations that report each figure."""
    avg_time_to_assignment: float = 0
    avg_time_to_reply: float = 0
    avg_time_to_close: float = 0


class ConversationStats(BaseModel):
    by_state: Dict[str, int] = Field(default_factory=dict)
    by_priority: PriorityCounts = Field(default_factory=PriorityCounts)
    by_tag: Dict[str, int] = Field(default_factory=dict)
    by_assignee: Dict[str, int] = Field(default_factory=dict)
    by_team: Dict[str, int] = Field(default_factory=dict)
    by_age: AgeBuckets = Field(default_factory=AgeBuckets)
    response_time: ResponseTimeStats = Field(default_factory=ResponseTimeStats)


class ConversationCacheSnapshot(BaseModel):
    last_updated: str
    conversation_count: int
    ticket_count: int
    conversations: List[CachedConversation]
    tickets: List[CachedIntercomTicket]
    stats: ConversationStats


# ── Refresh / history ────────────────────────────────────────────────


class RefreshResult(BaseModel):
    """Outcome of a cache refresh. Failures leave the previous file untouched."""
    success: bool
    ticket_count: int = 0
    conversation_count: int = 0
    message: str
    error: Optional[str] = None


QuerySource = Literal["cache", "ai", "live"]


class QueryHistoryEntry(BaseModel):
    timestamp: str
    query: str
    response: str
    source: QuerySource
    confidence: float


class QueryHistory(BaseModel):
    entries: List[QueryHistoryEntry] = Field(default_factory=list)
    last_updated: str
