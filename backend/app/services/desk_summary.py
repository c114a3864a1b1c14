"""Vendor-neutral view over a Zendesk or Intercom snapshot.

The classifier, AI context and help text only need counts and a flat list of
tickets, so both snapshots are reduced to the same shape here.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Dict, List, Literal, Optional

from ..schemas.cache import (
    AgeBuckets,
    ConversationCacheSnapshot,
    TicketCacheSnapshot,
)
from .ticket_cache import age_buckets, parse_timestamp

Desk = Literal["zendesk", "intercom"]


@dataclass
class SummaryTicket:
    id: str
    subject: str
    description: str
    status: str
    priority: str
    created_at: datetime
    tags: List[str] = field(default_factory=list)


@dataclass
class DeskSummary:
    desk: Desk
    label: str
    last_updated: str
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    by_type: Dict[str, int]
    by_age: AgeBuckets
    tickets: List[SummaryTicket]
    tag_counts: Dict[str, int] = field(default_factory=dict)
    conversation_count: int = 0
    conversations_by_state: Dict[str, int] = field(default_factory=dict)

    def tickets_with_tag(self, tag: str) -> int:
        if tag in self.tag_counts:
            return self.tag_counts[tag]
        return sum(1 for t in self.tickets if tag in t.tags)

    def created_within_days(self, days: int) -> int:
        """Cumulative count of tickets created less than ``days`` ago."""
        buckets = self.by_age
        if days <= 1:
            return buckets.less_than_24h
        if days <= 7:
            return buckets.less_than_24h + buckets.less_than_7d
        return buckets.less_than_24h + buckets.less_than_7d + buckets.less_than_30d


def from_zendesk(snapshot: TicketCacheSnapshot) -> DeskSummary:
    tickets = [
        SummaryTicket(
            id=str(t.id),
            subject=t.subject,
            description=t.description,
            status=t.status,
            priority=t.priority,
            created_at=parse_timestamp(t.created_at),
            tags=list(t.tags),
        )
        for t in snapshot.tickets
    ]
    tag_counts: Dict[str, int] = {}
    for t in tickets:
        for tag in t.tags:
            tag_counts[tag] = tag_counts.get(tag, 0) + 1

    return DeskSummary(
        desk="zendesk",
        label="Zendesk",
        last_updated=snapshot.last_updated,
        total=snapshot.ticket_count,
        by_status=dict(snapshot.stats.by_status),
        by_priority=dict(snapshot.stats.by_priority),
        by_type=dict(snapshot.stats.by_type),
        by_age=snapshot.stats.by_age,
        tickets=tickets,
        tag_counts=tag_counts,
    )


def from_intercom(snapshot: ConversationCacheSnapshot, now: Optional[datetime] = None) -> DeskSummary:
    """Summarize Intercom tickets; conversation stats ride along for context."""
    now = now or datetime.now(UTC)
    tickets = [
        SummaryTicket(
            id=t.id,
            subject=t.title,
            description=t.description,
            status=t.state,
            priority=t.priority or "none",
            created_at=datetime.fromtimestamp(t.created_at, UTC),
        )
        for t in snapshot.tickets
    ]

    by_status: Dict[str, int] = {}
    by_priority: Dict[str, int] = {}
    by_type: Dict[str, int] = {}
    for raw, t in zip(snapshot.tickets, tickets):
        by_status[t.status] = by_status.get(t.status, 0) + 1
        by_priority[t.priority] = by_priority.get(t.priority, 0) + 1
        type_name = (raw.ticket_type_name or "unknown").lower()
        by_type[type_name] = by_type.get(type_name, 0) + 1

    return DeskSummary(
        desk="intercom",
        label="Intercom",
        last_updated=snapshot.last_updated,
        total=snapshot.ticket_count,
        by_status=by_status,
        by_priority=by_priority,
        by_type=by_type,
        by_age=age_buckets((now - t.created_at).total_seconds() / 86400 for t in tickets),
        tickets=tickets,
        tag_counts=dict(snapshot.stats.by_tag),
        conversation_count=snapshot.conversation_count,
        conversations_by_state=dict(snapshot.stats.by_state),
    )
