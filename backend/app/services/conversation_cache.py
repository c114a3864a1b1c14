"""On-disk snapshot of Intercom conversations and tickets.

Refresh pulls all conversations and tickets in every ticket state
concurrently, derives the stats block and replaces the snapshot atomically.
"""

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.config import get_settings
from ..core.errors import VendorAPIError, VendorConfigError
from ..integrations.intercom import get_intercom_client
from ..schemas.cache import (
    CachedConversation,
    CachedIntercomTicket,
    ConversationCacheSnapshot,
    ConversationStatistics,
    ConversationStats,
    RefreshResult,
    ResponseTimeStats,
)
from .snapshot_store import SnapshotStore
from .ticket_cache import age_buckets, parse_timestamp

logger = logging.getLogger(__name__)

CACHE_FILENAME = "intercom-conversations.json"
TICKET_STATES = ("submitted", "open", "waiting_on_customer", "resolved")

_refresh_lock = asyncio.Lock()


def cache_file_path() -> Path:
    return Path(get_settings().cache_dir) / CACHE_FILENAME


def _store() -> SnapshotStore[ConversationCacheSnapshot]:
    return SnapshotStore(cache_file_path(), ConversationCacheSnapshot)


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def to_cached_conversation(raw: Dict[str, Any]) -> CachedConversation:
    tags = (raw.get("tags") or {}).get("tags") or []
    contacts = (raw.get("contacts") or {}).get("contacts") or []
    statistics = raw.get("statistics")
    return CachedConversation(
        id=str(raw["id"]),
        state=raw.get("state") or "open",
        # Intercom reports "priority"/"not_priority"; older payloads use a bool
        priority=raw.get("priority") in (True, "priority"),
        created_at=raw["created_at"],
        updated_at=raw.get("updated_at") or raw["created_at"],
        waiting_since=raw.get("waiting_since"),
        admin_assignee_id=_optional_str(raw.get("admin_assignee_id")),
        team_assignee_id=_optional_str(raw.get("team_assignee_id")),
        tags=[t["name"] for t in tags if t.get("name")],
        contact_ids=[str(c["id"]) for c in contacts if c.get("id")],
        statistics=ConversationStatistics.model_validate(statistics) if statistics else None,
    )


def to_cached_ticket(raw: Dict[str, Any]) -> CachedIntercomTicket:
    attributes = raw.get("ticket_attributes") or {}
    ticket_type = raw.get("ticket_type") or {}
    contacts = (raw.get("contacts") or {}).get("contacts") or []
    priority = attributes.get("priority")
    return CachedIntercomTicket(
        id=str(raw["id"]),
        ticket_type_id=str(ticket_type.get("id") or ""),
        ticket_type_name=ticket_type.get("name") or "",
        state=raw.get("ticket_state") or raw.get("state") or "submitted",
        title=attributes.get("_default_title_") or "Untitled",
        description=attributes.get("_default_description_") or "",
        created_at=raw["created_at"],
        updated_at=raw.get("updated_at") or raw["created_at"],
        admin_assignee_id=_optional_str(raw.get("admin_assignee_id")),
        contact_emails=[
            c.get("email") or str(c.get("id")) for c in contacts if c.get("email") or c.get("id")
        ],
        priority=priority if isinstance(priority, str) else None,
    )


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


def calculate_stats(
    conversations: List[CachedConversation],
    now: Optional[datetime] = None,
) -> ConversationStats:
    now = now or datetime.now(UTC)
    stats = ConversationStats()

    for conv in conversations:
        stats.by_state[conv.state] = stats.by_state.get(conv.state, 0) + 1
        if conv.priority:
            stats.by_priority.priority += 1
        else:
            stats.by_priority.no_priority += 1
        for tag in conv.tags:
            stats.by_tag[tag] = stats.by_tag.get(tag, 0) + 1
        assignee = conv.admin_assignee_id or "unassigned"
        stats.by_assignee[assignee] = stats.by_assignee.get(assignee, 0) + 1
        if conv.team_assignee_id:
            stats.by_team[conv.team_assignee_id] = stats.by_team.get(conv.team_assignee_id, 0) + 1

    # created_at is unix seconds
    stats.by_age = age_buckets(
        (now.timestamp() - conv.created_at) / 86400 for conv in conversations
    )

    measured = [c.statistics for c in conversations if c.statistics]
    stats.response_time = ResponseTimeStats(
        avg_time_to_assignment=_average([s.time_to_assignment for s in measured if s.time_to_assignment]),
        avg_time_to_reply=_average([s.time_to_admin_reply for s in measured if s.time_to_admin_reply]),
        avg_time_to_close=_average([s.time_to_first_close for s in measured if s.time_to_first_close]),
    )
    return stats


def build_snapshot(
    raw_conversations: List[Dict[str, Any]],
    raw_tickets: List[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> ConversationCacheSnapshot:
    now = now or datetime.now(UTC)
    conversations = [to_cached_conversation(c) for c in raw_conversations]
    tickets = [to_cached_ticket(t) for t in raw_tickets]
    return ConversationCacheSnapshot(
        last_updated=now.isoformat(),
        conversation_count=len(conversations),
        ticket_count=len(tickets),
        conversations=conversations,
        tickets=tickets,
        stats=calculate_stats(conversations, now),
    )


def _ticket_state_query() -> Dict[str, Any]:
    return {
        "query": {
            "operator": "OR",
            "value": [
                {"field": "state", "operator": "=", "value": state}
                for state in TICKET_STATES
            ],
        }
    }


def _age_seconds(snapshot: ConversationCacheSnapshot) -> float:
    return (datetime.now(UTC) - parse_timestamp(snapshot.last_updated)).total_seconds()


def load_conversation_cache() -> Optional[ConversationCacheSnapshot]:
    snapshot = _store().load()
    if snapshot is None:
        return None

    age = _age_seconds(snapshot)
    if age > get_settings().intercom_cache_ttl_seconds:
        logger.info("Conversation cache is stale (%ds old)", round(age))
    else:
        logger.info(
            "Loaded %d conversations and %d tickets from cache",
            snapshot.conversation_count, snapshot.ticket_count,
        )
    return snapshot


def is_cache_fresh() -> bool:
    snapshot = _store().load()
    if snapshot is None:
        return False
    return _age_seconds(snapshot) < get_settings().intercom_cache_ttl_seconds


async def refresh_conversation_cache() -> RefreshResult:
    """Fetch conversations and tickets from Intercom and replace the snapshot."""
    async with _refresh_lock:
        logger.info("Refreshing conversation cache from Intercom")
        try:
            client = get_intercom_client()
            client.invalidate_cache()
            raw_conversations, raw_tickets = await asyncio.gather(
                client.get_conversations(),
                client.search_tickets(_ticket_state_query()),
            )
            snapshot = build_snapshot(raw_conversations, raw_tickets)
            _store().save(snapshot)
        except (VendorAPIError, VendorConfigError, OSError, KeyError, ValueError) as exc:
            logger.exception("Conversation cache refresh failed")
            return RefreshResult(
                success=False,
                message="Failed to refresh conversation cache",
                error=str(exc),
            )

    by_state = snapshot.stats.by_state
    logger.info(
        "Cached %d conversations and %d tickets (%d open, %d closed, %d snoozed)",
        snapshot.conversation_count, snapshot.ticket_count,
        by_state.get("open", 0), by_state.get("closed", 0), by_state.get("snoozed", 0),
    )
    return RefreshResult(
        success=True,
        ticket_count=snapshot.ticket_count,
        conversation_count=snapshot.conversation_count,
        message=(
            f"Successfully refreshed cache with {snapshot.conversation_count} conversations "
            f"and {snapshot.ticket_count} tickets"
        ),
    )


def get_cache_stats() -> Dict[str, Any]:
    snapshot = _store().load()
    if snapshot is None:
        return {"exists": False, "cache_file": str(cache_file_path())}
    return {
        "exists": True,
        "fresh": _age_seconds(snapshot) < get_settings().intercom_cache_ttl_seconds,
        "last_updated": snapshot.last_updated,
        "ticket_count": snapshot.ticket_count,
        "conversation_count": snapshot.conversation_count,
        "cache_file": str(cache_file_path()),
        "stats": snapshot.stats.model_dump(),
    }
