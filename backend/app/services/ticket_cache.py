"""On-disk snapshot of every Zendesk ticket, used for instant query answers.

The snapshot is created by the first refresh and replaced wholesale by each
later one. Loading never calls Zendesk; a stale snapshot is still returned.
"""

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..core.config import get_settings
from ..core.errors import VendorAPIError, VendorConfigError
from ..integrations.zendesk import get_zendesk_client
from ..schemas.cache import (
    AgeBuckets,
    CachedTicket,
    RefreshResult,
    TicketCacheSnapshot,
    TicketStats,
)
from .snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

CACHE_FILENAME = "zendesk-tickets.json"

_refresh_lock = asyncio.Lock()


def cache_file_path() -> Path:
    return Path(get_settings().cache_dir) / CACHE_FILENAME


def _store() -> SnapshotStore[TicketCacheSnapshot]:
    return SnapshotStore(cache_file_path(), TicketCacheSnapshot)


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def age_buckets(ages_in_days: Iterable[float]) -> AgeBuckets:
    buckets = AgeBuckets()
    for days in ages_in_days:
        if days < 1:
            buckets.less_than_24h += 1
        elif days < 7:
            buckets.less_than_7d += 1
        elif days < 30:
            buckets.less_than_30d += 1
        else:
            buckets.older_than_30d += 1
    return buckets


def calculate_stats(tickets: List[CachedTicket], now: Optional[datetime] = None) -> TicketStats:
    now = now or datetime.now(UTC)
    stats = TicketStats()
    for ticket in tickets:
        stats.by_status[ticket.status] = stats.by_status.get(ticket.status, 0) + 1
        stats.by_priority[ticket.priority] = stats.by_priority.get(ticket.priority, 0) + 1
        stats.by_type[ticket.type] = stats.by_type.get(ticket.type, 0) + 1

    stats.by_age = age_buckets(
        (now - parse_timestamp(t.created_at)).total_seconds() / 86400 for t in tickets
    )
    return stats


def to_cached_ticket(raw: Dict[str, Any]) -> CachedTicket:
    return CachedTicket(
        id=raw["id"],
        subject=raw.get("subject") or "",
        description=raw.get("description") or "",
        status=raw.get("status") or "new",
        priority=raw.get("priority") or "none",
        type=raw.get("type") or "question",
        created_at=raw["created_at"],
        updated_at=raw.get("updated_at") or raw["created_at"],
        assignee_id=raw.get("assignee_id"),
        requester_id=raw.get("requester_id"),
        tags=raw.get("tags") or [],
        organization_id=raw.get("organization_id"),
        group_id=raw.get("group_id"),
    )


def build_snapshot(
    raw_tickets: List[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> TicketCacheSnapshot:
    now = now or datetime.now(UTC)
    tickets = [to_cached_ticket(t) for t in raw_tickets]
    return TicketCacheSnapshot(
        last_updated=now.isoformat(),
        ticket_count=len(tickets),
        tickets=tickets,
        stats=calculate_stats(tickets, now),
    )


def _age_seconds(snapshot: TicketCacheSnapshot) -> float:
    return (datetime.now(UTC) - parse_timestamp(snapshot.last_updated)).total_seconds()


def load_ticket_cache() -> Optional[TicketCacheSnapshot]:
    """Return the snapshot on disk, or ``None`` when there is none yet."""
    snapshot = _store().load()
    if snapshot is None:
        return None

    age = _age_seconds(snapshot)
    if age > get_settings().zendesk_cache_ttl_seconds:
        logger.info("Ticket cache is stale (%ds old)", round(age))
    else:
        logger.info("Loaded %d cached tickets", snapshot.ticket_count)
    return snapshot


def is_cache_fresh() -> bool:
    snapshot = _store().load()
    if snapshot is None:
        return False
    return _age_seconds(snapshot) < get_settings().zendesk_cache_ttl_seconds


async def refresh_ticket_cache() -> RefreshResult:
    """Fetch every ticket from Zendesk and replace the snapshot.

    Concurrent refreshes are serialized. Any failure leaves the existing file
    untouched and is reported in the result rather than raised.
    """
    async with _refresh_lock:
        logger.info("Refreshing ticket cache from Zendesk")
        try:
            client = get_zendesk_client()
            client.clear_cache()
            raw_tickets = await client.get_tickets(limit=100)
            snapshot = build_snapshot(raw_tickets)
            _store().save(snapshot)
        except (VendorAPIError, VendorConfigError, OSError, KeyError, ValueError) as exc:
            logger.exception("Ticket cache refresh failed")
            return RefreshResult(
                success=False,
                message="Failed to refresh ticket cache",
                error=str(exc),
            )

    logger.info("Saved %d tickets to cache", snapshot.ticket_count)
    return RefreshResult(
        success=True,
        ticket_count=snapshot.ticket_count,
        message=f"Successfully refreshed cache with {snapshot.ticket_count} tickets",
    )


def get_cache_stats() -> Dict[str, Any]:
    """Snapshot metadata for status endpoints, without the ticket list."""
    snapshot = _store().load()
    if snapshot is None:
        return {"exists": False, "cache_file": str(cache_file_path())}
    return {
        "exists": True,
        "fresh": _age_seconds(snapshot) < get_settings().zendesk_cache_ttl_seconds,
        "last_updated": snapshot.last_updated,
        "ticket_count": snapshot.ticket_count,
        "cache_file": str(cache_file_path()),
        "stats": snapshot.stats.model_dump(),
    }
