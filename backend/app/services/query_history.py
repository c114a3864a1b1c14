"""Persistent record of recent queries and answers, per desk.

The last few entries are fed back to the LLM so follow-up questions ("what
about the second one?") have context.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Optional

from ..core.config import get_settings
from ..schemas.cache import QueryHistory, QueryHistoryEntry, QuerySource
from .snapshot_store import SnapshotStore
from .ticket_cache import parse_timestamp

logger = logging.getLogger(__name__)

MAX_ENTRIES = 50
MAX_CONTEXT_ENTRIES = 10
MAX_RESPONSE_CHARS = 500
CONTEXT_RESPONSE_CHARS = 200


def time_ago(timestamp: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(UTC)
    minutes = int((now - parse_timestamp(timestamp)).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"

    hours = minutes // 60
    if hours == 1:
        return "1 hour ago"
    if hours < 24:
        return f"{hours} hours ago"

    days = hours // 24
    if days == 1:
        return "1 day ago"
    return f"{days} days ago"


class QueryHistoryStore:
    def __init__(self, desk: str, path: Optional[Path] = None):
        self.desk = desk
        self._path = path

    @property
    def path(self) -> Path:
        return self._path or Path(get_settings().cache_dir) / f"{self.desk}-query-history.json"

    def _store(self) -> SnapshotStore[QueryHistory]:
        return SnapshotStore(self.path, QueryHistory)

    def load(self) -> QueryHistory:
        history = self._store().load()
        if history is None:
            return QueryHistory(last_updated=datetime.now(UTC).isoformat())
        return history

    def _save(self, history: QueryHistory) -> None:
        history.last_updated = datetime.now(UTC).isoformat()
        self._store().save(history)

    def add_entry(self, query: str, response: str, source: QuerySource, confidence: float) -> None:
        """Append an exchange. Persistence failures are logged, never raised."""
        history = self.load()
        history.entries.append(
            QueryHistoryEntry(
                timestamp=datetime.now(UTC).isoformat(),
                query=query,
                response=response[:MAX_RESPONSE_CHARS],
                source=source,
                confidence=confidence,
            )
        )
        history.entries = history.entries[-MAX_ENTRIES:]
        try:
            self._save(history)
        except OSError:
            logger.exception("Failed to save %s query history", self.desk)

    def recent_context(self) -> str:
        entries = self.load().entries[-MAX_CONTEXT_ENTRIES:]
        if not entries:
            return ""

        blocks = [
            f"[{i}] {time_ago(entry.timestamp)}\n"
            f"User: {entry.query}\n"
            f"Assistant ({entry.source}, {entry.confidence * 100:.0f}%): "
            f"{entry.response[:CONTEXT_RESPONSE_CHARS]}..."
            for i, entry in enumerate(entries, start=1)
        ]
        return (
            f"RECENT CONVERSATION HISTORY (Last {len(entries)} interactions):\n\n"
            + "\n\n".join(blocks)
        )

    def clear(self) -> None:
        self._save(QueryHistory(last_updated=datetime.now(UTC).isoformat()))
        logger.info("%s query history cleared", self.desk)

    def stats(self) -> dict:
        entries = self.load().entries
        return {
            "total_entries": len(entries),
            "oldest_entry": entries[0].timestamp if entries else None,
            "newest_entry": entries[-1].timestamp if entries else None,
        }
