"""In-process TTL cache for vendor API responses."""

import json
import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class ResponseCache:
    """Maps request keys to (data, stored_at) pairs with per-call TTLs."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    @staticmethod
    def key(endpoint: str, params: dict[str, Any] | None = None) -> str:
        """Build a stable key from an endpoint and its (unordered) params."""
        if not params:
            return endpoint
        query = "&".join(
            f"{k}={json.dumps(v, sort_keys=True, default=str)}"
            for k, v in sorted(params.items())
            if v is not None
        )
        return f"{endpoint}?{query}" if query else endpoint

    def get(self, key: str, ttl: float) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        data, stored_at = entry
        if self._clock() - stored_at < ttl:
            logger.debug("Cache hit: %s", key)
            return data
        del self._entries[key]
        return None

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = (data, self._clock())

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_matching(self, fragment: str) -> None:
        """Drop every entry whose key contains ``fragment``."""
        for key in [k for k in self._entries if fragment in k]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
