"""Intercom REST API client.

Bearer token auth pinned to API version 2.11. Rate-limited calls (429) wait
for ``Retry-After`` and retry a bounded number of times. Reads are cached in
process for a day and invalidated on writes.
"""

import asyncio
import logging
import threading
from typing import Any

import httpx

from ..core.config import get_settings
from ..core.errors import IntercomAPIError, VendorConfigError

from .cache import ResponseCache

logger = logging.getLogger(__name__)

BASE_URL = "https://api.intercom.io"
API_VERSION = "2.11"
DEFAULT_RETRY_AFTER_SECONDS = 60
TICKET_SEARCH_PAGE_SIZE = 150

# Seconds, per resource category
CACHE_TTL = {
    "conversations": 24 * 60 * 60,
    "tickets": 24 * 60 * 60,
    "contacts": 24 * 60 * 60,
    "admins": 24 * 60 * 60,
    "teams": 24 * 60 * 60,
    "tags": 24 * 60 * 60,
}


def _retry_after_seconds(response: httpx.Response) -> float:
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value else DEFAULT_RETRY_AFTER_SECONDS
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS


def _error_from_response(response: httpx.Response) -> IntercomAPIError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    errors = body.get("errors") if isinstance(body, dict) else None
    description = response.reason_phrase
    if errors and isinstance(errors, list) and isinstance(errors[0], dict):
        description = errors[0].get("message") or description
    error = body.get("type") if isinstance(body, dict) else None
    return IntercomAPIError(response.status_code, error or "API Error", description)


class IntercomClient:
    """Async Intercom API client.

    Usage:
        client = IntercomClient()
        open_conversations = await client.get_conversations(state="open")
    """

    def __init__(
        self,
        access_token: str | None = None,
        subdomain: str | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.access_token = access_token or settings.intercom_access_token
        if not self.access_token:
            raise VendorConfigError("INTERCOM_ACCESS_TOKEN environment variable not configured")
        self.subdomain = subdomain or settings.intercom_subdomain
        self.max_retries = (
            settings.intercom_max_rate_limit_retries if max_retries is None else max_retries
        )
        self.timeout = settings.vendor_timeout_seconds
        self._transport = transport
        self._cache = ResponseCache()

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Intercom-Version": API_VERSION,
        }

    async def _request(
        self,
        endpoint: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Issue one call, sleeping through 429s. Returns the raw response."""
        attempt = 0
        async with httpx.AsyncClient(
            base_url=BASE_URL,
            headers=self._get_headers(),
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            while True:
                try:
                    response = await client.request(method, endpoint, params=params, json=json)
                except httpx.RequestError as exc:
                    raise IntercomAPIError(0, "Network Error", str(exc)) from exc

                if response.status_code != 429 or attempt >= self.max_retries:
                    return response

                attempt += 1
                wait = _retry_after_seconds(response)
                logger.warning(
                    "Intercom rate limit hit on %s, retry %d/%d in %.0fs",
                    endpoint, attempt, self.max_retries, wait,
                )
                await asyncio.sleep(wait)

    async def _call(self, endpoint: str, method: str = "GET", **kwargs) -> dict[str, Any]:
        response = await self._request(endpoint, method, **kwargs)
        if response.is_error:
            raise _error_from_response(response)
        if not response.content:
            return {}
        return response.json()

    async def _fetch_all_pages(self, endpoint: str) -> list[dict[str, Any]]:
        """Follow ``pages.next.starting_after`` cursors and collect ``data``."""
        results: list[dict[str, Any]] = []
        starting_after: str | None = None
        while True:
            params = {"starting_after": starting_after} if starting_after else None
            data = await self._call(endpoint, params=params)
            results.extend(data.get("data") or data.get("conversations") or [])
            starting_after = ((data.get("pages") or {}).get("next") or {}).get("starting_after")
            if not starting_after:
                return results

    def _cached(self, key: str, category: str) -> Any | None:
        return self._cache.get(key, CACHE_TTL[category])

    # ── Conversations ────────────────────────────────────────────────

    async def get_conversations(
        self,
        state: str | None = None,
        priority: bool | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        filters = {"state": state, "priority": priority, "limit": limit}
        cache_key = ResponseCache.key("/conversations", filters)
        cached = self._cached(cache_key, "conversations")
        if cached is not None:
            logger.debug("Using cached conversations (%d)", len(cached))
            return cached

        conversations = await self._fetch_all_pages("/conversations")
        if state:
            conversations = [c for c in conversations if c.get("state") == state]
        if priority is not None:
            wanted = "priority" if priority else "not_priority"
            conversations = [
                c for c in conversations
                if c.get("priority") in (priority, wanted)
            ]
        if limit:
            conversations = conversations[:limit]

        self._cache.set(cache_key, conversations)
        logger.info("Cached %d Intercom conversations", len(conversations))
        return conversations

    async def get_conversation(self, conversation_id: str) -> dict[str, Any]:
        cache_key = f"/conversations/{conversation_id}"
        cached = self._cached(cache_key, "conversations")
        if cached is not None:
            return cached
        conversation = await self._call(cache_key)
        self._cache.set(cache_key, conversation)
        return conversation

    async def search_conversations(self, query: dict[str, Any]) -> list[dict[str, Any]]:
        data = await self._call("/conversations/search", "POST", json=query)
        return data.get("conversations") or []

    async def reply_to_conversation(self, conversation_id: str, body: str) -> None:
        await self._call(
            f"/conversations/{conversation_id}/reply",
            "POST",
            json={"message_type": "comment", "type": "admin", "body": body},
        )
        self._cache.delete(f"/conversations/{conversation_id}")

    async def update_conversation(
        self, conversation_id: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        conversation = await self._call(
            f"/conversations/{conversation_id}", "PUT", json=updates
        )
        self.invalidate_cache("conversations")
        return conversation

    async def tag_conversation(
        self,
        conversation_id: str,
        tags: list[str],
        admin_id: str | None = None,
    ) -> None:
        """Attach tags to a conversation as ``admin_id`` (first admin by default)."""
        if not admin_id:
            admins = await self.get_admins()
            if not admins:
                raise IntercomAPIError(404, "No admins found", "cannot tag conversation")
            admin_id = admins[0]["id"]

        await self._call(
            f"/conversations/{conversation_id}/tags",
            "POST",
            json={"admin_id": admin_id, "tag_names": tags},
        )
        self._cache.delete(f"/conversations/{conversation_id}")

    async def create_conversation(self, contact_id: str, body: str) -> dict[str, Any]:
        conversation = await self._call(
            "/conversations",
            "POST",
            json={"from": {"type": "contact", "id": contact_id}, "body": body},
        )
        self.invalidate_cache("conversations")
        return conversation

    async def list_contact_conversations(
        self, contact_id: str, limit: int = 10
    ) -> list[dict[str, Any]]:
        data = await self._call(
            f"/contacts/{contact_id}/conversations", params={"per_page": limit}
        )
        return data.get("conversations") or data.get("data") or []

    # ── Tickets ──────────────────────────────────────────────────────

    async def create_ticket(self, ticket: dict[str, Any]) -> dict[str, Any]:
        created = await self._call("/tickets", "POST", json=ticket)
        self.invalidate_cache("tickets")
        return created

    async def get_ticket(self, ticket_id: str) -> dict[str, Any]:
        cache_key = f"/tickets/{ticket_id}"
        cached = self._cached(cache_key, "tickets")
        if cached is not None:
            return cached
        ticket = await self._call(cache_key)
        self._cache.set(cache_key, ticket)
        return ticket

    async def update_ticket(self, ticket_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        ticket = await self._call(f"/tickets/{ticket_id}", "PUT", json=updates)
        self.invalidate_cache("tickets")
        return ticket

    async def add_ticket_comment(
        self, ticket_id: str, body: str, admin_id: str | None = None
    ) -> dict[str, Any]:
        """Post a public admin comment on a ticket and return Intercom's reply part."""
        payload: dict[str, Any] = {"message_type": "comment", "type": "admin", "body": body}
        if admin_id:
            payload["admin_id"] = admin_id
        reply = await self._call(f"/tickets/{ticket_id}/reply", "POST", json=payload)
        self._cache.delete(f"/tickets/{ticket_id}")
        return reply

    async def search_tickets(self, query: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a ticket search, walking every result page.

        ``query`` is an Intercom search body (``{"query": {...}}``); its
        ``pagination.per_page`` defaults to 150.
        """
        cache_key = ResponseCache.key("/tickets/search", query)
        cached = self._cached(cache_key, "tickets")
        if cached is not None:
            logger.debug("Using cached tickets (%d)", len(cached))
            return cached

        per_page = (query.get("pagination") or {}).get("per_page") or TICKET_SEARCH_PAGE_SIZE
        tickets: list[dict[str, Any]] = []
        page = 1
        while True:
            body = {**query, "pagination": {"per_page": per_page, "page": page}}
            data = await self._call("/tickets/search", "POST", json=body)
            tickets.extend(data.get("tickets") or [])
            pages = data.get("pages") or {}
            if not pages or pages.get("page", page) >= pages.get("total_pages", 0):
                break
            page += 1

        self._cache.set(cache_key, tickets)
        logger.info("Cached %d Intercom tickets", len(tickets))
        return tickets

    async def get_ticket_types(self) -> list[dict[str, Any]]:
        cached = self._cached("/ticket_types", "tickets")
        if cached is not None:
            return cached
        data = await self._call("/ticket_types")
        types = data.get("data") or []
        self._cache.set("/ticket_types", types)
        return types

    # ── Contacts ─────────────────────────────────────────────────────

    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        cache_key = f"/contacts/{contact_id}"
        cached = self._cached(cache_key, "contacts")
        if cached is not None:
            return cached
        contact = await self._call(cache_key)
        self._cache.set(cache_key, contact)
        return contact

    async def search_contacts(self, query: dict[str, Any]) -> list[dict[str, Any]]:
        data = await self._call("/contacts/search", "POST", json=query)
        return data.get("data") or []

    async def find_contact_by_email(self, email: str) -> dict[str, Any] | None:
        contacts = await self.search_contacts(
            {"query": {"field": "email", "operator": "=", "value": email}}
        )
        return contacts[0] if contacts else None

    async def create_contact(self, email: str, name: str | None = None) -> str:
        """Create a contact and return its id.

        A 409 means the email is already registered; the existing contact's id
        is returned instead.
        """
        payload: dict[str, Any] = {"email": email, "role": "user"}
        if name:
            payload["name"] = name
        response = await self._request("/contacts", "POST", json=payload)

        if response.status_code == 409:
            logger.info("Intercom contact already exists for %s", email)
            existing = await self.find_contact_by_email(email)
            if existing is None:
                raise _error_from_response(response)
            return existing["id"]
        if response.is_error:
            raise _error_from_response(response)
        return response.json()["id"]

    # ── Workspace ────────────────────────────────────────────────────

    async def get_admins(self) -> list[dict[str, Any]]:
        cached = self._cached("/admins", "admins")
        if cached is not None:
            return cached
        data = await self._call("/admins")
        admins = data.get("admins") or []
        self._cache.set("/admins", admins)
        return admins

    async def get_teams(self) -> list[dict[str, Any]]:
        cached = self._cached("/teams", "teams")
        if cached is not None:
            return cached
        data = await self._call("/teams")
        teams = data.get("teams") or []
        self._cache.set("/teams", teams)
        return teams

    async def get_tags(self) -> list[dict[str, Any]]:
        cached = self._cached("/tags", "tags")
        if cached is not None:
            return cached
        data = await self._call("/tags")
        tags = data.get("data") or []
        self._cache.set("/tags", tags)
        return tags

    # ── Utilities ────────────────────────────────────────────────────

    def ticket_link(self, ticket_id: str) -> str:
        return f"https://{self.subdomain}.intercom.com/a/tickets/{ticket_id}"

    def invalidate_cache(self, category: str | None = None) -> None:
        """Drop cached responses for one category, or everything."""
        if category is None:
            self._cache.clear()
        else:
            self._cache.invalidate_matching(f"/{category}")

    def cache_stats(self) -> dict[str, Any]:
        return {"size": len(self._cache), "entries": self._cache.keys()}


_client_instance: IntercomClient | None = None
_lock = threading.Lock()


def get_intercom_client() -> IntercomClient:
    """Get or create the Intercom client singleton (thread-safe)."""
    global _client_instance
    if _client_instance is None:
        with _lock:
            if _client_instance is None:
                _client_instance = IntercomClient()
    return _client_instance
