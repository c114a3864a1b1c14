"""Zendesk REST API clients.

``ZendeskClient`` talks to the Support API (tickets, users, organizations,
search) with Basic token auth, follows ``next_page`` pagination, and keeps a
short-lived in-process response cache.

``ZendeskConversationsClient`` talks to the Conversations (Sunshine) API and is
only used by the public contact form.
"""

import asyncio
import base64
import logging
import threading
from typing import Any

import httpx

from ..core.config import get_settings
from ..core.errors import VendorConfigError, ZendeskAPIError

from .cache import ResponseCache

logger = logging.getLogger(__name__)

TICKET_STATUSES = ("new", "open", "pending", "hold", "solved", "closed")

# Seconds
CACHE_TTL = {
    "tickets": 5 * 60,
    "users": 60 * 60,
    "organizations": 60 * 60,
    "analytics": 5 * 60,
}


def _basic_auth(username: str, secret: str) -> str:
    encoded = base64.b64encode(f"{username}:{secret}".encode()).decode()
    return f"Basic {encoded}"


def _error_from_response(response: httpx.Response) -> ZendeskAPIError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = body.get("error") if isinstance(body, dict) else None
    description = body.get("description") if isinstance(body, dict) else None
    # Some endpoints return {"error": {"title": ..., "message": ...}}
    if isinstance(error, dict):
        description = description or error.get("message")
        error = error.get("title")
    return ZendeskAPIError(
        response.status_code,
        str(error or "Unknown error"),
        str(description or response.reason_phrase),
    )


class ZendeskClient:
    """Async Zendesk Support API client.

    Usage:
        client = ZendeskClient()
        tickets = await client.get_tickets(status="open")
    """

    def __init__(
        self,
        subdomain: str | None = None,
        email: str | None = None,
        api_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.subdomain = subdomain or settings.zendesk_subdomain
        self.email = email or settings.zendesk_email
        self.api_token = api_token or settings.zendesk_api_token
        self.timeout = timeout or settings.vendor_timeout_seconds
        self._transport = transport
        self._validate_config()
        self.base_url = f"https://{self.subdomain}.zendesk.com/api/v2"
        self._cache = ResponseCache()

    def _validate_config(self) -> None:
        if not self.subdomain:
            raise VendorConfigError("ZENDESK_SUBDOMAIN environment variable not configured")
        if not self.email:
            raise VendorConfigError("ZENDESK_EMAIL environment variable not configured")
        if not self.api_token:
            raise VendorConfigError("ZENDESK_API_TOKEN environment variable not configured")

    def _get_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": _basic_auth(f"{self.email}/token", self.api_token),
        }

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._get_headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.base_url}{endpoint}"

    async def _request(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await client.request(
                method,
                self._url(endpoint),
                params=params if method == "GET" else None,
                json=json,
            )
        except httpx.RequestError as exc:
            raise ZendeskAPIError(0, "Network Error", str(exc)) from exc

        if response.is_error:
            raise _error_from_response(response)
        return response.json()

    async def _paginate(
        self,
        endpoint: str,
        key: str,
        params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Follow ``next_page`` links and collect ``key`` from every page."""
        results: list[dict[str, Any]] = []
        next_page: str | None = endpoint
        page_count = 0

        async with self._http() as client:
            while next_page:
                page_count += 1
                data = await self._request(
                    client, next_page, params=params if page_count == 1 else None
                )
                page_items = data.get(key) or []
                results.extend(page_items)
                logger.debug(
                    "Zendesk %s page %d: %d items (total: %d)",
                    key, page_count, len(page_items), len(results),
                )
                next_page = data.get("next_page")

        logger.info(
            "Zendesk %s pagination complete: %d items across %d pages",
            key, len(results), page_count,
        )
        return results

    # ── Tickets ──────────────────────────────────────────────────────

    async def get_tickets(
        self,
        status: str | None = None,
        priority: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every ticket, optionally filtered by status and priority.

        ``limit`` is the page size used while paginating, not a cap.
        """
        filters = {"status": status, "priority": priority, "limit": limit}
        cache_key = ResponseCache.key("/tickets.json", filters)
        cached = self._cache.get(cache_key, CACHE_TTL["tickets"])
        if cached is not None:
            return cached

        tickets = await self._paginate(
            "/tickets.json", "tickets", {"per_page": limit or 100}
        )
        if status:
            tickets = [t for t in tickets if t.get("status") == status]
        if priority:
            tickets = [t for t in tickets if t.get("priority") == priority]

        self._cache.set(cache_key, tickets)
        return tickets

    async def get_ticket(self, ticket_id: int) -> dict[str, Any]:
        endpoint = f"/tickets/{ticket_id}.json"
        cache_key = ResponseCache.key(endpoint)
        cached = self._cache.get(cache_key, CACHE_TTL["tickets"])
        if cached is not None:
            return cached

        async with self._http() as client:
            data = await self._request(client, endpoint)
        ticket = data["ticket"]
        self._cache.set(cache_key, ticket)
        return ticket

    async def list_tickets_page(self, status: str = "open", limit: int = 10) -> list[dict[str, Any]]:
        """Single page of tickets in ``status``; never cached."""
        async with self._http() as client:
            data = await self._request(
                client,
                "/search.json",
                params={"query": f"type:ticket status:{status}", "per_page": limit},
            )
        return data.get("results") or []

    async def search_tickets(self, query: str, limit: int = 25) -> list[dict[str, Any]]:
        cache_key = ResponseCache.key("/search.json", {"query": query, "limit": limit})
        cached = self._cache.get(cache_key, CACHE_TTL["tickets"])
        if cached is not None:
            return cached

        results = await self._paginate(
            "/search.json", "results", {"query": query, "per_page": limit}
        )
        self._cache.set(cache_key, results)
        return results

    async def get_ticket_stats(self) -> dict[str, int]:
        """Ticket counts per status, fetched concurrently.

        A status whose count request fails is reported as 0.
        """
        cache_key = "/ticket-stats"
        cached = self._cache.get(cache_key, CACHE_TTL["analytics"])
        if cached is not None:
            return cached

        async with self._http() as client:

            async def _count(status: str) -> int:
                try:
                    data = await self._request(
                        client,
                        "/search/count.json",
                        params={"query": f"type:ticket status:{status}"},
                    )
                except ZendeskAPIError:
                    logger.warning("Failed to count %s tickets", status)
                    return 0
                count = data.get("count", 0)
                if isinstance(count, dict):
                    count = count.get("value", 0)
                return int(count or 0)

            counts = await asyncio.gather(*[_count(s) for s in TICKET_STATUSES])

        stats = dict(zip(TICKET_STATUSES, counts))
        self._cache.set(cache_key, stats)
        return stats

    async def create_ticket(self, ticket: dict[str, Any]) -> dict[str, Any]:
        async with self._http() as client:
            data = await self._request(
                client, "/tickets.json", method="POST", json={"ticket": ticket}
            )
        self._cache.invalidate_matching("/tickets")
        self._cache.delete("/ticket-stats")
        return data["ticket"]

    async def add_ticket_comment(
        self,
        ticket_id: int,
        body: str,
        public: bool = True,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Post a comment and return ``(updated_ticket, comment)``.

        The comment is taken from the audit's ``Comment`` event, which is where
        Zendesk reports the new comment id.
        """
        endpoint = f"/tickets/{ticket_id}.json"
        async with self._http() as client:
            data = await self._request(
                client,
                endpoint,
                method="PUT",
                json={"ticket": {"comment": {"body": body, "public": public}}},
            )

        self._cache.delete(ResponseCache.key(endpoint))
        comment: dict[str, Any] = {"body": body, "public": public}
        for event in (data.get("audit") or {}).get("events", []):
            if event.get("type") == "Comment":
                comment = event
                break
        return data["ticket"], comment

    async def update_ticket(self, ticket_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        endpoint = f"/tickets/{ticket_id}.json"
        async with self._http() as client:
            data = await self._request(client, endpoint, method="PUT", json={"ticket": fields})

        self._cache.delete(ResponseCache.key(endpoint))
        self._cache.invalidate_matching("/tickets.json")
        self._cache.delete("/ticket-stats")
        return data["ticket"]

    # ── Users & organizations ────────────────────────────────────────

    async def get_users(
        self,
        role: str | None = None,
        active: bool | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"per_page": 100}
        if role:
            params["role"] = role
        if active is not None:
            params["active"] = str(active).lower()

        cache_key = ResponseCache.key("/users.json", {"role": role, "active": active})
        cached = self._cache.get(cache_key, CACHE_TTL["users"])
        if cached is not None:
            return cached

        users = await self._paginate("/users.json", "users", params)
        self._cache.set(cache_key, users)
        return users

    async def get_organizations(self) -> list[dict[str, Any]]:
        cache_key = ResponseCache.key("/organizations.json")
        cached = self._cache.get(cache_key, CACHE_TTL["organizations"])
        if cached is not None:
            return cached

        orgs = await self._paginate("/organizations.json", "organizations", {"per_page": 100})
        self._cache.set(cache_key, orgs)
        return orgs

    # ── Utilities ────────────────────────────────────────────────────

    def ticket_link(self, ticket_id: int) -> str:
        return f"https://{self.subdomain}.zendesk.com/agent/tickets/{ticket_id}"

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Zendesk response cache cleared")

    def cache_stats(self) -> dict[str, Any]:
        return {"size": len(self._cache), "entries": self._cache.keys()}


class ZendeskConversationsClient:
    """Zendesk Conversations API: users, conversations and messages."""

    def __init__(
        self,
        app_id: str | None = None,
        key_id: str | None = None,
        secret: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.app_id = app_id or settings.zendesk_app_id
        self.key_id = key_id or settings.zendesk_key_id
        self.secret = secret or settings.zendesk_secret
        self.base_url = (base_url or settings.zendesk_conversations_url).rstrip("/")
        self.timeout = settings.vendor_timeout_seconds
        self._transport = transport
        if not (self.app_id and self.key_id and self.secret):
            raise VendorConfigError("Zendesk credentials not configured")

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/apps/{self.app_id}",
            headers={
                "Content-Type": "application/json",
                "Authorization": _basic_auth(self.key_id, self.secret),
            },
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise ZendeskAPIError(0, "Network Error", str(exc)) from exc

    async def find_or_create_user(self, email: str, name: str) -> str:
        """Return the user id for ``email``, creating the user when absent.

        The email doubles as the external id so repeat submissions reuse the
        same user.
        """
        given_name, _, surname = name.partition(" ")
        async with self._http() as client:
            response = await self._send(
                client, "GET", "/users", params={"external_id": email}
            )
            if response.status_code == 200:
                user = response.json().get("user")
                if user:
                    return user["id"]
            elif response.status_code != 404:
                raise _error_from_response(response)

            response = await self._send(
                client,
                "POST",
                "/users",
                json={
                    "user": {
                        "external_id": email,
                        "given_name": given_name or "User",
                        "surname": surname,
                        "email": email,
                    }
                },
            )
            if response.is_error:
                raise _error_from_response(response)
            return response.json()["user"]["id"]

    async def create_conversation(
        self,
        user_id: str | None = None,
        external_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Open a conversation for one participant, by user id or external id."""
        participant: dict[str, Any] = {"role": "participant"}
        if user_id:
            participant["user_id"] = user_id
        else:
            participant["userExternalId"] = external_id

        payload: dict[str, Any] = {"participants": [participant]}
        if metadata:
            payload["metadata"] = metadata

        async with self._http() as client:
            response = await self._send(client, "POST", "/conversations", json=payload)
        # Sunshine redirects instead of returning 401 on bad app credentials
        if 300 <= response.status_code < 400:
            raise ZendeskAPIError(
                401,
                "Zendesk configuration error",
                "Invalid App ID, Key ID, or Secret",
            )
        if response.is_error:
            raise _error_from_response(response)
        return response.json()["conversation"]

    async def send_message(self, conversation_id: str, user_id: str, text: str) -> None:
        async with self._http() as client:
            response = await self._send(
                client,
                "POST",
                f"/conversations/{conversation_id}/messages",
                json={
                    "message": {
                        "author": {"type": "user", "user_id": user_id},
                        "content": {"type": "text", "text": text},
                    }
                },
            )
        if response.is_error:
            raise _error_from_response(response)


_client_instance: ZendeskClient | None = None
_lock = threading.Lock()


def get_zendesk_client() -> ZendeskClient:
    """Get or create the Zendesk client singleton (thread-safe)."""
    global _client_instance
    if _client_instance is None:
        with _lock:
            if _client_instance is None:
                _client_instance = ZendeskClient()
    return _client_instance
