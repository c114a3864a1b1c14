"""Tests for the /api/zendesk routes using FastAPI TestClient."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
from fastapi.testclient import TestClient

from app.core.errors import VendorConfigError, ZendeskAPIError
from app.main import app
from app.schemas.cache import RefreshResult
from app.schemas.common import TicketSummary
from app.schemas.query import QueryInterpretation
from app.schemas.zendesk import ResponseSuggestions, SuggestedResponse, ZendeskReplyResponse, ZendeskTicketCreated

client = TestClient(app)

VALID_TICKET = {
    "subject": "Cannot export data",
    "description": "The CSV export button does nothing",
    "requester_email": "jo@example.com",
    "requester_name": "Jo Park",
}

VALID_SUGGESTION = {
    "ticket_id": "102",
    "subject": "Refund request",
    "description": "I was charged twice this month",
}


# ── App-level behaviour ──────────────────────────────────────────────


class TestApp:
    def test_health(self):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Service is running"}

    def test_security_headers(self):
        resp = client.get("/")
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert "frame-ancestors 'none'" in resp.headers["Content-Security-Policy"]

    def test_cors_preflight(self):
        resp = client.options(
            "/api/zendesk/tickets",
            headers={"Origin": "http://localhost:1333", "Access-Control-Request-Method": "POST"},
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "http://localhost:1333"


# ── POST /api/zendesk/tickets ────────────────────────────────────────


class TestCreateTicket:
    @patch("app.api.zendesk_routes.contact_service.create_zendesk_ticket", new_callable=AsyncMock)
    def test_created(self, mock_create):
        mock_create.return_value = ZendeskTicketCreated(
            ticket_id="880",
            status="new",
            priority="normal",
            created_at="2026-01-15T12:00:00Z",
            requester_email="jo@example.com",
            subject="Cannot export data",
        )

        resp = client.post("/api/zendesk/tickets", json=VALID_TICKET)

        assert resp.status_code == 201
        assert resp.json()["ticket_id"] == "880"
        assert mock_create.await_args.args[0].category == "general"

    def test_validation_issues(self):
        resp = client.post("/api/zendesk/tickets", json={**VALID_TICKET, "requester_email": "not-an-email"})

        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Invalid request data"
        assert [issue["field"] for issue in body["issues"]] == ["requester_email"]

    def test_invalid_json(self):
        resp = client.post(
            "/api/zendesk/tickets",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid JSON in request body", "issues": []}

    @patch("app.api.zendesk_routes.contact_service.create_zendesk_ticket", new_callable=AsyncMock)
    def test_bad_credentials(self, mock_create):
        mock_create.side_effect = ZendeskAPIError(401, "Couldn't authenticate you")

        resp = client.post("/api/zendesk/tickets", json=VALID_TICKET)

        assert resp.status_code == 502
        assert resp.json()["detail"] == "Failed to create ticket: Unauthorized: Invalid Zendesk credentials"

    @patch("app.api.zendesk_routes.contact_service.create_zendesk_ticket", new_callable=AsyncMock)
    def test_missing_configuration(self, mock_create):
        mock_create.side_effect = VendorConfigError("Zendesk credentials not configured")

        resp = client.post("/api/zendesk/tickets", json=VALID_TICKET)

        assert resp.status_code == 500


# ── GET /api/zendesk/tickets ─────────────────────────────────────────


class TestListTickets:
    @patch("app.api.zendesk_routes.get_zendesk_client")
    def test_lists_by_status(self, mock_get_client):
        mock_get_client.return_value.list_tickets_page = AsyncMock(return_value=[{"id": 1}, {"id": 2}])

        resp = client.get("/api/zendesk/tickets", params={"status": "pending", "limit": 2})

        assert resp.status_code == 200
        assert resp.json() == {"tickets": [{"id": 1}, {"id": 2}], "count": 2}
        mock_get_client.return_value.list_tickets_page.assert_awaited_once_with(status="pending", limit=2)

    def test_unknown_status(self):
        resp = client.get("/api/zendesk/tickets", params={"status": "archived"})
        assert resp.status_code == 400

    def test_limit_out_of_range(self):
        resp = client.get("/api/zendesk/tickets", params={"limit": 500})
        assert resp.status_code == 400
        assert resp.json()["issues"][0]["field"] == "limit"


# ── Agent tools ──────────────────────────────────────────────────────


class TestSuggestResponse:
    @patch("app.api.zendesk_routes.suggestion_service.suggest_responses", new_callable=AsyncMock)
    def test_suggestions(self, mock_suggest):
        mock_suggest.return_value = ResponseSuggestions(
            ticket_id="102",
            suggestions=[SuggestedResponse(response="We refunded you.", confidence=0.95, reasoning="Direct")],
            generated_at="2026-01-15T12:00:00+00:00",
        )

        resp = client.post("/api/zendesk/suggest-response", json=VALID_SUGGESTION)

        assert resp.status_code == 200
        assert resp.json()["suggestions"][0]["confidence"] == 0.95

    def test_response_count_limit(self):
        resp = client.post("/api/zendesk/suggest-response", json={**VALID_SUGGESTION, "response_count": 9})
        assert resp.status_code == 400

    @patch("app.api.zendesk_routes.suggestion_service.suggest_responses", new_callable=AsyncMock)
    def test_ai_not_configured(self, mock_suggest):
        mock_suggest.side_effect = VendorConfigError("AI service not configured")

        resp = client.post("/api/zendesk/suggest-response", json=VALID_SUGGESTION)

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to generate suggestions: AI service not configured"

    @patch("app.api.zendesk_routes.suggestion_service.suggest_responses", new_callable=AsyncMock)
    def test_llm_timeout(self, mock_suggest):
        mock_suggest.side_effect = openai.APITimeoutError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )

        resp = client.post("/api/zendesk/suggest-response", json=VALID_SUGGESTION)

        assert resp.status_code == 504


class TestReply:
    @patch("app.api.zendesk_routes.reply_service.generate_zendesk_reply", new_callable=AsyncMock)
    def test_reply(self, mock_reply):
        mock_reply.return_value = ZendeskReplyResponse(
            ticket_id=102,
            comment_id=9001,
            reply_body="Hi there",
            ticket_link="https://acme.zendesk.com/agent/tickets/102",
            ticket=TicketSummary(id="102", subject="Refund request", status="open"),
        )

        resp = client.post("/api/zendesk/reply", json={"ticket_id": 102, "custom_instructions": "Be brief"})

        assert resp.status_code == 200
        assert resp.json()["comment_id"] == 9001
        mock_reply.assert_awaited_once_with(102, "Be brief")

    def test_ticket_id_must_be_positive(self):
        resp = client.post("/api/zendesk/reply", json={"ticket_id": 0})
        assert resp.status_code == 400

    @patch("app.api.zendesk_routes.reply_service.generate_zendesk_reply", new_callable=AsyncMock)
    def test_ticket_not_found(self, mock_reply):
        mock_reply.side_effect = ZendeskAPIError(404, "RecordNotFound")

        resp = client.post("/api/zendesk/reply", json={"ticket_id": 999})

        assert resp.status_code == 404


# ── Terminal ─────────────────────────────────────────────────────────


class TestQuery:
    def test_help(self):
        resp = client.post("/api/zendesk/query", json={"query": "help"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["source"] == "cache"
        assert "ZENDESK INTELLIGENCE TERMINAL - HELP" in body["answer"]

    def test_empty_query_rejected(self):
        resp = client.post("/api/zendesk/query", json={"query": ""})
        assert resp.status_code == 400

    @patch("app.api.zendesk_routes.get_smart_query_handler")
    def test_context_is_passed_through(self, mock_get_handler):
        handler = MagicMock()
        handler.handle = AsyncMock(
            return_value={"answer": "ok", "source": "live", "confidence": 0.95, "processing_time_ms": 3}
        )
        mock_get_handler.return_value = handler

        resp = client.post(
            "/api/zendesk/query",
            json={
                "query": "close the first ticket",
                "context": {"last_tickets": [{"id": "101", "subject": "Cannot log in", "status": "open"}]},
            },
        )

        assert resp.status_code == 200
        query, context = handler.handle.await_args.args
        assert query == "close the first ticket"
        assert context.last_tickets[0].id == "101"


class TestInterpretQuery:
    def test_too_short(self):
        resp = client.post("/api/zendesk/interpret-query", json={"query": "ab"})

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Validation error: Query too short"

    def test_suspicious_characters(self):
        resp = client.post("/api/zendesk/interpret-query", json={"query": "show <script> tickets"})
        assert resp.status_code == 400

    @patch("app.api.zendesk_routes.get_query_interpreter")
    def test_interpretation(self, mock_get_interpreter):
        mock_get_interpreter.return_value.interpret = AsyncMock(
            return_value=QueryInterpretation(
                intent="ticket_list", filters={"status": "open"}, confidence=0.9, method="pattern_match"
            )
        )

        resp = client.post("/api/zendesk/interpret-query", json={"query": "show open tickets"})

        assert resp.status_code == 200
        assert resp.json()["intent"] == "ticket_list"
        assert resp.json()["filters"] == {"status": "open"}

    @patch("app.api.zendesk_routes.get_query_interpreter")
    def test_health(self, mock_get_interpreter):
        interpreter = MagicMock(cache_size=3)
        interpreter.check_llm = AsyncMock(return_value=False)
        mock_get_interpreter.return_value = interpreter

        resp = client.get("/api/zendesk/interpret-query")

        assert resp.json() == {"status": "ok", "cache_size": 3, "openai_connected": False}


# ── Cache ────────────────────────────────────────────────────────────


class TestCache:
    def test_status_without_snapshot(self):
        resp = client.get("/api/zendesk/refresh")

        assert resp.status_code == 200
        body = resp.json()
        assert body["exists"] is False
        assert body["cache_file"].endswith("zendesk-tickets.json")

    @patch("app.api.zendesk_routes.get_smart_query_handler")
    def test_refresh(self, mock_get_handler):
        mock_get_handler.return_value.refresh = AsyncMock(
            return_value=RefreshResult(success=True, ticket_count=4, message="ok")
        )

        resp = client.post("/api/zendesk/refresh")

        assert resp.status_code == 200
        assert resp.json()["ticket_count"] == 4

    @patch("app.api.zendesk_routes.get_smart_query_handler")
    def test_refresh_failure(self, mock_get_handler):
        mock_get_handler.return_value.refresh = AsyncMock(
            return_value=RefreshResult(success=False, message="Failed to refresh ticket cache", error="boom")
        )

        resp = client.post("/api/zendesk/refresh")

        assert resp.status_code == 500
        assert resp.json()["success"] is False
        assert resp.json()["error"] == "boom"

    def test_stats_without_snapshot(self):
        resp = client.get("/api/zendesk/stats")

        assert resp.status_code == 200
        assert resp.json()["summary"] is None
        assert resp.json()["cache"]["exists"] is False
        assert resp.json()["live"] is None

    @patch("app.api.zendesk_routes.get_zendesk_client")
    def test_stats_with_live_counts(self, mock_get_client):
        counts = {"new": 1, "open": 4, "pending": 2, "hold": 0, "solved": 7, "closed": 9}
        mock_get_client.return_value.get_ticket_stats = AsyncMock(return_value=counts)

        resp = client.get("/api/zendesk/stats", params={"live": "true"})

        assert resp.status_code == 200
        assert resp.json()["live"] == counts

    @patch("app.api.zendesk_routes.get_zendesk_client")
    def test_live_counts_unconfigured(self, mock_get_client):
        mock_get_client.side_effect = VendorConfigError("ZENDESK_SUBDOMAIN environment variable not configured")

        resp = client.get("/api/zendesk/stats", params={"live": "true"})

        assert resp.status_code == 500
        assert resp.json()["detail"].startswith("Failed to fetch live ticket counts")
