"""Zendesk API endpoints.

Web form tickets and contact threads, agent reply/suggestion tools, the
terminal query endpoints and the ticket cache under /api/zendesk.
"""

import logging

from fastapi import APIRouter, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from ..integrations.zendesk import TICKET_STATUSES, get_zendesk_client
from ..schemas.cache import RefreshResult
from ..schemas.query import (
    CacheStatus,
    DeskStats,
    InterpreterHealth,
    QueryInterpretation,
    QueryRequest,
    QueryResponse,
)
from ..schemas.zendesk import (
    ResponseSuggestionRequest,
    ResponseSuggestions,
    ZendeskContactRequest,
    ZendeskContactResponse,
    ZendeskReplyRequest,
    ZendeskReplyResponse,
    ZendeskTicketCreated,
    ZendeskTicketList,
    ZendeskTicketRequest,
)
from ..services import contact_service, reply_service, suggestion_service, ticket_cache
from ..services.query_interpreter import get_query_interpreter, validate_query
from ..services.smart_query import get_smart_query_handler
from .errors import UPSTREAM_ERRORS, upstream_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/zendesk", tags=["zendesk"])


# ── Tickets ──────────────────────────────────────────────────────────


@router.post("/tickets", response_model=ZendeskTicketCreated, status_code=201)
async def create_ticket(payload: ZendeskTicketRequest):
    """Create a Zendesk ticket from the public web form."""
    try:
        return await contact_service.create_zendesk_ticket(payload)
    except UPSTREAM_ERRORS as exc:
        logger.exception("Failed to create Zendesk ticket for %s", payload.requester_email)
        raise upstream_http_error(exc, "Failed to create ticket") from exc


@router.get("/tickets", response_model=ZendeskTicketList)
async def list_tickets(
    status: str = Query("open"),
    limit: int = Query(10, ge=1, le=100),
):
    if status not in TICKET_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown ticket status: {status}")
    try:
        tickets = await get_zendesk_client().list_tickets_page(status=status, limit=limit)
    except UPSTREAM_ERRORS as exc:
        logger.exception("Failed to list Zendesk tickets")
        raise upstream_http_error(exc, "Failed to fetch tickets") from exc
    return ZendeskTicketList(tickets=tickets, count=len(tickets))


@router.post("/contact", response_model=ZendeskContactResponse, status_code=201)
async def submit_contact(payload: ZendeskContactRequest):
    try:
        return await contact_service.submit_zendesk_contact(payload)
    except UPSTREAM_ERRORS as exc:
        logger.exception("Zendesk contact form failed for %s", payload.email)
        raise upstream_http_error(exc, "Failed to submit contact form") from exc


# ── Agent tools ──────────────────────────────────────────────────────


@router.post("/suggest-response", response_model=ResponseSuggestions)
async def suggest_response(payload: ResponseSuggestionRequest):
    """Draft alternative replies to a ticket for the agent to pick from."""
    try:
        return await suggestion_service.suggest_responses(payload)
    except UPSTREAM_ERRORS as exc:
        logger.exception("Failed to generate suggestions for ticket %s", payload.ticket_id)
        raise upstream_http_error(exc, "Failed to generate suggestions") from exc


@router.post("/reply", response_model=ZendeskReplyResponse)
async def post_reply(payload: ZendeskReplyRequest):
    """Generate an AI reply and post it to the ticket as a public comment."""
    try:
        return await reply_service.generate_zendesk_reply(
            payload.ticket_id, payload.custom_instructions
        )
    except UPSTREAM_ERRORS as exc:
        logger.exception("Failed to reply to Zendesk ticket %s", payload.ticket_id)
        raise upstream_http_error(exc, "Failed to generate reply") from exc


# ── Terminal ─────────────────────────────────────────────────────────


@router.post("/query", response_model=QueryResponse)
async def query(payload: QueryRequest):
    logger.info("Zendesk query: %r", payload.query)
    return await get_smart_query_handler("zendesk").handle(payload.query, payload.context)


@router.post("/interpret-query", response_model=QueryInterpretation)
async def interpret_query(payload: QueryRequest):
    """Map a free-text query to an intent and filters."""
    valid, message = validate_query(payload.query)
    if not valid:
        body = QueryInterpretation(
            success=False,
            intent="unknown",
            confidence=0,
            method="pattern_match",
            error=f"Validation error: {message}",
        )
        return JSONResponse(status_code=400, content=body.model_dump())
    return await get_query_interpreter().interpret(payload.query)


@router.get("/interpret-query", response_model=InterpreterHealth)
async def interpreter_health():
    interpreter = get_query_interpreter()
    connected = await interpreter.check_llm()
    return InterpreterHealth(status="ok", cache_size=interpreter.cache_size, openai_connected=connected)


# ── Cache ────────────────────────────────────────────────────────────


@router.get("/refresh", response_model=CacheStatus)
async def cache_status():
    return CacheStatus(**ticket_cache.get_cache_stats())


@router.post("/refresh", response_model=RefreshResult)
async def refresh_cache(response: Response):
    result = await get_smart_query_handler("zendesk").refresh()
    if not result.success:
        response.status_code = 500
    return result


@router.get("/stats", response_model=DeskStats)
async def stats(live: bool = Query(False)):
    """Cached statistics; ``live=true`` adds per-status counts straight from Zendesk."""
    handler = get_smart_query_handler("zendesk")
    live_counts = None
    if live:
        try:
            live_counts = await get_zendesk_client().get_ticket_stats()
        except UPSTREAM_ERRORS as exc:
            logger.exception("Failed to fetch live Zendesk ticket counts")
            raise upstream_http_error(exc, "Failed to fetch live ticket counts") from exc
    return DeskStats(
        summary=handler.get_quick_stats(),
        cache=CacheStatus(**ticket_cache.get_cache_stats()),
        live=live_counts,
    )
