"""Intercom API endpoints under /api/intercom."""

import logging

from fastapi import APIRouter, Query, Response

from ..integrations.intercom import get_intercom_client
from ..schemas.cache import RefreshResult
from ..schemas.intercom import (
    IntercomContactRequest,
    IntercomContactResponse,
    IntercomConversationCreated,
    IntercomConversationList,
    IntercomConversationRequest,
    IntercomReplyRequest,
    IntercomReplyResponse,
    MessageSuggestionRequest,
    MessageSuggestions,
)
from ..schemas.query import CacheStatus, DeskStats, QueryRequest, QueryResponse
from ..services import contact_service, conversation_cache, reply_service, suggestion_service
from ..services.smart_query import get_smart_query_handler
from .errors import UPSTREAM_ERRORS, upstream_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/intercom", tags=["intercom"])


@router.post("/conversations", response_model=IntercomConversationCreated, status_code=201)
async def start_conversation(payload: IntercomConversationRequest):
    """Register the visitor and open a support conversation."""
    try:
        return await contact_service.start_intercom_conversation(payload)
    except UPSTREAM_ERRORS as exc:
        logger.exception("Failed to start Intercom conversation for %s", payload.visitor_email)
        raise upstream_http_error(exc, "Failed to create conversation") from exc


@router.get("/conversations", response_model=IntercomConversationList)
async def list_conversations(
    contact_id: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
):
    try:
        conversations = await get_intercom_client().list_contact_conversations(contact_id, limit=limit)
    except UPSTREAM_ERRORS as exc:
        logger.exception("Failed to list conversations for contact %s", contact_id)
        raise upstream_http_error(exc, "Failed to fetch conversations") from exc
    return IntercomConversationList(conversations=conversations, count=len(conversations))


@router.post("/suggest-message", response_model=MessageSuggestions)
async def suggest_message(payload: MessageSuggestionRequest):
    try:
        return await suggestion_service.suggest_messages(payload)
    except UPSTREAM_ERRORS as exc:
        logger.exception("Failed to suggest messages for conversation %s", payload.conversation_id)
        raise upstream_http_error(exc, "Failed to generate message suggestions") from exc


@router.post("/reply", response_model=IntercomReplyResponse)
async def post_reply(payload: IntercomReplyRequest):
    try:
        return await reply_service.generate_intercom_reply(
            payload.ticket_id, payload.custom_instructions
        )
    except UPSTREAM_ERRORS as exc:
        logger.exception("Failed to reply to Intercom ticket %s", payload.ticket_id)
        raise upstream_http_error(exc, "Failed to generate reply") from exc


@router.post("/query", response_model=QueryResponse)
async def query(payload: QueryRequest):
    logger.info("Intercom query: %r", payload.query)
    return await get_smart_query_handler("intercom").handle(payload.query, payload.context)


@router.get("/refresh", response_model=CacheStatus)
async def cache_status():
    return CacheStatus(**conversation_cache.get_cache_stats())


@router.post("/refresh", response_model=RefreshResult)
async def refresh_cache(response: Response):
    result = await get_smart_query_handler("intercom").refresh()
    if not result.success:
        response.status_code = 500
    return result


@router.get("/stats", response_model=DeskStats)
async def stats():
    handler = get_smart_query_handler("intercom")
    return DeskStats(
        summary=handler.get_quick_stats(),
        cache=CacheStatus(**conversation_cache.get_cache_stats()),
    )


@router.post("/contact", response_model=IntercomContactResponse)
async def submit_contact(payload: IntercomContactRequest):
    """Forward the contact form to the Intercom inbox."""
    try:
        return await contact_service.submit_intercom_contact(payload)
    except UPSTREAM_ERRORS as exc:
        logger.exception("Intercom contact form failed for %s", payload.email)
        raise upstream_http_error(exc, "Failed to send message") from exc
