"""Services module - caches, query handling and LLM-backed agent tools."""

from . import (
    contact_service,
    conversation_cache,
    reply_service,
    suggestion_service,
    ticket_cache,
)
from .smart_query import SmartQueryHandler, get_smart_query_handler

__all__ = [
    "contact_service",
    "conversation_cache",
    "reply_service",
    "suggestion_service",
    "ticket_cache",
    "SmartQueryHandler",
    "get_smart_query_handler",
]
