"""Schemas module - Pydantic models for API request/response validation."""

from .cache import (
    ConversationCacheSnapshot,
    QueryHistory,
    RefreshResult,
    TicketCacheSnapshot,
)
from .common import TicketSummary, ValidationErrorResponse, ValidationIssue
from .intercom import (
    IntercomContactRequest,
    IntercomConversationRequest,
    IntercomReplyRequest,
    MessageSuggestionRequest,
    MessageSuggestions,
)
from .query import QueryContext, QueryInterpretation, QueryRequest, QueryResponse
from .zendesk import (
    ResponseSuggestionRequest,
    ResponseSuggestions,
    ZendeskContactRequest,
    ZendeskReplyRequest,
    ZendeskTicketRequest,
)

__all__ = [
    # Cache
    "ConversationCacheSnapshot",
    "QueryHistory",
    "RefreshResult",
    "TicketCacheSnapshot",
    # Common
    "TicketSummary",
    "ValidationErrorResponse",
    "ValidationIssue",
    # Intercom
    "IntercomContactRequest",
    "IntercomConversationRequest",
    "IntercomReplyRequest",
    "MessageSuggestionRequest",
    "MessageSuggestions",
    # Query
    "QueryContext",
    "QueryInterpretation",
    "QueryRequest",
    "QueryResponse",
    # Zendesk
    "ResponseSuggestionRequest",
    "ResponseSuggestions",
    "ZendeskContactRequest",
    "ZendeskReplyRequest",
    "ZendeskTicketRequest",
]
