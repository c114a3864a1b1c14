"""Request/response models for the Intercom routes."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl

from .common import EMAIL_PATTERN, TicketSummary

Topic = Literal["sales", "support", "feedback", "general"]
MessageType = Literal["greeting", "response", "suggestion"]


class IntercomConversationRequest(BaseModel):
    """Visitor starting a new support conversation."""
    visitor_email: str = Field(pattern=EMAIL_PATTERN)
    visitor_name: str = Field(min_length=2, max_length=100)
    initial_message: str = Field(min_length=5, max_length=1000)
    topic: Topic = "general"
    page_url: Optional[HttpUrl] = None
    page_title: Optional[str] = None


class IntercomConversationCreated(BaseModel):
    success: bool = True
    contact_id: str
    conversation_id: str
    visitor_email: str
    visitor_name: str
    topic: Topic
    status: str = "open"
    message: str = "Support request received! Your conversation has been created."


class IntercomConversationList(BaseModel):
    conversations: List[dict]
    count: int


class HistoryMessage(BaseModel):
    author: Literal["visitor", "admin"]
    message: str


class MessageSuggestionRequest(BaseModel):
    conversation_id: str = Field(min_length=1)
    conversation_history: List[HistoryMessage] = Field(min_length=1)
    message_type: MessageType = "response"
    suggestion_count: int = Field(default=2, ge=1, le=3)


class MessageSuggestion(BaseModel):
    message: str
    confidence: float = Field(ge=0, le=1)
    reasoning: str


class MessageSuggestions(BaseModel):
    conversation_id: str
    suggestions: List[MessageSuggestion]
    generated_at: str


class IntercomReplyRequest(BaseModel):
    ticket_id: str = Field(min_length=1)
    custom_instructions: Optional[str] = None


class IntercomReplyResponse(BaseModel):
    success: bool = True
    ticket_id: str
    reply_body: str
    ticket_link: str
    ticket: TicketSummary


class IntercomContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN)
    message: str = Field(min_length=1, max_length=5000)


class IntercomContactResponse(BaseModel):
    success: bool = True
    message: str
    email_id: Optional[str] = None
