"""Request/response models for the Zendesk routes."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .common import EMAIL_PATTERN, TicketSummary

Category = Literal["general", "support", "sales", "feedback"]
TicketPriority = Literal["low", "normal", "high", "urgent"]
Tone = Literal["professional", "friendly", "formal", "casual"]


class ZendeskTicketRequest(BaseModel):
    """Web form submission that becomes a Zendesk Support ticket."""
    subject: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=10, max_length=2000)
    requester_email: str = Field(pattern=EMAIL_PATTERN)
    requester_name: str = Field(min_length=2, max_length=100)
    category: Category = "general"
    priority: TicketPriority = "normal"


class ZendeskTicketCreated(BaseModel):
    success: bool = True
    ticket_id: str
    status: str
    priority: str
    created_at: str
    requester_email: str
    subject: str
    message: str = "Ticket created successfully"


class ZendeskTicketList(BaseModel):
    tickets: List[dict]
    count: int


class ResponseSuggestionRequest(BaseModel):
    ticket_id: str = Field(min_length=1)
    subject: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    tone: Tone = "professional"
    response_count: int = Field(default=3, ge=1, le=5)


class SuggestedResponse(BaseModel):
    response: str
    confidence: float = Field(ge=0, le=1)
    reasoning: str


class ResponseSuggestions(BaseModel):
    ticket_id: str
    suggestions: List[SuggestedResponse]
    generated_at: str


class ZendeskReplyRequest(BaseModel):
    ticket_id: int = Field(gt=0)
    custom_instructions: Optional[str] = None


class ZendeskReplyResponse(BaseModel):
    success: bool = True
    ticket_id: int
    comment_id: Optional[int] = None
    reply_body: str
    ticket_link: str
    ticket: TicketSummary


class ZendeskContactRequest(BaseModel):
    """Contact form that opens a Zendesk Conversations thread."""
    name: str = Field(min_length=2, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN)
    message: str = Field(min_length=5, max_length=2000)


class ZendeskContactResponse(BaseModel):
    success: bool = True
    conversation_id: str
    user_id: str
    message: str
