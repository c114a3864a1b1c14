"""Models shared by both desks."""

from typing import List, Optional

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class ValidationIssue(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    error: str = "Invalid request data"
    issues: List[ValidationIssue] = Field(default_factory=list)


class TicketSummary(BaseModel):
    """Minimal ticket view echoed back after posting a reply."""
    id: str
    subject: str
    status: str
    priority: Optional[str] = None
