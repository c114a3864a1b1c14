"""Visitor-facing submissions: web form tickets, contact forms and new chats."""

import logging

from ..core.config import get_settings
from ..core.errors import IntercomAPIError
from ..integrations.intercom import get_intercom_client
from ..integrations.resend import ResendClient, contact_form_html
from ..integrations.zendesk import ZendeskConversationsClient, get_zendesk_client
from ..schemas.intercom import (
    IntercomContactRequest,
    IntercomContactResponse,
    IntercomConversationCreated,
    IntercomConversationRequest,
)
from ..schemas.zendesk import (
    ZendeskContactRequest,
    ZendeskContactResponse,
    ZendeskTicketCreated,
    ZendeskTicketRequest,
)

logger = logging.getLogger(__name__)

WEB_FORM_TAG = "web-form"


async def create_zendesk_ticket(request: ZendeskTicketRequest) -> ZendeskTicketCreated:
    """Open a Zendesk Support ticket from the public web form."""
    client = get_zendesk_client()
    ticket = await client.create_ticket(
        {
            "subject": request.subject,
            "comment": {"body": request.description},
            "requester": {"name": request.requester_name, "email": request.requester_email},
            "priority": request.priority,
            "tags": [request.category, WEB_FORM_TAG],
        }
    )
    logger.info("Created Zendesk ticket %s for %s", ticket.get("id"), request.requester_email)

    return ZendeskTicketCreated(
        ticket_id=str(ticket["id"]),
        status=ticket.get("status") or "new",
        priority=ticket.get("priority") or request.priority,
        created_at=ticket.get("created_at") or "",
        requester_email=request.requester_email,
        subject=ticket.get("subject") or request.subject,
    )


async def submit_zendesk_contact(
    request: ZendeskContactRequest,
    client: ZendeskConversationsClient | None = None,
) -> ZendeskContactResponse:
    """Start a Zendesk Conversations thread carrying the visitor's message."""
    client = client or ZendeskConversationsClient()
    user_id = await client.find_or_create_user(request.email, request.name)
    conversation = await client.create_conversation(user_id=user_id)
    conversation_id = str(conversation["id"])
    await client.send_message(conversation_id, user_id, request.message)
    logger.info("Contact form from %s opened conversation %s", request.email, conversation_id)

    return ZendeskContactResponse(
        conversation_id=conversation_id,
        user_id=user_id,
        message=f"Thank you {request.name}! Your message has been received.",
    )


async def start_intercom_conversation(request: IntercomConversationRequest) -> IntercomConversationCreated:
    """Register the visitor as a contact and open a conversation for them.

    If Intercom refuses the conversation the contact id is returned in its
    place, so the visitor still gets a reference.
    """
    client = get_intercom_client()
    contact_id = await client.create_contact(request.visitor_email, request.visitor_name)

    body = request.initial_message or f"Support request from {request.visitor_name}"
    try:
        conversation = await client.create_conversation(contact_id, body)
        conversation_id = str(conversation.get("conversation_id") or conversation.get("id") or contact_id)
    except IntercomAPIError:
        logger.warning("Intercom conversation creation failed for contact %s", contact_id, exc_info=True)
        conversation_id = contact_id

    return IntercomConversationCreated(
        contact_id=contact_id,
        conversation_id=conversation_id,
        visitor_email=request.visitor_email,
        visitor_name=request.visitor_name,
        topic=request.topic,
    )


async def submit_intercom_contact(
    request: IntercomContactRequest,
    client: ResendClient | None = None,
) -> IntercomContactResponse:
    """Forward a contact form to the Intercom inbox by email.

    Without a Resend key the submission is only logged.
    """
    client = client or ResendClient()
    settings = get_settings()
    text = f"Name: {request.name}\nEmail: {request.email}\n\n{request.message}"

    email_id = None
    if client.enabled and settings.intercom_inbox_email:
        email_id = await client.send_email(
            to=settings.intercom_inbox_email,
            subject=f"Contact Form: {request.name}",
            text=text,
            html_body=contact_form_html(request.name, request.email, request.message),
            reply_to=request.email,
        )
        logger.info("Contact form forwarded to Intercom for %s (%s)", request.name, request.email)
    else:
        logger.warning(
            "Email forwarding not configured; contact form from %s (%s) logged only",
            request.name, request.email,
        )
        logger.info("Contact form message: %s", request.message)

    return IntercomContactResponse(
        message=f"Thank you {request.name}! Your message has been received.",
        email_id=email_id,
    )
