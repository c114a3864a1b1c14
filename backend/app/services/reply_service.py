"""Generate an AI reply to a ticket and post it as a public comment."""

import logging
from typing import Optional

from ..core.llm import generate_text
from ..integrations.intercom import get_intercom_client
from ..integrations.zendesk import get_zendesk_client
from ..schemas.common import TicketSummary
from ..schemas.intercom import IntercomReplyResponse
from ..schemas.zendesk import ZendeskReplyResponse

logger = logging.getLogger(__name__)

REPLY_TEMPERATURE = 0.7

ZENDESK_SYSTEM_PROMPT = """You are a professional, empathetic customer support agent for a Zendesk-powered support team.

Your task is to write a helpful, professional reply to a support ticket.

**Guidelines:**
- Be warm, professional, and empathetic
- Acknowledge the customer's issue
- Provide clear, actionable solutions when possible
- If you can't fully solve the issue, explain next steps
- Keep replies concise (2-4 paragraphs)
- Use a friendly but professional tone
- Sign off with "Best regards" or similar

**Ticket Information:**
Subject: {subject}
Description: {description}
Priority: {priority}
Status: {status}{instructions}"""

INTERCOM_SYSTEM_PROMPT = """You are a professional, empathetic customer support agent for an Intercom-powered support team.

Your task is to write a helpful, professional reply to a support ticket that will be AUTOMATICALLY POSTED to the customer.

**CRITICAL INSTRUCTIONS:**
- DO NOT include any disclaimers, notes, or meta-commentary
- DO NOT say things like "I can't post replies" or "please copy this message"
- Write ONLY the actual reply text that will be sent to the customer
- Be warm, professional, and empathetic
- Acknowledge the customer's issue clearly
- Provide clear, actionable solutions when possible
- If you can't fully solve the issue, explain next steps
- Keep replies concise (2-4 paragraphs maximum)
- Sign off with "Best regards" or "Thank you" followed by a signature

**Ticket Information:**
Subject: {subject}
Description: {description}
Status: {status}{instructions}"""


def _instructions_block(custom_instructions: Optional[str]) -> str:
    if not custom_instructions:
        return ""
    return f"\n\n**Additional Instructions:** {custom_instructions}"


async def generate_zendesk_reply(
    ticket_id: int,
    custom_instructions: Optional[str] = None,
) -> ZendeskReplyResponse:
    client = get_zendesk_client()
    ticket = await client.get_ticket(ticket_id)
    logger.info(
        "Generating reply for Zendesk ticket %s (%s, %s)",
        ticket_id, ticket.get("status"), ticket.get("priority"),
    )

    system_prompt = ZENDESK_SYSTEM_PROMPT.format(
        subject=ticket.get("subject") or "",
        description=ticket.get("description") or "",
        priority=ticket.get("priority") or "none",
        status=ticket.get("status") or "",
        instructions=_instructions_block(custom_instructions),
    )
    reply_body = await generate_text(
        "Generate a professional support reply to this ticket.",
        system_prompt=system_prompt,
        temperature=REPLY_TEMPERATURE,
    )

    updated, comment = await client.add_ticket_comment(ticket_id, reply_body, public=True)
    logger.info("Reply posted to Zendesk ticket %s (%d chars)", ticket_id, len(reply_body))

    return ZendeskReplyResponse(
        ticket_id=ticket_id,
        comment_id=comment.get("id"),
        reply_body=reply_body,
        ticket_link=client.ticket_link(ticket_id),
        ticket=TicketSummary(
            id=str(updated.get("id", ticket_id)),
            subject=updated.get("subject") or ticket.get("subject") or "",
            status=updated.get("status") or "",
            priority=updated.get("priority"),
        ),
    )


async def generate_intercom_reply(
    ticket_id: str,
    custom_instructions: Optional[str] = None,
) -> IntercomReplyResponse:
    client = get_intercom_client()
    ticket = await client.get_ticket(ticket_id)
    attributes = ticket.get("ticket_attributes") or {}
    subject = attributes.get("_default_title_") or "Untitled"
    state = ticket.get("ticket_state") or ticket.get("state") or ""
    logger.info("Generating reply for Intercom ticket %s (%s)", ticket_id, state)

    system_prompt = INTERCOM_SYSTEM_PROMPT.format(
        subject=subject,
        description=attributes.get("_default_description_") or "",
        status=state,
        instructions=_instructions_block(custom_instructions),
    )
    reply_body = await generate_text(
        "Write the support ticket reply now. Output ONLY the reply text with no additional commentary.",
        system_prompt=system_prompt,
        temperature=REPLY_TEMPERATURE,
    )

    admins = await client.get_admins()
    admin_id = str(admins[0]["id"]) if admins else None
    await client.add_ticket_comment(ticket_id, reply_body, admin_id=admin_id)
    logger.info("Reply posted to Intercom ticket %s (%d chars)", ticket_id, len(reply_body))

    return IntercomReplyResponse(
        ticket_id=ticket_id,
        reply_body=reply_body,
        ticket_link=client.ticket_link(ticket_id),
        ticket=TicketSummary(id=str(ticket.get("id", ticket_id)), subject=subject, status=state),
    )
