"""Terminal query handling for the Zendesk and Intercom desks.

A query is tried against, in order: system commands (refresh, help), small
talk, ticket operations on tickets from the previous answer, instant answers
from the cached snapshot, and finally the LLM with the full cached context.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..core.llm import generate_text
from ..integrations.intercom import get_intercom_client
from ..integrations.zendesk import get_zendesk_client
from ..schemas.cache import QuerySource, RefreshResult
from ..schemas.common import TicketSummary
from ..schemas.query import QueryContext, QueryResponse
from .ai_context import AIContext
from .conversation_cache import load_conversation_cache, refresh_conversation_cache
from .desk_summary import Desk, DeskSummary, from_intercom, from_zendesk
from .query_classifier import classify_query
from .query_history import QueryHistoryStore
from .query_patterns import (
    QueryPattern,
    extract_emails,
    extract_list_count,
    extract_priority,
    extract_status,
    extract_ticket_id,
    extract_ticket_index,
    get_best_match,
)
from .reply_service import generate_intercom_reply, generate_zendesk_reply
from .ticket_cache import load_ticket_cache, refresh_ticket_cache

logger = logging.getLogger(__name__)

LABELS = {"zendesk": "Zendesk", "intercom": "Intercom"}

AI_TEMPERATURE = 0.7
AI_CONFIDENCE = 0.85
REPLY_PREVIEW_CHARS = 300

REFRESH_RE = re.compile(r"^(refresh|update|sync|reload|fetch|pull)\b", re.I)
HELP_RE = re.compile(r"^(help|commands|what can|how do|available|guide)\b", re.I)
TICKET_LIST_RE = re.compile(
    r"\b(show|list|display|top|recent|latest|first)\s+\d*\s*(tickets?|issues?)\b", re.I
)

_GREETING_RE = re.compile(r"^(hi|hello|hey|good morning|good afternoon|good evening|greetings)\b", re.I)
_HOW_ARE_YOU_RE = re.compile(r"\b(how are you|how do you feel|what's up|how's it going)\b", re.I)
_THANKS_RE = re.compile(r"\b(thank you|thanks)\b", re.I)
_BYE_RE = re.compile(r"\b(bye|goodbye|see you|farewell)\b", re.I)
_WEATHER_RE = re.compile(r"\b(weather|temperature|rain|sunny|forecast|snow)\b", re.I)
_TIME_RE = re.compile(r"\b(what time|what day|what date|current time|today's date)\b", re.I)

GENERAL_CONVERSATION = [
    _WEATHER_RE,
    _HOW_ARE_YOU_RE,
    _TIME_RE,
    re.compile(r"^(who is|what is|where is|when is|why is|define|explain|tell me about)\b", re.I),
    _GREETING_RE,
    _THANKS_RE,
    _BYE_RE,
    re.compile(r"\b(joke|story|fun fact|random|sing)\b", re.I),
]

# Queries that mention tickets are never small talk ("what is the oldest ticket?").
_DESK_NOUN_RE = re.compile(r"\b(tickets?|issues?|conversations?|priority|status|cache)\b", re.I)

_ESCALATE_RE = re.compile(r"\b(escalate|raise|increase|bump)\b", re.I)
_DEESCALATE_RE = re.compile(r"\b(de-escalate|lower|decrease|reduce)\b", re.I)

# Zendesk statuses onto Intercom ticket states.
INTERCOM_TICKET_STATES = {
    "new": "submitted",
    "open": "in_progress",
    "pending": "waiting_on_customer",
    "hold": "waiting_on_customer",
    "solved": "resolved",
    "closed": "resolved",
}

CONTEXT_OPERATIONS = ("generate_reply", "update_status", "update_priority", "assign_ticket")
DIRECTORY_OPERATIONS = ("list_users", "list_organizations")

MAX_LISTED = 20

_ASSIGNEE_NAME_RE = re.compile(r"\bto\s+([\w .'-]+?)[\s.!?]*$", re.I)


@dataclass
class _Answer:
    answer: str
    source: QuerySource
    confidence: float
    tickets: Optional[List[Dict[str, Any]]] = None


def is_general_conversation(query: str) -> bool:
    if _DESK_NOUN_RE.search(query):
        return False
    return any(pattern.search(query) for pattern in GENERAL_CONVERSATION)


def general_response(query: str, label: str, now: Optional[datetime] = None) -> str:
    if _GREETING_RE.search(query):
        return (
            f"Greetings. I'm your {label} Intelligence Assistant, here to help you "
            "analyze and manage your support tickets.\n\n"
            f"How may I assist you with your {label} data today?"
        )
    if _HOW_ARE_YOU_RE.search(query):
        return (
            "I'm operating smoothly and ready to serve. All systems are functioning "
            f"within normal parameters.\n\nWhat would you like to know about your {label} tickets?"
        )
    if _THANKS_RE.search(query):
        return (
            "You're welcome. It's my purpose to assist you with clarity and precision.\n\n"
            "Is there anything else you'd like to know about your tickets?"
        )
    if _BYE_RE.search(query):
        return (
            "Until next time. Your support data will be here when you return.\n\n"
            "Type 'help' anytime to see what I can do."
        )
    if _WEATHER_RE.search(query):
        return (
            f"I'm specialized in {label} support analytics and don't have access to "
            "weather data. For weather information, I recommend checking weather.com "
            "or your local forecast service.\n\n"
            "Is there anything about your support tickets I can help with?"
        )
    if _TIME_RE.search(query):
        now = now or datetime.now()
        return (
            f"The current time is {now:%I:%M %p} on {now:%A, %B %d, %Y}.\n\n"
            f"Would you like to see tickets created today?"
        )
    return (
        f"I appreciate your curiosity, but my expertise is in analyzing {label} support data. "
        "I can help you with ticket statistics, trends, and insights.\n\n"
        "Try asking:\n"
        '• "How many tickets are open?"\n'
        '• "Show me high priority tickets"\n'
        '• "What are the most common issues?"\n\n'
        "Or type 'help' for a complete guide."
    )


def help_text(label: str) -> str:
    title = f"{label.upper()} INTELLIGENCE TERMINAL - HELP"
    return f"""**{title}**

**QUICK START**
Ask questions in plain English about your {label} tickets. Counts come straight
from the local cache; anything that needs reading tickets goes to the AI.

**Status & Counts**
• "How many tickets are open?"
• "How many tickets in total?"
• "Status breakdown"

**Priority Analysis**
• "How many urgent tickets?"
• "Priority breakdown"

**Time-Based Queries**
• "Tickets created today"
• "Tickets from the last 7 days"
• "How many old tickets?"

**Content Search (AI-Powered)**
• "Which tickets mention billing?"
• "What are the most common issues?"
• "Which tickets need attention?"

**Ticket Actions**
• "Show top 5 tickets", then "write a reply to the second ticket"
• "Close the first ticket"
• "Set priority to high for the third ticket"
• "Assign the first ticket to sam@example.com"

**Team Directory**
• "List agents"
• "Show teams" or "list organizations"

**System Commands**
• refresh / update - sync the cache with {label}
• help - show this guide

**PRO TIPS**
• Refresh after large changes in {label} so counts stay accurate
• Ask follow-up questions; recent answers are remembered

**EXAMPLES TO TRY**
• "Show me the latest tickets"
• "Analyze the urgent tickets and suggest next steps\""""


def format_stats(summary: DeskSummary) -> str:
    lines = ["TICKET STATISTICS", "=================", "", "BY STATUS:"]
    lines += [f"  {status.ljust(12)} {count}" for status, count in summary.by_status.items()]
    lines += ["", "BY PRIORITY:"]
    lines += [f"  {priority.ljust(12)} {count}" for priority, count in summary.by_priority.items()]

    age = summary.by_age
    lines += [
        "",
        "BY AGE:",
        f"  {'< 24 hours'.ljust(12)} {age.less_than_24h}",
        f"  {'< 7 days'.ljust(12)} {age.less_than_7d}",
        f"  {'< 30 days'.ljust(12)} {age.less_than_30d}",
        f"  {'> 30 days'.ljust(12)} {age.older_than_30d}",
        "",
        f"LAST UPDATED: {summary.last_updated}",
        f"TOTAL TICKETS: {summary.total}",
    ]
    if summary.conversation_count:
        lines.append(f"TOTAL CONVERSATIONS: {summary.conversation_count}")
    return "\n".join(lines)


def requested_priority(query: str) -> Optional[str]:
    """Direction words decide over any level they mention ("lower the urgent one")."""
    if _DEESCALATE_RE.search(query):
        return "low"
    if _ESCALATE_RE.search(query):
        return "high"
    return extract_priority(query)


def find_assignee(query: str, agents: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Pick the agent a query names, by email or by full or first name."""
    emails = {email.lower() for email in extract_emails(query)}
    if emails:
        return next((a for a in agents if (a.get("email") or "").lower() in emails), None)

    match = _ASSIGNEE_NAME_RE.search(query)
    if not match:
        return None
    wanted = match.group(1).strip().lower()
    for agent in agents:
        name = (agent.get("name") or "").lower()
        if name and (name == wanted or name.split()[0] == wanted):
            return agent
    return None


def _cannot_assign(reason: str) -> str:
    return (
        f"❌ **Cannot Assign Ticket**\n\n{reason}\n\n"
        "Examples:\n"
        '• "assign the first ticket to sam@example.com"\n'
        '• "reassign the second ticket to Sam"'
    )


def _listing(title: str, total_label: str, lines: List[str]) -> str:
    answer = f"✅ **{title}**\n\n**{total_label}:** {len(lines)}\n\n" + "\n".join(lines[:MAX_LISTED])
    if len(lines) > MAX_LISTED:
        answer += f"\n\n... and {len(lines) - MAX_LISTED} more"
    return answer


def _preview(text: str) -> str:
    if len(text) <= REPLY_PREVIEW_CHARS:
        return text
    return text[:REPLY_PREVIEW_CHARS] + "..."


class SmartQueryHandler:
    """Answers terminal queries for one desk."""

    def __init__(self, desk: Desk, history: Optional[QueryHistoryStore] = None):
        self.desk = desk
        self.label = LABELS[desk]
        self.history = history or QueryHistoryStore(desk)
        self.ai_context = AIContext()

    # ── Cache access ─────────────────────────────────────────────────

    def load_summary(self) -> Optional[DeskSummary]:
        if self.desk == "zendesk":
            snapshot = load_ticket_cache()
            return from_zendesk(snapshot) if snapshot else None
        snapshot = load_conversation_cache()
        return from_intercom(snapshot) if snapshot else None

    async def refresh(self) -> RefreshResult:
        if self.desk == "zendesk":
            result = await refresh_ticket_cache()
        else:
            result = await refresh_conversation_cache()
        self.ai_context.invalidate()
        return result

    def get_quick_stats(self) -> Optional[str]:
        summary = self.load_summary()
        return format_stats(summary) if summary else None

    # ── Entry point ──────────────────────────────────────────────────

    async def handle(self, query: str, context: Optional[QueryContext] = None) -> QueryResponse:
        start = time.perf_counter()
        query = query.strip()
        try:
            result = await self._dispatch(query, context)
        except Exception as exc:
            logger.exception("%s query failed: %r", self.label, query)
            result = _Answer(
                f"❌ Error processing query\n\nError: {exc}\n\n"
                "Please try again or use 'help' for available commands.",
                "live",
                0,
            )

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "%s query answered in %dms (source: %s, confidence: %.2f)",
            self.label, elapsed_ms, result.source, result.confidence,
        )
        self.history.add_entry(query, result.answer, result.source, result.confidence)
        return QueryResponse(
            answer=result.answer,
            source=result.source,
            confidence=result.confidence,
            processing_time_ms=elapsed_ms,
            tickets=result.tickets,
        )

    async def _dispatch(self, query: str, context: Optional[QueryContext]) -> _Answer:
        if not query or HELP_RE.match(query):
            return _Answer(help_text(self.label), "cache", 1)

        if REFRESH_RE.match(query):
            return await self._refresh_answer()

        if is_general_conversation(query):
            return _Answer(general_response(query, self.label), "cache", 1)

        pattern = get_best_match(query)
        if pattern is not None:
            operation = await self._operation(pattern, query, context)
            if operation is not None:
                return operation

        summary = self.load_summary()
        classified = classify_query(query, summary)
        if classified.matched and classified.answer:
            logger.info("Instant answer from cache: %s", classified.reasoning)
            return _Answer(classified.answer, "cache", classified.confidence)

        logger.info("Falling back to AI (%s)", classified.reasoning)
        return await self._ai_answer(query, summary, context)

    async def _refresh_answer(self) -> _Answer:
        result = await self.refresh()
        if not result.success:
            return _Answer(
                f"❌ Failed to refresh cache\n\nError: {result.error}\n{result.message}",
                "cache",
                0,
            )

        if self.desk == "zendesk":
            counts = f"{result.ticket_count} tickets"
        else:
            counts = f"{result.conversation_count} conversations and {result.ticket_count} tickets"
        return _Answer(
            f"✅ Cache refreshed successfully!\n\n"
            f"Updated with {counts} from {self.label}.\nMessage: {result.message}",
            "cache",
            1,
        )

    # ── Ticket operations ────────────────────────────────────────────

    def _target(
        self, query: str, context: Optional[QueryContext]
    ) -> Tuple[Optional[TicketSummary], Optional[str]]:
        """Resolve the ticket a query refers to: explicit id first, then ordinal."""
        shown = context.last_tickets if context else []

        explicit_id = extract_ticket_id(query)
        if explicit_id is not None:
            for ticket in shown:
                if ticket.id == str(explicit_id):
                    return ticket, None
            return TicketSummary(id=str(explicit_id), subject="", status=""), None

        if not shown:
            return None, None

        index = extract_ticket_index(query) or 0
        if index >= len(shown):
            return None, (
                f"❌ Cannot find ticket at position {index + 1}.\n\n"
                f"Only {len(shown)} tickets available in context."
            )
        return shown[index], None

    async def _operation(
        self, pattern: QueryPattern, query: str, context: Optional[QueryContext]
    ) -> Optional[_Answer]:
        """Run a ticket operation, or return ``None`` to keep classifying."""
        if pattern.operation in DIRECTORY_OPERATIONS:
            return await self._directory(pattern.operation)
        if pattern.operation not in CONTEXT_OPERATIONS and not pattern.requires_confirmation:
            return None

        ticket, missing = self._target(query, context)
        if missing:
            return _Answer(missing, "cache", 0)

        if ticket is None:
            if pattern.operation == "generate_reply":
                return _Answer(
                    "❌ **No Tickets in Context**\n\n"
                    "To generate a reply, first show me some tickets:\n"
                    '• "show top 5 tickets"\n'
                    '• "list recent tickets"\n\n'
                    "Then you can say:\n"
                    '• "build a reply for the first ticket"\n'
                    '• "send a response to the second ticket"',
                    "cache",
                    1,
                )
            if pattern.operation == "assign_ticket":
                return _Answer(_cannot_assign("No tickets in context. Show some tickets first."), "cache", 0.5)
            # Without a ticket to act on, status/priority words are just a question
            return None

        if pattern.requires_confirmation:
            return self._confirmation_answer(pattern, ticket)
        if pattern.operation == "generate_reply":
            return await self._reply(ticket)
        if pattern.operation == "update_status":
            return await self._update_status(query, ticket)
        if pattern.operation == "assign_ticket":
            return await self._assign(query, ticket)
        return await self._update_priority(query, ticket)

    def _confirmation_answer(self, pattern: QueryPattern, ticket: TicketSummary) -> _Answer:
        subject = f" - {ticket.subject}" if ticket.subject else ""
        return _Answer(
            f"⚠️ **Confirmation Required**\n\n"
            f"**Operation:** {pattern.description}\n"
            f"**Ticket:** #{ticket.id}{subject}\n\n"
            f"Destructive operations are not run from the terminal. "
            f"Open the ticket in {self.label} to complete this change.",
            "cache",
            1,
        )

    async def _reply(self, ticket: TicketSummary) -> _Answer:
        logger.info("Generating reply for %s ticket #%s", self.label, ticket.id)
        try:
            if self.desk == "zendesk":
                result = await generate_zendesk_reply(int(ticket.id))
                comment_line = f"\n**Comment ID:** {result.comment_id}"
            else:
                result = await generate_intercom_reply(ticket.id)
                comment_line = ""
        except Exception as exc:
            logger.exception("Reply generation failed for ticket #%s", ticket.id)
            return _Answer(
                f"❌ **Error Generating Reply**\n\n"
                f"Failed to create reply for ticket #{ticket.id}\n\n"
                f"Error: {exc}\n\n"
                f"Please try again or check your {self.label} API connection.",
                "live",
                0,
            )

        subject = result.ticket.subject or ticket.subject
        return _Answer(
            f"✅ **Reply Generated and Posted**\n\n"
            f"**Ticket:** #{result.ticket_id} - {subject}\n\n"
            f"**Reply Preview:**\n{_preview(result.reply_body)}\n\n"
            f"**Direct Link:** {result.ticket_link}{comment_line}\n\n"
            f"The reply has been successfully posted to {self.label} "
            "and is now visible to the customer.",
            "ai",
            0.95,
        )

    async def _update_status(self, query: str, ticket: TicketSummary) -> _Answer:
        status = extract_status(query)
        if status is None:
            return _Answer(
                "❌ **Cannot Update Status**\n\n"
                "Could not determine target status from query.\n\n"
                "Examples:\n"
                '• "close the first ticket"\n'
                '• "mark second ticket as solved"\n'
                '• "set status to pending for first ticket"',
                "cache",
                0.5,
            )

        try:
            if self.desk == "zendesk":
                client = get_zendesk_client()
                updated = await client.update_ticket(int(ticket.id), {"status": status})
                new_status = updated.get("status") or status
                link = client.ticket_link(int(ticket.id))
            else:
                intercom = get_intercom_client()
                state = INTERCOM_TICKET_STATES[status]
                updated = await intercom.update_ticket(ticket.id, {"state": state})
                new_status = updated.get("ticket_state") or updated.get("state") or state
                link = intercom.ticket_link(ticket.id)
        except Exception as exc:
            logger.exception("Status update failed for ticket #%s", ticket.id)
            return _Answer(
                f"❌ **Error Updating Status**\n\n"
                f"Failed to update ticket #{ticket.id}\n\n"
                f"Error: {exc}\n\n"
                f"Please check your {self.label} API connection.",
                "live",
                0,
            )

        subject = f" - {ticket.subject}" if ticket.subject else ""
        return _Answer(
            f"✅ **Status Updated Successfully**\n\n"
            f"**Ticket:** #{ticket.id}{subject}\n"
            f"**Previous Status:** {ticket.status or 'unknown'}\n"
            f"**New Status:** {new_status}\n\n"
            f"**Direct Link:** {link}\n\n"
            f"The ticket status has been updated in {self.label}.",
            "live",
            0.95,
        )

    async def _update_priority(self, query: str, ticket: TicketSummary) -> _Answer:
        priority = requested_priority(query)
        if priority is None:
            return _Answer(
                "❌ **Cannot Update Priority**\n\n"
                "Could not determine target priority (urgent/high/normal/low).\n\n"
                "Examples:\n"
                '• "set priority to high for first ticket"\n'
                '• "change priority to urgent"',
                "cache",
                0.5,
            )

        try:
            if self.desk == "zendesk":
                client = get_zendesk_client()
                updated = await client.update_ticket(int(ticket.id), {"priority": priority})
                new_priority = updated.get("priority") or priority
                link = client.ticket_link(int(ticket.id))
            else:
                # Intercom only knows priority / not priority
                intercom = get_intercom_client()
                flagged = priority in ("urgent", "high")
                await intercom.update_conversation(
                    ticket.id, {"priority": "priority" if flagged else "not_priority"}
                )
                new_priority = "high" if flagged else "normal"
                link = intercom.ticket_link(ticket.id)
        except Exception as exc:
            logger.exception("Priority update failed for ticket #%s", ticket.id)
            return _Answer(
                f"❌ **Error Updating Priority**\n\n"
                f"Failed to update ticket #{ticket.id}\n\n"
                f"Error: {exc}",
                "live",
                0,
            )

        return _Answer(
            f"✅ **Priority Updated**\n\n"
            f"**Ticket:** #{ticket.id}\n"
            f"**Previous:** {ticket.priority or 'none'}\n"
            f"**New:** {new_priority}\n\n"
            f"**Direct Link:** {link}",
            "live",
            0.95,
        )

    async def _assign(self, query: str, ticket: TicketSummary) -> _Answer:
        try:
            if self.desk == "zendesk":
                client = get_zendesk_client()
                agent = find_assignee(query, await client.get_users(role="agent"))
                if agent is None:
                    return _Answer(_cannot_assign("Could not find that agent in Zendesk."), "cache", 0.5)
                await client.update_ticket(int(ticket.id), {"assignee_id": agent["id"]})
                link = client.ticket_link(int(ticket.id))
            else:
                intercom = get_intercom_client()
                agent = find_assignee(query, await intercom.get_admins())
                if agent is None:
                    return _Answer(_cannot_assign("Could not find that admin in Intercom."), "cache", 0.5)
                await intercom.update_conversation(ticket.id, {"admin_assignee_id": agent["id"]})
                link = intercom.ticket_link(ticket.id)
        except Exception as exc:
            logger.exception("Assignment failed for ticket #%s", ticket.id)
            return _Answer(
                f"❌ **Error Assigning Ticket**\n\n"
                f"Failed to assign ticket #{ticket.id}\n\n"
                f"Error: {exc}\n\n"
                f"Please check your {self.label} API connection.",
                "live",
                0,
            )

        subject = f" - {ticket.subject}" if ticket.subject else ""
        email = f" ({agent['email']})" if agent.get("email") else ""
        return _Answer(
            f"✅ **Ticket Assigned**\n\n"
            f"**Ticket:** #{ticket.id}{subject}\n"
            f"**Assigned To:** {agent.get('name') or agent['id']}{email}\n\n"
            f"**Direct Link:** {link}",
            "live",
            0.95,
        )

    async def _directory(self, operation: str) -> _Answer:
        """List the people or groups tickets can be handed to."""
        try:
            if self.desk == "zendesk":
                client = get_zendesk_client()
                if operation == "list_users":
                    agents = await client.get_users(role="agent")
                    lines = [f"  • {u.get('name')} ({u.get('email')}) - {u.get('role') or 'agent'}" for u in agents]
                    answer = _listing("Agents", "Total Agents", lines)
                else:
                    orgs = await client.get_organizations()
                    lines = [f"  • {o.get('name')} (ID: {o.get('id')})" for o in orgs]
                    answer = _listing("Organizations", "Total Organizations", lines)
            else:
                intercom = get_intercom_client()
                if operation == "list_users":
                    admins = await intercom.get_admins()
                    lines = []
                    for admin in admins:
                        status = "🌙 Away" if admin.get("away_mode_enabled") else "✓ Active"
                        job_title = f" - {admin['job_title']}" if admin.get("job_title") else ""
                        lines.append(f"  • {admin.get('name')} ({admin.get('email')}){job_title} {status}")
                    answer = _listing("Admins & Team Members", "Total Admins", lines)
                    answer += "\n\n✓ Active  🌙 Away Mode"
                else:
                    teams = await intercom.get_teams()
                    lines = [f"  • {t.get('name')} ({len(t.get('admin_ids') or [])} admins)" for t in teams]
                    answer = _listing("Teams", "Total Teams", lines)
        except Exception as exc:
            logger.exception("%s directory lookup failed", self.label)
            return _Answer(
                f"❌ **Error Listing {'Users' if operation == 'list_users' else 'Groups'}**\n\n"
                f"Failed to fetch data from {self.label}.\n\n"
                f"Error: {exc}\n\n"
                f"Please check your {self.label} API connection.",
                "live",
                0,
            )
        return _Answer(answer, "live", 0.95)

    # ── AI fallback ──────────────────────────────────────────────────

    async def _ai_answer(
        self, query: str, summary: Optional[DeskSummary], context: Optional[QueryContext]
    ) -> _Answer:
        if summary is None or (not summary.tickets and not summary.conversation_count):
            return _Answer(
                f"❌ No tickets found in cache\n\nTry 'refresh' or 'update' to sync with {self.label}",
                "cache",
                0,
            )

        system_prompt = self.ai_context.build_system_prompt(
            summary, history=self.history.recent_context()
        )
        if context and context.last_tickets:
            shown = "\n".join(
                f"{i}. Ticket #{t.id}: {t.subject} ({t.status}, {t.priority or 'none'})"
                for i, t in enumerate(context.last_tickets, start=1)
            )
            system_prompt += (
                f'\n\nCONVERSATION CONTEXT:\nThe user previously asked: "{context.last_query or ""}"\n'
                f"These tickets were shown:\n{shown}"
            )

        answer = await generate_text(query, system_prompt=system_prompt, temperature=AI_TEMPERATURE)

        tickets = None
        if TICKET_LIST_RE.search(query):
            tickets = [
                {
                    "id": t.id,
                    "subject": t.subject,
                    "description": t.description,
                    "status": t.status,
                    "priority": t.priority,
                }
                for t in summary.tickets[: extract_list_count(query)]
            ]
        return _Answer(answer, "ai", AI_CONFIDENCE, tickets)


_handlers: Dict[str, SmartQueryHandler] = {}
_handlers_lock = threading.Lock()


def get_smart_query_handler(desk: Desk) -> SmartQueryHandler:
    """Get the process-wide handler for a desk (thread-safe)."""
    with _handlers_lock:
        if desk not in _handlers:
            _handlers[desk] = SmartQueryHandler(desk)
        return _handlers[desk]
