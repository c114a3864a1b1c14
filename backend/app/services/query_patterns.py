"""Pattern library mapping natural-language support requests to desk operations."""

import re
from dataclasses import dataclass
from typing import List, Optional

_I = re.IGNORECASE


@dataclass(frozen=True)
class QueryPattern:
    category: str
    operation: str
    patterns: tuple
    description: str
    requires_context: bool = False
    requires_confirmation: bool = False

    def matches(self, query: str) -> bool:
        return any(p.search(query) for p in self.patterns)


def _compile(*sources: str, flags: int = _I) -> tuple:
    return tuple(re.compile(s, flags) for s in sources)


QUERY_PATTERNS: List[QueryPattern] = [
    # Retrieval
    QueryPattern(
        "retrieval", "list_tickets",
        _compile(
            r"\b(show|list|display|get|view|find)\s+(all\s+)?(my\s+)?(tickets?|issues?)\b",
            r"\b(what|which)\s+tickets?\b",
            r"\btop\s+\d+\s+tickets?\b",
            r"\b(recent|latest|newest)\s+tickets?\b",
        ),
        "List all tickets or recent tickets",
    ),
    QueryPattern(
        "retrieval", "get_ticket_by_id",
        (
            *_compile(
                r"\b(show|display|get|view|find|open)\s+(ticket\s*)?#?(\d+)\b",
                r"\bticket\s*#?(\d+)\b",
            ),
            re.compile(r"(?<!\w)#(\d+)\b"),
        ),
        "Get specific ticket by ID (e.g., 'show ticket #473')",
    ),
    QueryPattern(
        "retrieval", "search_tickets",
        _compile(
            r"\b(search|find|filter|lookup|query)\s+(for\s+)?(tickets?|issues?)\b",
            r"\btickets?\s+(with|containing|about|regarding|matching)\b",
            r"\b(high|urgent|low|normal)\s+priority\s+tickets?\b",
            r"\b(open|closed|pending|solved|new)\s+tickets?\b",
        ),
        "Search tickets with filters or keywords",
    ),
    QueryPattern(
        "retrieval", "count_tickets",
        _compile(
            r"\bhow many\s+(total\s+)?(tickets?|issues?)\b",
            r"\b(ticket|issue)\s+count\b",
            r"\bnumber of\s+tickets?\b",
            r"\bcount\s+(all\s+)?(tickets?|issues?)\b",
        ),
        "Get total ticket count",
    ),
    # Status
    QueryPattern(
        "status", "update_status",
        _compile(
            r"\b(close|solve|resolve|finish|complete)\s+(the\s+)?(\w+\s+)?(ticket|issue)\b",
            r"\b(mark|set|update|change)\s+(as|to|status)\s+(closed|solved|open|pending|new)\b",
            r"\b(reopen|re-open)\s+(the\s+)?(\w+\s+)?(ticket|issue)\b",
            r"\b(mark|set)\s+(the\s+)?(\w+\s+)?(ticket|issue|it)\s+(as|to)\s+(closed|solved|resolved|open|pending|new)\b",
            r"\bset\s+status\s+(to|as)\s+\w+",
            r"\bstatus\s+(to|is|should be)\s+\w+",
        ),
        "Update ticket status (close, solve, reopen, etc.)",
        requires_context=True,
    ),
    # Priority
    QueryPattern(
        "priority", "update_priority",
        _compile(
            r"\b(set|change|update|mark)\s+(priority|importance|urgency)\s+(to|as)\s+(urgent|high|normal|low)\b",
            r"\b(make|mark)\s+(it\s+)?(urgent|high|normal|low)\s+priority\b",
            r"\bpriority\s+(to|is|should be)\s+(urgent|high|normal|low)\b",
            r"\b(escalate|raise|increase|bump)\s+priority\b",
            r"\b(de-escalate|lower|decrease|reduce)\s+priority\b",
        ),
        "Update ticket priority level",
        requires_context=True,
    ),
    # Creation
    QueryPattern(
        "creation", "create_ticket",
        _compile(
            r"\b(create|make|open|submit|new)\s+(a\s+)?(ticket|issue)\b",
            r"\b(file|log|report)\s+(a\s+)?(ticket|issue|bug|problem)\b",
            r"\bnew\s+(support\s+)?(ticket|issue|request)\b",
        ),
        "Create a new ticket",
    ),
    # Deletion
    QueryPattern(
        "deletion", "delete_ticket",
        _compile(
            r"\b(delete|remove|trash)\s+(the\s+)?(\w+\s+)?(ticket|issue)\b",
            r"\b(get rid of|discard)\s+(the\s+)?(ticket|issue)\b",
        ),
        "Delete ticket (soft delete, recoverable)",
        requires_context=True,
        requires_confirmation=True,
    ),
    QueryPattern(
        "deletion", "mark_spam",
        _compile(
            r"\b(mark|flag|label)\s+(as\s+)?spam\b",
            r"\b(spam|junk)\s+(ticket|this)\b",
            r"\bis\s+spam\b",
        ),
        "Mark ticket as spam (suspends requester)",
        requires_context=True,
        requires_confirmation=True,
    ),
    QueryPattern(
        "deletion", "restore_ticket",
        _compile(
            r"\b(restore|recover|undelete|bring back)\s+(the\s+)?(ticket|issue)\b",
            r"\bundelete\s+ticket\b",
        ),
        "Restore deleted ticket",
    ),
    # Merge
    QueryPattern(
        "merge", "merge_tickets",
        _compile(
            r"\b(merge|combine|consolidate)\s+(tickets?|issues?)\b",
            r"\bmerge\s+#?\d+\s+(into|with|to)\s+#?\d+",
            r"\bcombine\s+(multiple\s+)?tickets?\b",
        ),
        "Merge multiple tickets into one",
        requires_context=True,
        requires_confirmation=True,
    ),
    # Assignment
    QueryPattern(
        "assignment", "assign_ticket",
        _compile(
            r"\b(assign|give|delegate|hand|transfer)\s+(to|ticket to)\b",
            r"\b(assign|reassign)\s+(the\s+)?(\w+\s+)?(ticket|issue|conversation)\s+to\b",
            r"\bset\s+assignee\s+(to|as)\b",
            r"\bmake\s+\w+\s+(the\s+)?assignee\b",
            r"\b(assignee|assigned to)\s+(is|should be)\b",
        ),
        "Assign ticket to an agent",
        requires_context=True,
    ),
    QueryPattern(
        "assignment", "assign_to_group",
        _compile(
            r"\bassign\s+to\s+(the\s+)?(\w+\s+)?group\b",
            r"\bset\s+group\s+(to|as)\b",
            r"\bmove\s+to\s+(\w+\s+)?group\b",
        ),
        "Assign ticket to an agent group",
        requires_context=True,
    ),
    # Tags
    QueryPattern(
        "tags", "add_tags",
        _compile(
            r"\b(add|attach|apply|include)\s+(the\s+)?(tag|label)s?\b",
            r"\btag\s+(with|as)\b",
            r"\b(label|tag)\s+(it|this|that)\s+(as|with)\b",
        ),
        "Add tags to ticket",
        requires_context=True,
    ),
    QueryPattern(
        "tags", "remove_tags",
        _compile(
            r"\b(remove|delete|untag|clear)\s+(the\s+)?(tag|label)s?\b",
            r"\bremove\s+tag\b",
        ),
        "Remove tags from ticket",
        requires_context=True,
    ),
    # Collaboration
    QueryPattern(
        "collaboration", "add_cc",
        _compile(
            r"\b(add|include|cc)\s+(user|email|person|someone)\b",
            r"\bcc\s+\w+@\w+",
            r"\badd\s+collaborator\b",
        ),
        "Add CC (collaborator) to ticket",
        requires_context=True,
    ),
    QueryPattern(
        "collaboration", "remove_cc",
        _compile(
            r"\b(remove|delete)\s+(cc|collaborator)\b",
            r"\buncc\s",
            r"\bremove\s+\w+@\w+\s+from\s+(cc|collaborators?)",
        ),
        "Remove CC from ticket",
        requires_context=True,
    ),
    # Reply
    QueryPattern(
        "reply", "generate_reply",
        _compile(
            r"\b(build|create|generate|write|compose|draft)\s+(a\s+)?(reply|response|answer|message)\b",
            r"\b(send|post)\s+(a\s+)?(reply|response|comment)\b",
            r"\breply\s+to\s+(ticket|this|that)\b",
            r"\brespond\s+to\s+(ticket|customer|user)\b",
            r"\banswer\s+(the\s+)?(ticket|customer|user|question)\b",
        ),
        "Generate and post AI reply to ticket",
        requires_context=True,
    ),
    # Analytics
    QueryPattern(
        "analytics", "status_breakdown",
        _compile(
            r"\b(status|ticket)\s+(breakdown|summary|distribution|stats|statistics)\b",
            r"\bhow many\s+(tickets?\s+are\s+)?(open|closed|pending|solved|new)\b",
            r"\bcount\s+by\s+status\b",
            r"\b(show|display|get)\s+ticket\s+stats\b",
        ),
        "Get ticket status breakdown and statistics",
    ),
    QueryPattern(
        "analytics", "priority_breakdown",
        _compile(
            r"\bpriority\s+(breakdown|summary|distribution|stats)\b",
            r"\bhow many\s+(urgent|high|normal|low)\s+priority\b",
            r"\bcount\s+by\s+priority\b",
        ),
        "Get ticket priority breakdown",
    ),
    QueryPattern(
        "analytics", "age_analysis",
        _compile(
            r"\b(old|oldest|aging|stale)\s+tickets?\b",
            r"\btickets?\s+older than\b",
            r"\b(age|aging)\s+(analysis|report|breakdown)\b",
            r"\bhow long\s+have\s+tickets\s+been\s+open\b",
        ),
        "Analyze ticket age and aging patterns",
    ),
    # Organizations and users
    QueryPattern(
        "organization", "list_organizations",
        _compile(
            r"\b(show|list|display|get)\s+(all\s+)?(organizations?|orgs?|companies)\b",
            r"\b(show|list|display|get)\s+(all\s+)?teams?\b",
            r"\bwhat\s+organizations?\b",
        ),
        "List organizations or teams",
    ),
    QueryPattern(
        "organization", "org_tickets",
        _compile(
            r"\b(tickets?\s+for|from)\s+(the\s+)?organization\b",
            r"\borganization'?s?\s+tickets?\b",
            r"\ball\s+\w+\s+tickets?\b",
        ),
        "Get all tickets for an organization",
    ),
    QueryPattern(
        "users", "list_users",
        _compile(
            r"\b(show|list|display|get)\s+(all\s+)?(users?|agents?|people)\b",
            r"\bwho\s+(are|is)\s+(the\s+)?(users?|agents?)\b",
        ),
        "List users or agents",
    ),
    QueryPattern(
        "users", "user_tickets",
        _compile(
            r"\b(tickets?\s+for|from|by)\s+(\w+|user|agent)\b",
            r"\b(\w+)'?s?\s+tickets?\b",
            r"\btickets?\s+assigned to\s+\w+",
            r"\btickets?\s+requested by\s+\w+",
        ),
        "Get tickets for specific user",
    ),
    # System
    QueryPattern(
        "system", "refresh",
        _compile(
            r"\b(refresh|reload|update|sync|fetch|pull)\s+(data|cache|tickets?|all)?\b",
            r"\bget\s+latest\s+(data|tickets?)\b",
            r"\bupdate\s+cache\b",
        ),
        "Refresh ticket cache from the help desk",
    ),
    QueryPattern(
        "system", "help",
        _compile(
            r"\b(help|commands?|guide|how|usage|instructions?)\b",
            r"\bwhat can (you|I)\b",
            r"\bavailable\s+(commands?|operations?|features?)\b",
        ),
        "Show help and available commands",
    ),
    # Bulk
    QueryPattern(
        "bulk", "bulk_update",
        _compile(
            r"\b(update|change|modify)\s+(all|multiple|many|these|those)\s+tickets?\b",
            r"\bbulk\s+(update|change|modify)\b",
            r"\b(close|solve|delete)\s+(all|multiple|many)\b",
        ),
        "Bulk update multiple tickets",
        requires_context=True,
        requires_confirmation=True,
    ),
    QueryPattern(
        "bulk", "bulk_assign",
        _compile(
            r"\bassign\s+(all|multiple|many|these|those)\s+(to|tickets)\b",
            r"\bbulk\s+assign\b",
            r"\bmove\s+(all|multiple|many)\s+to\s+\w+",
        ),
        "Bulk assign multiple tickets",
        requires_context=True,
        requires_confirmation=True,
    ),
]

# ── Extractors ───────────────────────────────────────────────────────

_TICKET_ID_RE = re.compile(r"(?:\bticket\s*#?|(?<!\w)#)(\d+)\b", _I)

# Verbs come before bare status words: "reopen the closed ticket" means open.
_STATUS_KEYWORDS = {
    "reopen": "open",
    "re-open": "open",
    "close": "closed",
    "solve": "solved",
    "resolve": "solved",
    "closed": "closed",
    "solved": "solved",
    "resolved": "solved",
    "open": "open",
    "pending": "pending",
    "hold": "hold",
    "new": "new",
}

_STATUS_TARGET_RE = re.compile(r"\b(?:as|to)\s+([\w-]+)", _I)

_PRIORITIES = ("urgent", "high", "normal", "low")

_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

ORDINALS = {
    "first": 0,
    "1st": 0,
    "second": 1,
    "2nd": 1,
    "third": 2,
    "3rd": 2,
    "fourth": 3,
    "4th": 3,
    "fifth": 4,
    "5th": 4,
}

_ORDINAL_RE = re.compile(r"\b(" + "|".join(ORDINALS) + r")\b", _I)
_LIST_COUNT_RE = re.compile(r"\b(top|first|show|list)\s+(\d+)\s+tickets?\b", _I)

DEFAULT_LIST_COUNT = 5


def extract_ticket_id(query: str) -> Optional[int]:
    """Explicit ticket reference, e.g. 'ticket #473' or '#473'."""
    match = _TICKET_ID_RE.search(query)
    return int(match.group(1)) if match else None


def extract_ticket_ids(query: str) -> List[int]:
    return [int(m.group(1)) for m in _TICKET_ID_RE.finditer(query)]


def extract_status(query: str) -> Optional[str]:
    """Target status of an update. "as X" or "to X" wins, then verbs, then bare status words."""
    for match in _STATUS_TARGET_RE.finditer(query):
        status = _STATUS_KEYWORDS.get(match.group(1).lower())
        if status:
            return status
    for keyword, status in _STATUS_KEYWORDS.items():
        if re.search(rf"\b{re.escape(keyword)}\b", query, _I):
            return status
    return None


def extract_priority(query: str) -> Optional[str]:
    for priority in _PRIORITIES:
        if re.search(rf"\b{priority}\b", query, _I):
            return priority
    return None


def extract_emails(query: str) -> List[str]:
    return _EMAIL_RE.findall(query)


def extract_tags(query: str) -> List[str]:
    """Tags named after 'tag'/'label', quoted or as a single word."""
    quoted = re.search(r"(tag|label)s?\s+(as\s+|with\s+)?[\"']([^\"']+)[\"']", query, _I)
    if quoted:
        return [quoted.group(3)]

    listed = re.search(r"(tag|label)s?\s+(as\s+|with\s+)?([\w-]+(?:\s*,\s*[\w-]+)+)", query, _I)
    if listed:
        return [tag.strip() for tag in listed.group(3).split(",")]

    simple = re.search(r"(tag|label)s?\s+(as\s+|with\s+)?([\w-]+)", query, _I)
    if simple:
        return [simple.group(3)]
    return []


def extract_ticket_index(query: str) -> Optional[int]:
    """Zero-based position from an ordinal ('the second ticket' -> 1)."""
    match = _ORDINAL_RE.search(query)
    return ORDINALS[match.group(1).lower()] if match else None


def extract_list_count(query: str, default: int = DEFAULT_LIST_COUNT) -> int:
    match = _LIST_COUNT_RE.search(query)
    return int(match.group(2)) if match else default


def match_query(query: str) -> List[QueryPattern]:
    return [pattern for pattern in QUERY_PATTERNS if pattern.matches(query)]


def get_best_match(query: str) -> Optional[QueryPattern]:
    """Reply requests win, then ticket operations, then explicit ticket
    lookups, then the first match.

    'close ticket #5' is an operation on ticket 5, not a lookup of it.
    """
    matches = match_query(query)
    if not matches:
        return None

    for pattern in matches:
        if pattern.operation == "generate_reply":
            return pattern

    for pattern in matches:
        if pattern.requires_context:
            return pattern

    for pattern in matches:
        if pattern.operation == "get_ticket_by_id" and extract_ticket_id(query) is not None:
            return pattern

    return matches[0]
