"""Shared fixtures for service tests: isolated cache dir and sample desk data."""

import copy
from datetime import UTC, datetime, timedelta

import pytest

from app.core.config import get_settings

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


def _iso(days_ago: float) -> str:
    return (NOW - timedelta(days=days_ago)).isoformat().replace("+00:00", "Z")


def _unix(days_ago: float) -> int:
    return int((NOW - timedelta(days=days_ago)).timestamp())


ZENDESK_TICKETS = [
    {
        "id": 101,
        "subject": "Cannot log in",
        "description": "Login fails right after a password reset",
        "status": "open",
        "priority": "high",
        "type": "incident",
        "created_at": _iso(0.5),
        "updated_at": _iso(0.1),
        "assignee_id": 9,
        "requester_id": 501,
        "tags": ["technical"],
    },
    {
        "id": 102,
        "subject": "Refund request",
        "description": "I was charged twice this month",
        "status": "pending",
        "priority": "urgent",
        "type": "question",
        "created_at": _iso(3),
        "tags": ["billing"],
    },
    {
        "id": 103,
        "subject": "Feature idea: dark mode",
        "description": "Please add a dark theme",
        "status": "solved",
        "priority": None,
        "type": None,
        "created_at": _iso(10),
        "tags": ["feature-request"],
    },
    {
        "id": 104,
        "subject": "Old invoice question",
        "description": "Where can I download last year's invoice?",
        "status": "closed",
        "priority": "low",
        "type": "question",
        "created_at": _iso(45),
        "tags": ["billing"],
    },
]

INTERCOM_CONVERSATIONS = [
    {
        "id": 1,
        "state": "open",
        "priority": "priority",
        "created_at": _unix(0.1),
        "updated_at": _unix(0.05),
        "admin_assignee_id": 55,
        "tags": {"tags": [{"name": "billing"}]},
        "contacts": {"contacts": [{"id": "c1"}]},
        "statistics": {"time_to_assignment": 60, "time_to_admin_reply": 120},
    },
    {
        "id": "2",
        "state": "closed",
        "priority": "not_priority",
        "created_at": _unix(10),
        "team_assignee_id": 7,
        "statistics": {"time_to_admin_reply": 240, "time_to_first_close": 3600},
    },
]

INTERCOM_TICKETS = [
    {
        "id": "t1",
        "ticket_type": {"id": 3, "name": "Bug"},
        "ticket_state": "submitted",
        "ticket_attributes": {
            "_default_title_": "App crashes",
            "_default_description_": "Crash on launch since the last update",
        },
        "created_at": _unix(0.05),
        "contacts": {"contacts": [{"id": "c1", "email": "ana@example.com"}]},
    },
    {
        "id": "t2",
        "ticket_type": {"id": 4, "name": "Question"},
        "ticket_state": "resolved",
        "ticket_attributes": {"_default_title_": None, "priority": "high"},
        "created_at": _unix(40),
        "updated_at": _unix(39),
    },
]


@pytest.fixture(autouse=True)
def _isolated_cache_dir(tmp_path, monkeypatch):
    """Point every snapshot and history file at a per-test directory."""
    monkeypatch.setenv("CACHE_DIR", str(tmp_path / "cache"))
    get_settings.cache_clear()
    yield tmp_path / "cache"
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_singletons():
    import app.services.query_interpreter as interpreter_mod
    import app.services.smart_query as smart_query_mod

    smart_query_mod._handlers.clear()
    interpreter_mod._interpreter = None
    yield
    smart_query_mod._handlers.clear()
    interpreter_mod._interpreter = None


@pytest.fixture
def cache_dir(_isolated_cache_dir):
    return _isolated_cache_dir


@pytest.fixture
def zendesk_snapshot():
    from app.services.ticket_cache import build_snapshot

    return build_snapshot(ZENDESK_TICKETS, now=NOW)


@pytest.fixture
def intercom_snapshot():
    from app.services.conversation_cache import build_snapshot

    return build_snapshot(INTERCOM_CONVERSATIONS, INTERCOM_TICKETS, now=NOW)


@pytest.fixture
def saved_zendesk_cache(zendesk_snapshot):
    from app.services import ticket_cache

    ticket_cache._store().save(zendesk_snapshot)
    return zendesk_snapshot


@pytest.fixture
def saved_intercom_cache(intercom_snapshot):
    from app.services import conversation_cache

    conversation_cache._store().save(intercom_snapshot)
    return intercom_snapshot


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def zendesk_tickets():
    return copy.deepcopy(ZENDESK_TICKETS)


@pytest.fixture
def intercom_conversations():
    return copy.deepcopy(INTERCOM_CONVERSATIONS)


@pytest.fixture
def intercom_tickets():
    return copy.deepcopy(INTERCOM_TICKETS)
