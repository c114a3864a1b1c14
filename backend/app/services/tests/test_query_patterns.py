import pytest

from app.services.query_patterns import (
    QUERY_PATTERNS,
    extract_emails,
    extract_list_count,
    extract_priority,
    extract_status,
    extract_tags,
    extract_ticket_id,
    extract_ticket_ids,
    extract_ticket_index,
    get_best_match,
    match_query,
)


@pytest.mark.parametrize(
    "query, operation",
    [
        ("show ticket #473", "get_ticket_by_id"),
        ("write a reply to the second ticket", "generate_reply"),
        ("close the ticket", "update_status"),
        ("close the first ticket", "update_status"),
        ("mark second ticket as solved", "update_status"),
        ("close ticket #5", "update_status"),
        ("delete the second ticket", "delete_ticket"),
        ("set priority to urgent", "update_priority"),
        ("delete the ticket", "delete_ticket"),
        ("merge tickets 4 and 5", "merge_tickets"),
        ("show all tickets", "list_tickets"),
        ("how many tickets", "count_tickets"),
        ("assign the first ticket to sam@example.com", "assign_ticket"),
        ("reassign the second ticket to Sam", "assign_ticket"),
        ("list agents", "list_users"),
        ("show teams", "list_organizations"),
    ],
)
def test_best_match(query, operation):
    assert get_best_match(query).operation == operation


def test_no_match():
    assert get_best_match("xyzzy") is None
    assert match_query("xyzzy") == []


def test_reply_beats_other_matches():
    query = "draft a reply for ticket #12"
    operations = [p.operation for p in match_query(query)]
    assert "get_ticket_by_id" in operations
    assert get_best_match(query).operation == "generate_reply"


def test_destructive_operations_need_confirmation():
    destructive = {p.operation for p in QUERY_PATTERNS if p.requires_confirmation}
    assert destructive == {"delete_ticket", "mark_spam", "merge_tickets", "bulk_update", "bulk_assign"}


class TestExtractors:
    def test_ticket_ids(self):
        assert extract_ticket_id("look at ticket #473 please") == 473
        assert extract_ticket_id("what about #12") == 12
        assert extract_ticket_id("ticket 88") == 88
        assert extract_ticket_id("top 5 tickets") is None
        assert extract_ticket_ids("merge #4 into ticket #9") == [4, 9]

    def test_status(self):
        assert extract_status("close the first ticket") == "closed"
        assert extract_status("mark as resolved") == "solved"
        assert extract_status("reopen it") == "open"
        assert extract_status("put it on hold") == "hold"
        assert extract_status("do something") is None

    @pytest.mark.parametrize(
        "query, status",
        [
            ("reopen the closed ticket", "open"),
            ("close the open ticket", "closed"),
            ("mark the closed ticket as open", "open"),
            ("set status to pending for the new ticket", "pending"),
        ],
    )
    def test_status_prefers_the_requested_change(self, query, status):
        assert extract_status(query) == status

    def test_priority(self):
        assert extract_priority("set priority to URGENT") == "urgent"
        assert extract_priority("make it low priority") == "low"
        assert extract_priority("nothing here") is None

    def test_emails(self):
        assert extract_emails("cc jo@example.com and ana@acme.io") == ["jo@example.com", "ana@acme.io"]

    def test_tags(self):
        assert extract_tags('tag as "needs review"') == ["needs review"]
        assert extract_tags("add tags billing, vip") == ["billing", "vip"]
        assert extract_tags("tag with urgent") == ["urgent"]
        assert extract_tags("nothing to see") == []

    def test_ordinals(self):
        assert extract_ticket_index("reply to the first ticket") == 0
        assert extract_ticket_index("close the 3rd one") == 2
        assert extract_ticket_index("close it") is None

    def test_list_count(self):
        assert extract_list_count("show top 3 tickets") == 3
        assert extract_list_count("list 12 tickets") == 12
        assert extract_list_count("latest tickets") == 5
