from app.services.desk_summary import from_intercom, from_zendesk


def test_zendesk_summary(zendesk_snapshot):
    summary = from_zendesk(zendesk_snapshot)

    assert summary.desk == "zendesk"
    assert summary.label == "Zendesk"
    assert summary.total == 4
    assert summary.tickets[0].id == "101"
    assert summary.tag_counts == {"technical": 1, "billing": 2, "feature-request": 1}
    assert summary.tickets_with_tag("billing") == 2
    assert summary.tickets_with_tag("vip") == 0


def test_created_within_days_is_cumulative(zendesk_snapshot):
    summary = from_zendesk(zendesk_snapshot)

    assert summary.created_within_days(1) == 1
    assert summary.created_within_days(7) == 2
    assert summary.created_within_days(30) == 3


def test_intercom_summary(intercom_snapshot, now):
    summary = from_intercom(intercom_snapshot, now=now)

    assert summary.desk == "intercom"
    assert summary.total == 2
    assert [t.subject for t in summary.tickets] == ["App crashes", "Untitled"]
    assert summary.by_status == {"submitted": 1, "resolved": 1}
    assert summary.by_priority == {"none": 1, "high": 1}
    assert summary.by_type == {"bug": 1, "question": 1}
    assert summary.by_age.less_than_24h == 1
    assert summary.by_age.older_than_30d == 1
    assert summary.conversation_count == 2
    assert summary.conversations_by_state == {"open": 1, "closed": 1}
    assert summary.tickets_with_tag("billing") == 1
