"""Tests for visitor-facing submissions."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.errors import IntercomAPIError
from app.schemas.intercom import IntercomContactRequest, IntercomConversationRequest
from app.schemas.zendesk import ZendeskContactRequest, ZendeskTicketRequest
from app.services import contact_service


@pytest.fixture
def ticket_request():
    return ZendeskTicketRequest(
        subject="Cannot export data",
        description="The CSV export button does nothing",
        requester_email="jo@example.com",
        requester_name="Jo Park",
        category="support",
        priority="high",
    )


@patch("app.services.contact_service.get_zendesk_client")
@pytest.mark.asyncio
async def test_create_zendesk_ticket(mock_get_client, ticket_request):
    client = MagicMock()
    client.create_ticket = AsyncMock(
        return_value={
            "id": 880,
            "status": "new",
            "priority": "high",
            "created_at": "2026-01-15T12:00:00Z",
            "subject": "Cannot export data",
        }
    )
    mock_get_client.return_value = client

    created = await contact_service.create_zendesk_ticket(ticket_request)

    client.create_ticket.assert_awaited_once_with(
        {
            "subject": "Cannot export data",
            "comment": {"body": "The CSV export button does nothing"},
            "requester": {"name": "Jo Park", "email": "jo@example.com"},
            "priority": "high",
            "tags": ["support", "web-form"],
        }
    )
    assert created.ticket_id == "880"
    assert created.status == "new"
    assert created.requester_email == "jo@example.com"
    assert created.message == "Ticket created successfully"


@patch("app.services.contact_service.get_zendesk_client")
@pytest.mark.asyncio
async def test_create_zendesk_ticket_fills_missing_fields(mock_get_client, ticket_request):
    client = MagicMock()
    client.create_ticket = AsyncMock(return_value={"id": 881})
    mock_get_client.return_value = client

    created = await contact_service.create_zendesk_ticket(ticket_request)

    assert created.status == "new"
    assert created.priority == "high"
    assert created.subject == "Cannot export data"
    assert created.created_at == ""


@pytest.mark.asyncio
async def test_submit_zendesk_contact():
    client = MagicMock()
    client.find_or_create_user = AsyncMock(return_value="u-1")
    client.create_conversation = AsyncMock(return_value={"id": "conv-9"})
    client.send_message = AsyncMock(return_value={})
    request = ZendeskContactRequest(name="Jo Park", email="jo@example.com", message="Call me back")

    response = await contact_service.submit_zendesk_contact(request, client=client)

    client.find_or_create_user.assert_awaited_once_with("jo@example.com", "Jo Park")
    client.create_conversation.assert_awaited_once_with(user_id="u-1")
    client.send_message.assert_awaited_once_with("conv-9", "u-1", "Call me back")
    assert response.conversation_id == "conv-9"
    assert response.user_id == "u-1"
    assert response.message == "Thank you Jo Park! Your message has been received."


class TestStartIntercomConversation:
    @pytest.fixture
    def conversation_request(self):
        return IntercomConversationRequest(
            visitor_email="ana@example.com",
            visitor_name="Ana",
            initial_message="Can I change the billing email on my account?",
            topic="support",
        )

    @patch("app.services.contact_service.get_intercom_client")
    @pytest.mark.asyncio
    async def test_creates_contact_then_conversation(self, mock_get_client, conversation_request):
        client = MagicMock()
        client.create_contact = AsyncMock(return_value="c1")
        client.create_conversation = AsyncMock(return_value={"conversation_id": "777"})
        mock_get_client.return_value = client

        created = await contact_service.start_intercom_conversation(conversation_request)

        client.create_conversation.assert_awaited_once_with("c1", "Can I change the billing email on my account?")
        assert created.contact_id == "c1"
        assert created.conversation_id == "777"
        assert created.topic == "support"
        assert created.status == "open"

    @patch("app.services.contact_service.get_intercom_client")
    @pytest.mark.asyncio
    async def test_falls_back_to_contact_id(self, mock_get_client, conversation_request):
        client = MagicMock()
        client.create_contact = AsyncMock(return_value="c1")
        client.create_conversation = AsyncMock(side_effect=IntercomAPIError(422, "Invalid body"))
        mock_get_client.return_value = client

        created = await contact_service.start_intercom_conversation(conversation_request)

        assert created.conversation_id == "c1"

    @patch("app.services.contact_service.get_intercom_client")
    @pytest.mark.asyncio
    async def test_contact_failure_propagates(self, mock_get_client, conversation_request):
        client = MagicMock()
        client.create_contact = AsyncMock(side_effect=IntercomAPIError(401, "Unauthorized"))
        mock_get_client.return_value = client

        with pytest.raises(IntercomAPIError):
            await contact_service.start_intercom_conversation(conversation_request)


class TestSubmitIntercomContact:
    @pytest.fixture
    def contact_request(self):
        return IntercomContactRequest(name="Ana", email="ana@example.com", message="Love the product")

    @pytest.mark.asyncio
    async def test_forwards_email(self, contact_request):
        client = MagicMock(enabled=True)
        client.send_email = AsyncMock(return_value="email-1")
        settings = MagicMock(intercom_inbox_email="inbox@acme.intercom-mail.com")

        with patch("app.services.contact_service.get_settings", return_value=settings):
            response = await contact_service.submit_intercom_contact(contact_request, client=client)

        kwargs = client.send_email.await_args.kwargs
        assert kwargs["to"] == "inbox@acme.intercom-mail.com"
        assert kwargs["subject"] == "Contact Form: Ana"
        assert kwargs["reply_to"] == "ana@example.com"
        assert kwargs["text"] == "Name: Ana\nEmail: ana@example.com\n\nLove the product"
        assert response.email_id == "email-1"

    @pytest.mark.asyncio
    async def test_logs_only_without_resend(self, contact_request):
        client = MagicMock(enabled=False)
        client.send_email = AsyncMock()

        response = await contact_service.submit_intercom_contact(contact_request, client=client)

        client.send_email.assert_not_awaited()
        assert response.success is True
        assert response.email_id is None
        assert response.message == "Thank you Ana! Your message has been received."
