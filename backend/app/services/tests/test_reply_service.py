"""Tests for AI replies posted back to Zendesk and Intercom tickets."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.errors import ZendeskAPIError
from app.services.reply_service import (
    REPLY_TEMPERATURE,
    generate_intercom_reply,
    generate_zendesk_reply,
)


@pytest.fixture
def zendesk_client():
    client = MagicMock()
    client.get_ticket = AsyncMock(
        return_value={
            "id": 102,
            "subject": "Refund request",
            "description": "I was charged twice this month",
            "status": "pending",
            "priority": None,
        }
    )
    client.add_ticket_comment = AsyncMock(
        return_value=(
            {"id": 102, "subject": "Refund request", "status": "open", "priority": "urgent"},
            {"id": 9001, "body": "reply"},
        )
    )
    client.ticket_link.return_value = "https://acme.zendesk.com/agent/tickets/102"
    return client


@pytest.fixture
def intercom_client():
    client = MagicMock()
    client.get_ticket = AsyncMock(
        return_value={
            "id": "t1",
            "ticket_state": "submitted",
            "ticket_attributes": {
                "_default_title_": "App crashes",
                "_default_description_": "Crash on launch since the last update",
            },
        }
    )
    client.get_admins = AsyncMock(return_value=[{"id": 55, "name": "Ana"}])
    client.add_ticket_comment = AsyncMock(return_value={"id": "t1"})
    client.ticket_link.return_value = "https://acme.intercom.com/a/tickets/t1"
    return client


class TestZendeskReply:
    @patch("app.services.reply_service.generate_text", new_callable=AsyncMock)
    @patch("app.services.reply_service.get_zendesk_client")
    @pytest.mark.asyncio
    async def test_posts_public_comment(self, mock_get_client, mock_generate, zendesk_client):
        mock_get_client.return_value = zendesk_client
        mock_generate.return_value = "Hi, we have refunded the duplicate charge.\n\nBest regards"

        result = await generate_zendesk_reply(102)

        zendesk_client.add_ticket_comment.assert_awaited_once_with(
            102, "Hi, we have refunded the duplicate charge.\n\nBest regards", public=True
        )
        assert result.comment_id == 9001
        assert result.ticket_link == "https://acme.zendesk.com/agent/tickets/102"
        assert result.ticket.id == "102"
        assert result.ticket.status == "open"
        assert result.ticket.priority == "urgent"

    @patch("app.services.reply_service.generate_text", new_callable=AsyncMock)
    @patch("app.services.reply_service.get_zendesk_client")
    @pytest.mark.asyncio
    async def test_prompt_carries_ticket(self, mock_get_client, mock_generate, zendesk_client):
        mock_get_client.return_value = zendesk_client
        mock_generate.return_value = "reply"

        await generate_zendesk_reply(102, custom_instructions="Offer a 10% coupon")

        kwargs = mock_generate.await_args.kwargs
        assert kwargs["temperature"] == REPLY_TEMPERATURE
        assert "Subject: Refund request" in kwargs["system_prompt"]
        assert "Priority: none" in kwargs["system_prompt"]
        assert "**Additional Instructions:** Offer a 10% coupon" in kwargs["system_prompt"]

    @patch("app.services.reply_service.generate_text", new_callable=AsyncMock)
    @patch("app.services.reply_service.get_zendesk_client")
    @pytest.mark.asyncio
    async def test_missing_ticket_propagates(self, mock_get_client, mock_generate, zendesk_client):
        zendesk_client.get_ticket.side_effect = ZendeskAPIError(404, "RecordNotFound")
        mock_get_client.return_value = zendesk_client

        with pytest.raises(ZendeskAPIError):
            await generate_zendesk_reply(999)

        mock_generate.assert_not_awaited()
        zendesk_client.add_ticket_comment.assert_not_awaited()


class TestIntercomReply:
    @patch("app.services.reply_service.generate_text", new_callable=AsyncMock)
    @patch("app.services.reply_service.get_intercom_client")
    @pytest.mark.asyncio
    async def test_posts_as_first_admin(self, mock_get_client, mock_generate, intercom_client):
        mock_get_client.return_value = intercom_client
        mock_generate.return_value = "Thanks for the report, a fix ships today."

        result = await generate_intercom_reply("t1")

        intercom_client.add_ticket_comment.assert_awaited_once_with(
            "t1", "Thanks for the report, a fix ships today.", admin_id="55"
        )
        assert result.ticket.subject == "App crashes"
        assert result.ticket.status == "submitted"
        assert result.ticket_link == "https://acme.intercom.com/a/tickets/t1"
        assert "Description: Crash on launch" in mock_generate.await_args.kwargs["system_prompt"]

    @patch("app.services.reply_service.generate_text", new_callable=AsyncMock)
    @patch("app.services.reply_service.get_intercom_client")
    @pytest.mark.asyncio
    async def test_untitled_ticket_without_admins(self, mock_get_client, mock_generate, intercom_client):
        intercom_client.get_ticket.return_value = {"id": "t2", "state": "resolved", "ticket_attributes": None}
        intercom_client.get_admins.return_value = []
        mock_get_client.return_value = intercom_client
        mock_generate.return_value = "reply"

        result = await generate_intercom_reply("t2")

        intercom_client.add_ticket_comment.assert_awaited_once_with("t2", "reply", admin_id=None)
        assert result.ticket.subject == "Untitled"
        assert result.ticket.status == "resolved"
