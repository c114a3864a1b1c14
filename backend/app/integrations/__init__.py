"""Vendor API clients (Zendesk, Intercom, Resend)."""

from .intercom import IntercomClient, get_intercom_client
from .resend import ResendClient
from .zendesk import ZendeskClient, ZendeskConversationsClient, get_zendesk_client

__all__ = [
    "IntercomClient",
    "ResendClient",
    "ZendeskClient",
    "ZendeskConversationsClient",
    "get_intercom_client",
    "get_zendesk_client",
]
