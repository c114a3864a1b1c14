"""Resend email API client used to forward contact form submissions."""

import html
import logging

import httpx

from ..core.config import get_settings
from ..core.errors import VendorAPIError

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


class ResendAPIError(VendorAPIError):
    vendor = "Resend"


class ResendClient:
    def __init__(
        self,
        api_key: str | None = None,
        from_address: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = settings.resend_api_key if api_key is None else api_key
        self.from_address = from_address or settings.resend_from_address
        self.timeout = settings.vendor_timeout_seconds
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send_email(
        self,
        to: str,
        subject: str,
        text: str,
        html_body: str | None = None,
        reply_to: str | None = None,
    ) -> str | None:
        """Send one email and return the Resend message id.

        Without an API key nothing is sent and ``None`` is returned.
        """
        if not self.enabled:
            logger.warning("RESEND_API_KEY not configured - email to %s not sent", to)
            return None

        payload = {"from": self.from_address, "to": to, "subject": subject, "text": text}
        if html_body:
            payload["html"] = html_body
        if reply_to:
            payload["reply_to"] = reply_to

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    RESEND_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            except httpx.RequestError as exc:
                raise ResendAPIError(0, "Network Error", str(exc)) from exc

        if response.is_error:
            logger.error("Failed to send email: %s %s", response.status_code, response.text)
            raise ResendAPIError(response.status_code, "Failed to send email", response.text)
        return response.json().get("id")


def contact_form_html(name: str, email: str, message: str) -> str:
    """Render a contact form submission as escaped HTML."""
    body = html.escape(message).replace("\n", "<br>")
    return (
        f"<p><strong>Name:</strong> {html.escape(name)}</p>\n"
        f"<p><strong>Email:</strong> <a href=\"mailto:{html.escape(email)}\">"
        f"{html.escape(email)}</a></p>\n"
        f"<p><strong>Message:</strong></p>\n<p>{body}</p>"
    )
