import json

import httpx
import pytest

from app.integrations.resend import ResendAPIError, ResendClient, contact_form_html


@pytest.mark.asyncio
async def test_disabled_without_api_key():
    def handler(request):
        raise AssertionError("no request expected")

    client = ResendClient(api_key="", transport=httpx.MockTransport(handler))

    assert client.enabled is False
    assert await client.send_email("inbox@acme.com", "Hi", "Body") is None


@pytest.mark.asyncio
async def test_sends_payload_and_returns_id():
    sent = {}

    def handler(request):
        sent["auth"] = request.headers["Authorization"]
        sent["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email-1"})

    client = ResendClient(
        api_key="re_123",
        from_address="noreply@acme.com",
        transport=httpx.MockTransport(handler),
    )
    email_id = await client.send_email(
        "inbox@acme.com", "Contact Form: Jo", "Hello", html_body="<p>Hello</p>", reply_to="jo@example.com"
    )

    assert email_id == "email-1"
    assert sent["auth"] == "Bearer re_123"
    assert sent["body"] == {
        "from": "noreply@acme.com",
        "to": "inbox@acme.com",
        "subject": "Contact Form: Jo",
        "text": "Hello",
        "html": "<p>Hello</p>",
        "reply_to": "jo@example.com",
    }


@pytest.mark.asyncio
async def test_error_response_raises():
    client = ResendClient(
        api_key="re_123",
        transport=httpx.MockTransport(lambda r: httpx.Response(403, text="domain not verified")),
    )
    with pytest.raises(ResendAPIError) as exc_info:
        await client.send_email("inbox@acme.com", "Hi", "Body")
    assert exc_info.value.status == 403


def test_contact_form_html_escapes_input():
    rendered = contact_form_html("<b>Jo</b>", "jo@example.com", "line one\n<script>x</script>")

    assert "&lt;b&gt;Jo&lt;/b&gt;" in rendered
    assert "line one<br>&lt;script&gt;" in rendered
    assert "mailto:jo@example.com" in rendered
