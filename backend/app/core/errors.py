"""Exceptions raised by vendor API clients and their HTTP status mapping."""

import openai

_STATUS_MESSAGES = {
    401: "Unauthorized: Invalid {vendor} credentials",
    403: "Forbidden: Insufficient permissions",
    404: "Not found: Resource does not exist",
    429: "Rate limited: Too many requests, please try again later",
}


class VendorConfigError(RuntimeError):
    """A required vendor credential or setting is missing."""


class VendorAPIError(Exception):
    """A vendor REST call failed.

    ``status`` is the HTTP status returned by the vendor, or 0 for a
    network-level failure where no response was received.
    """

    vendor = "Vendor"

    def __init__(self, status: int, error: str, description: str = ""):
        self.status = status
        self.error = error
        self.description = description
        super().__init__(self._format())

    def _format(self) -> str:
        if self.status == 0:
            return f"Network error: {self.description or self.error}"
        template = _STATUS_MESSAGES.get(self.status)
        if template:
            return template.format(vendor=self.vendor)
        if self.description:
            return f"API Error: {self.error} - {self.description}"
        return f"API Error: {self.error}"


class ZendeskAPIError(VendorAPIError):
    vendor = "Zendesk"


class IntercomAPIError(VendorAPIError):
    vendor = "Intercom"


def http_status_for(exc: Exception) -> int:
    """Map a vendor, config or LLM exception to the status a route should return."""
    if isinstance(exc, openai.APITimeoutError):
        return 504
    if isinstance(exc, openai.RateLimitError):
        return 429
    if isinstance(exc, VendorConfigError):
        return 500
    if isinstance(exc, VendorAPIError):
        if exc.status in (404, 429):
            return exc.status
        if exc.status in (400, 422):
            return 400
        return 502
    return 500
