"""Core module - configuration, errors and LLM utilities."""

from .config import get_settings, Settings
from .errors import (
    IntercomAPIError,
    VendorAPIError,
    VendorConfigError,
    ZendeskAPIError,
    http_status_for,
)
from .llm import get_llm, generate_structured_output, generate_text

__all__ = [
    "get_settings",
    "Settings",
    "get_llm",
    "generate_structured_output",
    "generate_text",
    "IntercomAPIError",
    "VendorAPIError",
    "VendorConfigError",
    "ZendeskAPIError",
    "http_status_for",
]
