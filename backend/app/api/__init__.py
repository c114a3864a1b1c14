"""API module - FastAPI route handlers."""

from . import intercom_routes, zendesk_routes

__all__ = ["intercom_routes", "zendesk_routes"]
