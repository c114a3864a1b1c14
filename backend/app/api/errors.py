"""Error translation shared by the desk routers."""

import logging

import openai
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.errors import VendorAPIError, VendorConfigError, http_status_for
from ..schemas.common import ValidationErrorResponse, ValidationIssue

logger = logging.getLogger(__name__)

# Failures a route reports to the caller instead of crashing on.
UPSTREAM_ERRORS = (VendorAPIError, VendorConfigError, openai.OpenAIError)


def upstream_http_error(exc: Exception, detail: str) -> HTTPException:
    return HTTPException(status_code=http_status_for(exc), detail=f"{detail}: {exc}")


def _field(loc) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] in ("body", "query", "path"):
        parts = parts[1:]
    return ".".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400 ``{error, issues}``."""
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        body = ValidationErrorResponse(error="Invalid JSON in request body")
    else:
        body = ValidationErrorResponse(
            issues=[ValidationIssue(field=_field(err["loc"]), message=err["msg"]) for err in errors]
        )
    logger.warning("Invalid request to %s: %s", request.url.path, body.issues or body.error)
    return JSONResponse(status_code=400, content=body.model_dump())
