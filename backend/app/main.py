"""FastAPI application entry point.

Configures logging, CORS and security headers, and registers the Zendesk and
Intercom routers under the /api prefix. Health check at GET /.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import intercom_routes, zendesk_routes
from .api.errors import validation_exception_handler
from .core.config import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

app = FastAPI(title=settings.app_name, debug=settings.debug)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(zendesk_routes.router, prefix="/api")
app.include_router(intercom_routes.router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Service is running"}
