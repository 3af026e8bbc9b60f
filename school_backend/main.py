"""FastAPI application for the school website.

Endpoints:
  GET  /api/config    -> public, non-sensitive configuration
  GET  /api/whatsapp  -> WhatsApp number (digits only) or 503
  POST /api/contact   -> validate and record a contact form message
  POST /api/logo      -> validate a base64 logo upload
  GET  /api/health    -> liveness probe
  GET  /*             -> static site files, falling back to index.html

Errors are returned as ``{"error": "message"}``.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from school_backend.config import Settings
from school_backend.errors import register_error_handlers
from school_backend.middleware import configure_middleware
from school_backend.rate_limit import Clock, build_rate_limiter
from school_backend.routers import contact, health, logo, site, site_config

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    log.info("School website running on http://%s:%d", settings.host, settings.port)
    log.info("Environment: %s", settings.environment)
    log.info("School Email: %s", settings.school_email if settings.school_email_configured else "Not configured")
    log.info("WhatsApp: %s", "Configured" if settings.whatsapp_number else "Not configured")
    yield
    log.info("Shutting down: in-flight requests have completed")


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    """Build the application.

    ``settings`` defaults to ``Settings.from_env()``; ``clock`` is passed to
    the rate limiter (tests use a fake one).
    """
    if settings is None:
        settings = Settings.from_env()

    app = FastAPI(title="School Website API", lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = build_rate_limiter(settings, clock=clock)

    configure_middleware(app, settings)
    register_error_handlers(app)

    app.include_router(site_config.router)
    app.include_router(contact.router)
    app.include_router(logo.router)
    app.include_router(health.router)
    # Catch-all last
    app.include_router(site.router)
    return app


app = create_app()
