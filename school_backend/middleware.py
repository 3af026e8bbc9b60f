"""HTTP middleware stack.

``configure_middleware`` installs the stages so that, for each request, they
run in this order (outermost first):

1. request logging
2. security response headers
3. CORS (Starlette ``CORSMiddleware``) and the origin guard
4. general rate limit for ``/api/*``
5. unhandled errors turned into a 500 response

Body parsing and the contact/logo limits run afterwards as route
dependencies (see ``dependencies.py``). Because stage 5 sits inside the
others, a 500 still carries the security and CORS headers.
"""
from __future__ import annotations

import logging
import time
from urllib.parse import urlsplit

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from school_backend.config import Settings
from school_backend.errors import error_response, unhandled_error_handler
from school_backend.rate_limit import GENERAL, client_key, rate_limit_headers

log = logging.getLogger(__name__)

API_PREFIX = "/api/"

# Same defaults as helmet
SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


def is_api_path(path: str) -> bool:
    return path.startswith(API_PREFIX)


def origin_allowed(origin: str, request: Request, settings: Settings) -> bool:
    """An origin passes if it is allow-listed or is the request's own host."""
    if origin in settings.allowed_origins:
        return True
    host = request.headers.get("host")
    return bool(host) and urlsplit(origin).netloc == host


async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    log.info(
        "%s %s -> %s (%.1f ms)",
        request.method, request.url.path, response.status_code,
        (time.perf_counter() - start) * 1000,
    )
    return response


async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


async def origin_guard(request: Request, call_next):
    origin = request.headers.get("origin")
    if origin and not origin_allowed(origin, request, request.app.state.settings):
        log.warning("Rejected request from origin %s to %s", origin, request.url.path)
        return error_response("Origin not allowed", 403)
    return await call_next(request)


async def general_rate_limit(request: Request, call_next):
    if not is_api_path(request.url.path):
        return await call_next(request)

    limiter = request.app.state.rate_limiter
    decision = limiter.check_and_consume(GENERAL, client_key(request))
    if not decision.allowed:
        log.warning("Rate limit '%s' exceeded for %s", GENERAL, client_key(request))
        headers = {"Retry-After": str(decision.retry_after), **rate_limit_headers(decision)}
        return error_response(limiter.policy(GENERAL).message, 429, headers)

    response = await call_next(request)
    # Route limits (contact, logo) set their own, stricter counters
    for name, value in rate_limit_headers(decision).items():
        response.headers.setdefault(name, value)
    return response


async def catch_unhandled_errors(request: Request, call_next):
    """Innermost stage: unexpected failures become a 500 the outer stages still decorate."""
    try:
        return await call_next(request)
    except Exception as exc:
        return await unhandled_error_handler(request, exc)


def configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Install the middleware stack; the last one added runs first."""
    app.middleware("http")(catch_unhandled_errors)
    app.middleware("http")(general_rate_limit)
    app.middleware("http")(origin_guard)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(security_headers)
    app.middleware("http")(log_requests)
