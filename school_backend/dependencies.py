"""FastAPI dependencies: settings access, body parsing, route rate limits."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict
from urllib.parse import parse_qsl

from fastapi import Request, Response

from school_backend.config import Settings
from school_backend.errors import MalformedBody, PayloadTooLarge, RateLimitExceeded
from school_backend.rate_limit import (
    CONTACT,
    LOGO,
    FixedWindowRateLimiter,
    client_key,
    rate_limit_headers,
)

log = logging.getLogger(__name__)

JSON_TYPES = ("application/json",)
FORM_TYPE = "application/x-www-form-urlencoded"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def _content_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";")[0].strip().lower()


async def read_capped_body(request: Request, limit: int) -> bytes:
    """Read the body chunk by chunk, stopping as soon as it exceeds ``limit``."""
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise PayloadTooLarge("Request body too large")
        chunks.append(chunk)
    return b"".join(chunks)


async def parse_body(request: Request) -> Dict[str, Any]:
    """Read and decode the request body, capped at ``settings.max_body_bytes``.

    JSON bodies must be objects. Form-encoded bodies become a flat dict
    (last value wins). Other content types yield an empty dict.
    """
    limit = get_settings(request).max_body_bytes

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge("Request body too large")

    body = await read_capped_body(request, limit)
    if not body:
        return {}

    ctype = _content_type(request)
    if ctype in JSON_TYPES or ctype.endswith("+json"):
        try:
            data = json.loads(body)
        except (UnicodeDecodeError, ValueError):
            raise MalformedBody("Malformed request body")
        if not isinstance(data, dict):
            raise MalformedBody("Malformed request body")
        return data

    if ctype == FORM_TYPE:
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedBody("Malformed request body")
        return dict(parse_qsl(text, keep_blank_values=True))

    log.debug("Ignoring body with content type %r", ctype)
    return {}


def route_rate_limit(policy_name: str):
    """Build a dependency that charges ``policy_name`` for each request."""

    async def _check(request: Request, response: Response) -> None:
        limiter = get_rate_limiter(request)
        decision = limiter.check_and_consume(policy_name, client_key(request))
        if not decision.allowed:
            raise RateLimitExceeded(
                policy_name,
                limiter.policy(policy_name).message,
                decision.retry_after,
            )
        response.headers.update(rate_limit_headers(decision))

    _check.__name__ = f"{policy_name}_rate_limit"
    return _check


contact_rate_limit = route_rate_limit(CONTACT)
logo_rate_limit = route_rate_limit(LOGO)
