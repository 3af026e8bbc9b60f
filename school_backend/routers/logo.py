"""Router for school logo uploads (base64 data URIs)."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from school_backend.config import Settings
from school_backend.dependencies import get_settings, logo_rate_limit, parse_body
from school_backend.errors import error_response
from school_backend.models import SuccessResponse
from school_backend.validators import validate_logo

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["logo"])

UPLOADED_MESSAGE = "Logo uploaded successfully"
FAILURE_MESSAGE = "An error occurred. Please try again later."


def store_logo(logo_data: str, size_bytes: int) -> None:
    """Accept a validated logo. Nothing is persisted yet; the upload is logged."""
    mime = logo_data[len("data:"):].split(";", 1)[0].split(",", 1)[0]
    log.info("Logo upload request received: type=%s size=%d bytes", mime, size_bytes)


@router.post("/logo", response_model=SuccessResponse)
async def upload_logo(
    fields: Dict[str, Any] = Depends(parse_body),
    _limit: None = Depends(logo_rate_limit),
    settings: Settings = Depends(get_settings),
):
    logo_data = fields.get("logoData")
    size = validate_logo(logo_data, max_bytes=settings.max_logo_bytes)
    try:
        store_logo(logo_data, size)
    except Exception as exc:
        log.exception("Logo upload error: %s", exc)
        return error_response(FAILURE_MESSAGE, 500)
    return SuccessResponse(message=UPLOADED_MESSAGE)
