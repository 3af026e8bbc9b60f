"""Router for public configuration and the WhatsApp contact number."""
from __future__ import annotations

import re

from fastapi import APIRouter, Depends

from school_backend.config import Settings, public_config
from school_backend.dependencies import get_settings
from school_backend.errors import ServiceUnavailable
from school_backend.models import WhatsAppResponse

router = APIRouter(prefix="/api", tags=["config"])

_NON_DIGITS = re.compile(r"\D")


@router.get("/config")
def get_public_config(settings: Settings = Depends(get_settings)):
    """Non-sensitive settings the site scripts need (name, links, feature flags)."""
    return public_config(settings)


@router.get("/whatsapp", response_model=WhatsAppResponse)
def get_whatsapp(settings: Settings = Depends(get_settings)):
    """Return the configured WhatsApp number, digits only."""
    digits = _NON_DIGITS.sub("", settings.whatsapp_number or "")
    if not digits:
        raise ServiceUnavailable("WhatsApp service not configured")
    return WhatsAppResponse(number=digits, link=f"https://wa.me/{digits}")
