"""Centralized configuration for the school website backend.

All settings are read from the environment once, at startup, into an
immutable :class:`Settings` object. The application keeps it on
``app.state.settings`` and handlers receive it through a dependency, so
nothing below the app factory touches ``os.environ``.

Only the :func:`public_config` projection is ever sent to clients.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

# Try to load .env file from project root
try:
    from dotenv import load_dotenv
    env_path = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(env_path)
except ImportError:
    pass

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Defaults
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_ALLOWED_ORIGINS = ["http://localhost:3000"]
DEFAULT_SCHOOL_NAME = "SARDAM"
DEFAULT_ESTABLISHED_YEAR = "2015"
DEFAULT_SCHOOL_EMAIL = "info@sardam.edu"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_SITE_DIR = PROJECT_ROOT / "site"

# Size limits
MAX_BODY_BYTES = 10 * 1024 * 1024
MAX_LOGO_BYTES = 2 * 1024 * 1024

# Rate limits, in `limits` notation
RATE_LIMIT_GENERAL = "100/15 minutes"
RATE_LIMIT_CONTACT = "5/hour"
RATE_LIMIT_LOGO = "10/hour"


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def _env_int(environ, name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _split_origins(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings(BaseModel):
    """Process-wide configuration, built once by :meth:`from_env`."""

    model_config = ConfigDict(frozen=True)

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    allowed_origins: List[str] = DEFAULT_ALLOWED_ORIGINS
    environment: str = DEFAULT_ENVIRONMENT

    school_name: str = DEFAULT_SCHOOL_NAME
    established_year: str = DEFAULT_ESTABLISHED_YEAR
    school_email: str = DEFAULT_SCHOOL_EMAIL

    facebook_url: str = ""
    instagram_url: str = ""
    tiktok_url: str = ""

    enable_whatsapp: bool = False
    enable_contact_form: bool = False
    whatsapp_number: Optional[str] = None
    # Whether SCHOOL_EMAIL was set explicitly; only used for the startup log
    school_email_configured: bool = False

    site_dir: Path = DEFAULT_SITE_DIR

    rate_limit_general: str = RATE_LIMIT_GENERAL
    rate_limit_contact: str = RATE_LIMIT_CONTACT
    rate_limit_logo: str = RATE_LIMIT_LOGO

    max_body_bytes: int = MAX_BODY_BYTES
    max_logo_bytes: int = MAX_LOGO_BYTES

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``).

        Unset or empty variables fall back to the module defaults.
        Malformed integers raise ``ValueError`` so a bad deployment fails at
        startup instead of on the first request.
        """
        env = os.environ if environ is None else environ

        def text(name: str, default: str) -> str:
            value = env.get(name)
            return value if value else default

        return cls(
            port=_env_int(env, "PORT", DEFAULT_PORT),
            host=text("HOST", DEFAULT_HOST),
            allowed_origins=_split_origins(env.get("ALLOWED_ORIGINS")),
            environment=env.get("NODE_ENV") or env.get("APP_ENV") or DEFAULT_ENVIRONMENT,
            school_name=text("SCHOOL_NAME", DEFAULT_SCHOOL_NAME),
            established_year=text("ESTABLISHED_YEAR", DEFAULT_ESTABLISHED_YEAR),
            school_email=text("SCHOOL_EMAIL", DEFAULT_SCHOOL_EMAIL),
            school_email_configured=bool(env.get("SCHOOL_EMAIL")),
            facebook_url=env.get("FACEBOOK_URL", ""),
            instagram_url=env.get("INSTAGRAM_URL", ""),
            tiktok_url=env.get("TIKTOK_URL", ""),
            enable_whatsapp=_env_flag(env.get("ENABLE_WHATSAPP")),
            enable_contact_form=_env_flag(env.get("ENABLE_CONTACT_FORM")),
            whatsapp_number=env.get("WHATSAPP_NUMBER") or None,
            site_dir=Path(env["SITE_DIR"]) if env.get("SITE_DIR") else DEFAULT_SITE_DIR,
            rate_limit_general=text("RATE_LIMIT_GENERAL", RATE_LIMIT_GENERAL),
            rate_limit_contact=text("RATE_LIMIT_CONTACT", RATE_LIMIT_CONTACT),
            rate_limit_logo=text("RATE_LIMIT_LOGO", RATE_LIMIT_LOGO),
            max_body_bytes=_env_int(env, "MAX_BODY_BYTES", MAX_BODY_BYTES),
            max_logo_bytes=_env_int(env, "MAX_LOGO_BYTES", MAX_LOGO_BYTES),
        )


def public_config(settings: Settings) -> Dict[str, Dict[str, object]]:
    """Return the safe-to-expose subset of ``settings``.

    Never includes the WhatsApp number, environment or limits.
    """
    return {
        "school": {
            "name": settings.school_name,
            "establishedYear": settings.established_year,
            "email": settings.school_email,
        },
        "socialMedia": {
            "facebook": settings.facebook_url,
            "instagram": settings.instagram_url,
            "tiktok": settings.tiktok_url,
        },
        "features": {
            "enableWhatsApp": settings.enable_whatsapp,
            "enableContactForm": settings.enable_contact_form,
        },
    }
