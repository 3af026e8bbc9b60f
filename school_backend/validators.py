"""Input validation for contact submissions and logo uploads.

Both validators are pure: they raise :class:`~school_backend.errors.ValidationError`
carrying a :class:`~school_backend.errors.ValidationFailure` reason and the
client-facing message, and otherwise return normally.
"""
from __future__ import annotations

import base64
import binascii
import re
from typing import Any, Mapping, Optional

from school_backend.config import MAX_LOGO_BYTES
from school_backend.errors import ValidationError, ValidationFailure
from school_backend.models import ContactSubmission

CONTACT_FIELDS = ("name", "email", "subject", "message")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DATA_URI_PREFIX = "data:image/"
NON_BASE64_RE = re.compile(r"[^A-Za-z0-9+/]")
URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


def validate_contact(fields: Mapping[str, Any]) -> ContactSubmission:
    """Check a contact form payload and return it as a submission.

    Every field must be a non-empty string; the email must look like
    ``local@domain.tld``.
    """
    for name in CONTACT_FIELDS:
        value = fields.get(name)
        if not isinstance(value, str) or not value:
            raise ValidationError(ValidationFailure.MISSING_FIELD, "All fields are required")

    if not EMAIL_RE.fullmatch(fields["email"]):
        raise ValidationError(ValidationFailure.INVALID_EMAIL, "Invalid email address")

    return ContactSubmission(**{name: fields[name] for name in CONTACT_FIELDS})


def _megabytes(num_bytes: int) -> str:
    mb = num_bytes / (1024 * 1024)
    return str(int(mb)) if mb.is_integer() else f"{mb:.1f}"


def decoded_size(payload: str) -> int:
    """Byte length of a base64 payload.

    Decoding is lenient: it stops at the first ``=``, skips characters
    outside the alphabet, accepts the URL-safe alphabet and does not require
    padding. A payload whose length leaves a single dangling character
    cannot be decoded and raises :class:`binascii.Error`.
    """
    data = payload.split("=", 1)[0].translate(URLSAFE_TO_STANDARD)
    data = NON_BASE64_RE.sub("", data)
    if len(data) % 4 == 1:
        raise binascii.Error("Truncated base64 payload")
    return len(base64.b64decode(data + "=" * (-len(data) % 4)))


def validate_logo(logo_data: Optional[Any], max_bytes: int = MAX_LOGO_BYTES) -> int:
    """Validate a ``data:image/...;base64,...`` string and return its decoded size.

    The size check is inclusive: exactly ``max_bytes`` is accepted.
    """
    if not logo_data:
        raise ValidationError(ValidationFailure.MISSING_DATA, "No logo data provided")

    if not isinstance(logo_data, str) or not logo_data.startswith(DATA_URI_PREFIX):
        raise ValidationError(ValidationFailure.INVALID_FORMAT, "Invalid image format")

    _, sep, payload = logo_data.partition(",")
    if not sep:
        raise ValidationError(ValidationFailure.INVALID_FORMAT, "Invalid image format")

    try:
        size = decoded_size(payload)
    except (binascii.Error, ValueError):
        raise ValidationError(ValidationFailure.INVALID_FORMAT, "Invalid image format")

    if size > max_bytes:
        raise ValidationError(
            ValidationFailure.TOO_LARGE,
            f"Logo size must be less than {_megabytes(max_bytes)}MB",
        )

    return size
