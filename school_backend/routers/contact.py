"""Router for contact form submissions.

Messages are validated and logged. Delivery by email is not wired up yet;
the school reads submissions from the server log.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from school_backend.dependencies import contact_rate_limit, parse_body
from school_backend.errors import error_response
from school_backend.models import ContactSubmission, SuccessResponse
from school_backend.validators import validate_contact

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["contact"])

RECEIVED_MESSAGE = "Your message has been received. We will contact you soon!"
FAILURE_MESSAGE = "An error occurred. Please try again later."


def record_submission(submission: ContactSubmission) -> None:
    log.info(
        "Contact form submission: name=%s email=%s subject=%s message_length=%d",
        submission.name, submission.email, submission.subject, len(submission.message),
    )


@router.post("/contact", response_model=SuccessResponse)
async def submit_contact(
    fields: Dict[str, Any] = Depends(parse_body),
    _limit: None = Depends(contact_rate_limit),
):
    # Validate BEFORE the try/except so a 400 is not turned into a 500.
    submission = validate_contact(fields)
    try:
        record_submission(submission)
    except Exception as exc:
        log.exception("Contact form error: %s", exc)
        return error_response(FAILURE_MESSAGE, 500)
    return SuccessResponse(message=RECEIVED_MESSAGE)
