"""Router for the liveness probe."""
from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from school_backend.models import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])

# Captured at import, i.e. when the server process loads the app
PROCESS_STARTED = time.monotonic()


def uptime_seconds() -> float:
    return max(0.0, time.monotonic() - PROCESS_STARTED)


@router.get("/health", response_model=HealthResponse)
def health():
    now = datetime.now(timezone.utc)
    return HealthResponse(
        timestamp=now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        uptime=uptime_seconds(),
    )
