"""Catch-all router serving the static school website."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from school_backend.config import Settings
from school_backend.dependencies import get_settings
from school_backend.errors import error_response
from school_backend.middleware import is_api_path

log = logging.getLogger(__name__)

router = APIRouter(tags=["site"])

INDEX_FILE = "index.html"


def resolve_site_file(site_dir: Path, path: str) -> Optional[Path]:
    """Map a URL path to a file inside ``site_dir``, or None.

    Paths escaping ``site_dir`` (``..``, absolute or symlinked) never match.
    """
    if not path:
        return None
    root = site_dir.resolve()
    candidate = (root / path.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate if candidate.is_file() else None


@router.api_route("/{full_path:path}", methods=["GET", "HEAD"], include_in_schema=False)
def serve_site(full_path: str, settings: Settings = Depends(get_settings)):
    """Serve a site asset if it exists, else the entry document."""
    if is_api_path("/" + full_path):
        return error_response("Not found", 404)

    asset = resolve_site_file(settings.site_dir, full_path)
    if asset is not None:
        return FileResponse(asset)

    index = settings.site_dir / INDEX_FILE
    if not index.is_file():
        log.error("Site entry document missing: %s", index)
        return error_response("Not found", 404)
    return FileResponse(index)
