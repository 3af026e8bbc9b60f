"""Shared fixtures for the school backend test suite."""
from __future__ import annotations

import base64
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from school_backend.config import Settings
from school_backend.main import create_app


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Site directory and application
# ---------------------------------------------------------------------------

INDEX_HTML = "<!DOCTYPE html><html><body><h1>SARDAM</h1></body></html>"


@pytest.fixture
def site_dir(tmp_path) -> Path:
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (site / "style.css").write_text("body { color: navy; }", encoding="utf-8")
    return site


@pytest.fixture
def make_client(site_dir, clock):
    """Factory: ``make_client(**settings_overrides) -> TestClient``."""

    def _make(**overrides) -> TestClient:
        overrides.setdefault("site_dir", site_dir)
        app = create_app(Settings(**overrides), clock=clock)
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

VALID_CONTACT = {
    "name": "A",
    "email": "a@b.com",
    "subject": "S",
    "message": "M",
}

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def make_data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64," + base64.b64encode(data).decode("ascii")


@pytest.fixture
def valid_contact() -> dict:
    return dict(VALID_CONTACT)


@pytest.fixture
def png_data_uri() -> str:
    return make_data_uri(PNG_BYTES)
