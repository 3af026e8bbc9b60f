"""Pydantic request/response models shared across routers."""
from __future__ import annotations

from pydantic import BaseModel


class ContactSubmission(BaseModel):
    """A validated contact form message. Never persisted."""
    name: str
    email: str
    subject: str
    message: str


class SuccessResponse(BaseModel):
    success: bool = True
    message: str


class WhatsAppResponse(BaseModel):
    enabled: bool = True
    number: str
    link: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
    uptime: float
