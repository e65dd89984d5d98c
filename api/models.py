"""Pydantic request/response models for the process-desk API."""

from pydantic import BaseModel


# ── Request models ──────────────────────────────────────


class CreateProcessRequest(BaseModel):
    number: str
    type: str
    status: str
    due_date: str
    forwarding: str
    pending_actions: list[str] = []
    summary: str | None = None


class UpdateProcessRequest(BaseModel):
    number: str | None = None
    type: str | None = None
    status: str | None = None
    due_date: str | None = None
    forwarding: str | None = None
    pending_actions: list[str] | None = None
    summary: str | None = None


class ToggleActionRequest(BaseModel):
    action_text: str


# ── Response models ─────────────────────────────────────


class ProcessResponse(BaseModel):
    id: str
    number: str
    type: str
    status: str
    due_date: str
    forwarding: str
    pending_actions: list[str]
    summary: str | None = None
    created_at: str
    updated_at: str


class ProcessAlertResponse(ProcessResponse):
    due_status: str
    days_until_due: int


class ToggleActionResponse(BaseModel):
    completed: bool


class ImportResponse(BaseModel):
    processes: int
    completed_actions: int
