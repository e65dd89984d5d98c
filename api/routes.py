"""REST route handlers for the process-desk API.

Routes wrap the store functions with HTTP semantics. All reads and
writes go through process_desk.store.
"""

import logging
import sqlite3
from typing import Any, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, Response

from api.deps import get_db
from api.models import (
    CreateProcessRequest,
    ImportResponse,
    ProcessAlertResponse,
    ProcessResponse,
    ToggleActionRequest,
    ToggleActionResponse,
    UpdateProcessRequest,
)
from process_desk.backup import BackupFormatError, export_data, import_data
from process_desk.deadlines import processes_needing_attention
from process_desk.store import (
    NothingToUpdateError,
    ProcessNotFoundError,
    StoreError,
    add_process,
    delete_process,
    get_completed_actions,
    list_processes,
    toggle_action_completion,
    update_process,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _raise_http(error: Exception) -> NoReturn:
    """Convert store and backup errors to HTTPException."""
    message = str(error)
    if isinstance(error, ProcessNotFoundError):
        raise HTTPException(status_code=404, detail=message) from error
    if isinstance(error, (NothingToUpdateError, BackupFormatError)):
        raise HTTPException(status_code=422, detail=message) from error
    logger.error("Store failure: %s", message)
    raise HTTPException(status_code=500, detail=message) from error


# ── Process endpoints ──────────────────────────────────────


@router.get("/processes", response_model=list[ProcessResponse])
def list_processes_endpoint(
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict[str, Any]]:
    """List all processes, newest first."""
    try:
        return list_processes(conn)
    except StoreError as e:
        _raise_http(e)


@router.get("/processes/alerts", response_model=list[ProcessAlertResponse])
def list_process_alerts(
    conn: sqlite3.Connection = Depends(get_db),
) -> list[dict[str, Any]]:
    """List processes that are overdue, due within two days, or due on a weekend."""
    try:
        return processes_needing_attention(list_processes(conn))
    except StoreError as e:
        _raise_http(e)


@router.post("/processes", status_code=201, response_model=ProcessResponse)
def create_process_endpoint(
    body: CreateProcessRequest,
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    """Create a process."""
    try:
        return add_process(conn, body.model_dump())
    except StoreError as e:
        _raise_http(e)


@router.patch("/processes/{process_id}", response_model=ProcessResponse)
def update_process_endpoint(
    process_id: str,
    body: UpdateProcessRequest,
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    """Update only the supplied fields of a process."""
    try:
        return update_process(conn, process_id, body.model_dump(exclude_none=True))
    except StoreError as e:
        _raise_http(e)


@router.delete("/processes/{process_id}", status_code=204, response_class=Response)
def delete_process_endpoint(
    process_id: str,
    conn: sqlite3.Connection = Depends(get_db),
) -> Response:
    """Delete a process. Deleting an unknown id also returns 204."""
    try:
        delete_process(conn, process_id)
    except StoreError as e:
        _raise_http(e)
    return Response(status_code=204)


# ── Completed action endpoints ─────────────────────────────


@router.get("/completed-actions", response_model=dict[str, list[str]])
def list_completed_actions(
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, list[str]]:
    """Completed action labels grouped by process id."""
    try:
        return get_completed_actions(conn)
    except StoreError as e:
        _raise_http(e)


@router.post(
    "/processes/{process_id}/actions/toggle", response_model=ToggleActionResponse
)
def toggle_action_endpoint(
    process_id: str,
    body: ToggleActionRequest,
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, bool]:
    """Mark a checklist entry done, or clear it if it already is."""
    try:
        completed = toggle_action_completion(conn, process_id, body.action_text)
    except StoreError as e:
        _raise_http(e)
    return {"completed": completed}


# ── Backup endpoints ───────────────────────────────────────


@router.get("/export")
def export_endpoint(
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, Any]:
    """Return a backup document of every process and completion marker."""
    try:
        return export_data(conn)
    except StoreError as e:
        _raise_http(e)


@router.post("/import", response_model=ImportResponse)
def import_endpoint(
    document: Any = Body(...),
    conn: sqlite3.Connection = Depends(get_db),
) -> dict[str, int]:
    """Load a backup document produced by GET /export."""
    try:
        return import_data(conn, document)
    except (StoreError, BackupFormatError) as e:
        _raise_http(e)
