"""JSON backup export and import for process-desk.

A backup document looks like:

    {
        "version": "1.0",
        "exportDate": "<ISO-8601>",
        "data": {
            "processes": [<process>, ...],
            "completedActions": {"<process id>": ["<label>", ...]}
        }
    }
"""

import json
import logging
import sqlite3
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from process_desk.store import (
    StoreError,
    encode_pending_actions,
    get_completed_actions,
    list_processes,
)

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"


class BackupFormatError(ValueError):
    """Raised when a backup document does not have the expected structure."""


class BackupProcess(BaseModel):
    """One process record. Accepts the camelCase field names and numeric
    ids found in backups written by the earlier browser-based app."""

    id: str | None = None
    number: str
    type: str
    status: str
    due_date: str = Field(validation_alias=AliasChoices("due_date", "dueDate"))
    forwarding: str
    pending_actions: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("pending_actions", "pendingActions"),
    )
    summary: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class BackupData(BaseModel):
    processes: list[BackupProcess]
    completed_actions: dict[str, list[str]] = Field(
        default_factory=dict, alias="completedActions"
    )


class BackupDocument(BaseModel):
    version: str = BACKUP_VERSION
    export_date: str | None = Field(default=None, alias="exportDate")
    data: BackupData


def normalize_timestamp(value: str | None) -> str | None:
    """Rewrite a stored timestamp as ISO-8601 UTC.

    Accepts the "YYYY-MM-DD HH:MM:SS" form older records carry; naive values
    are taken as UTC. Unparseable values are returned unchanged.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning("Keeping unparseable timestamp %r", value)
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat()


def default_backup_name(today: date | None = None) -> str:
    return f"processos_backup_{(today or date.today()).isoformat()}.json"


def export_data(conn: sqlite3.Connection) -> dict[str, Any]:
    """Build a backup document from every process and completion marker."""
    processes = list_processes(conn)
    completed = get_completed_actions(conn)
    logger.info(
        "Exporting %d processes, %d processes with completed actions",
        len(processes),
        len(completed),
    )
    return {
        "version": BACKUP_VERSION,
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "data": {
            "processes": processes,
            "completedActions": completed,
        },
    }


def parse_backup(document: Any) -> BackupDocument:
    """Validate a decoded backup document.

    Raises:
        BackupFormatError: If data.processes is missing or malformed.
    """
    try:
        return BackupDocument.model_validate(document)
    except ValidationError as e:
        raise BackupFormatError(f"Invalid backup file format: {e}") from e


def import_data(conn: sqlite3.Connection, document: Any) -> dict[str, int]:
    """Load a backup document into the database.

    Processes keep their ids and timestamps and replace any row with the
    same id. Timestamps are normalized to ISO-8601 UTC and updated_at is
    never earlier than created_at. Completion markers get fresh ids; pairs
    that already exist are skipped.

    Returns:
        Counts of imported processes and completion markers.
    """
    backup = parse_backup(document)
    now = datetime.now(timezone.utc).isoformat()
    imported_actions = 0

    try:
        for process in backup.data.processes:
            created_at = normalize_timestamp(process.created_at) or now
            updated_at = max(
                created_at, normalize_timestamp(process.updated_at) or created_at
            )
            conn.execute(
                """INSERT OR REPLACE INTO processes
                   (id, number, type, status, due_date, forwarding,
                    pending_actions, summary, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    process.id or str(uuid.uuid4()),
                    process.number,
                    process.type,
                    process.status,
                    process.due_date,
                    process.forwarding,
                    encode_pending_actions(process.pending_actions),
                    process.summary,
                    created_at,
                    updated_at,
                ),
            )

        for process_id, labels in backup.data.completed_actions.items():
            for action_text in labels:
                exists = conn.execute(
                    "SELECT 1 FROM completed_actions WHERE process_id = ? AND action_text = ?",
                    (process_id, action_text),
                ).fetchone()
                if exists:
                    continue
                conn.execute(
                    """INSERT INTO completed_actions (id, process_id, action_text, completed_at)
                       VALUES (?, ?, ?, ?)""",
                    (str(uuid.uuid4()), process_id, action_text, now),
                )
                imported_actions += 1
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StoreError(f"Failed to import backup: {e}") from e

    logger.info(
        "Imported %d processes and %d completed actions",
        len(backup.data.processes),
        imported_actions,
    )
    return {
        "processes": len(backup.data.processes),
        "completed_actions": imported_actions,
    }


def write_backup(conn: sqlite3.Connection, path: str | Path) -> Path:
    """Export the database to a JSON file and return its path."""
    path = Path(path)
    if path.is_dir():
        path = path / default_backup_name()
    path.write_text(
        json.dumps(export_data(conn), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return path


def read_backup(path: str | Path) -> Any:
    """Read and decode a backup file.

    Raises:
        BackupFormatError: If the file is not valid JSON.
    """
    path = Path(path)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise BackupFormatError(f"Invalid JSON in {path}: {e}") from e
