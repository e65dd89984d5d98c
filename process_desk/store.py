"""Process store for process-desk.

Each function takes a sqlite3.Connection and explicit params and returns
plain dicts, lists or bools. The HTTP routes, the CLI and the backup
module all go through these functions.

Update-then-reread and the completion toggle are independent statements,
not a transaction: a concurrent delete or toggle between them is visible
to the caller.
"""

import json
import logging
import sqlite3
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the database rejects a read or write."""


class ProcessNotFoundError(StoreError):
    """Raised when a process is missing on the read that follows a write."""


class NothingToUpdateError(StoreError):
    """Raised when an update payload supplies no fields."""


PROCESS_COLUMNS = (
    "id",
    "number",
    "type",
    "status",
    "due_date",
    "forwarding",
    "pending_actions",
    "summary",
    "created_at",
    "updated_at",
)

REQUIRED_COLUMNS = (
    "id",
    "number",
    "type",
    "status",
    "due_date",
    "forwarding",
    "created_at",
    "updated_at",
)

# Assignment order of a partial update. Also the only column names that
# ever reach the UPDATE statement text.
UPDATABLE_FIELDS = (
    "number",
    "type",
    "status",
    "due_date",
    "forwarding",
    "pending_actions",
    "summary",
)

_SELECT_PROCESS = f"SELECT {', '.join(PROCESS_COLUMNS)} FROM processes"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid.uuid4())


# ── pending_actions encoding ──────────────────────────────


def encode_pending_actions(actions: list[str] | None) -> str:
    """Serialize a checklist to its stored form, a JSON array of strings."""
    return json.dumps(list(actions or []), ensure_ascii=False)


def decode_pending_actions(raw: str | None) -> list[str]:
    """Deserialize a stored checklist.

    NULL, malformed JSON and non-list values decode to an empty list.
    Non-string entries are dropped.
    """
    if raw is None:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding unreadable pending_actions value: %r", raw)
        return []
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def row_to_process(row: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a processes row into a process record.

    A NULL required column means the row is corrupt and raises StoreError.
    """
    for column in REQUIRED_COLUMNS:
        if row[column] is None:
            raise StoreError(f"Missing {column}")

    process = {column: row[column] for column in PROCESS_COLUMNS}
    process["pending_actions"] = decode_pending_actions(row["pending_actions"])
    return process


def _fetch_process(conn: sqlite3.Connection, process_id: str) -> dict[str, Any] | None:
    row = conn.execute(f"{_SELECT_PROCESS} WHERE id = ?", (process_id,)).fetchone()
    if row is None:
        return None
    return row_to_process(row)


# ── Process operations ────────────────────────────────────


def list_processes(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """Return every process, newest first."""
    try:
        rows = conn.execute(f"{_SELECT_PROCESS} ORDER BY created_at DESC").fetchall()
    except sqlite3.Error as e:
        raise StoreError(f"Failed to fetch processes: {e}") from e

    logger.debug("Fetched %d processes", len(rows))
    return [row_to_process(row) for row in rows]


def add_process(conn: sqlite3.Connection, data: Mapping[str, Any]) -> dict[str, Any]:
    """Create a process and return it as persisted.

    data carries number, type, status, due_date, forwarding,
    pending_actions and optionally summary.
    """
    process_id = _uuid()
    now = _now()
    pending_actions = list(data.get("pending_actions") or [])

    try:
        conn.execute(
            """INSERT INTO processes
               (id, number, type, status, due_date, forwarding,
                pending_actions, summary, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                process_id,
                data["number"],
                data["type"],
                data["status"],
                data["due_date"],
                data["forwarding"],
                encode_pending_actions(pending_actions),
                data.get("summary"),
                now,
                now,
            ),
        )
        conn.commit()
    except sqlite3.Error as e:
        raise StoreError(f"Failed to insert process: {e}") from e

    logger.info("Created process %s (%s)", process_id, data["number"])
    return {
        "id": process_id,
        "number": data["number"],
        "type": data["type"],
        "status": data["status"],
        "due_date": data["due_date"],
        "forwarding": data["forwarding"],
        "pending_actions": pending_actions,
        "summary": data.get("summary"),
        "created_at": now,
        "updated_at": now,
    }


def build_update(
    process_id: str, updates: Mapping[str, Any], now: str
) -> tuple[str, list[Any]]:
    """Build the UPDATE statement and its parameters for a partial update.

    A field is supplied when its key is present with a non-None value.
    Parameters are the supplied values in UPDATABLE_FIELDS order, then
    updated_at, then the process id.

    Raises:
        NothingToUpdateError: If no field is supplied.
    """
    assignments: list[str] = []
    params: list[Any] = []
    for field in UPDATABLE_FIELDS:
        value = updates.get(field)
        if value is None:
            continue
        if field == "pending_actions":
            value = encode_pending_actions(value)
        assignments.append(f"{field} = ?")
        params.append(value)

    if not assignments:
        raise NothingToUpdateError("Nothing to update")

    assignments.append("updated_at = ?")
    params.append(now)
    params.append(process_id)

    sql = f"UPDATE processes SET {', '.join(assignments)} WHERE id = ?"  # noqa: S608
    return sql, params


def update_process(
    conn: sqlite3.Connection, process_id: str, updates: Mapping[str, Any]
) -> dict[str, Any]:
    """Apply a partial update and return the process as re-read afterwards.

    Raises:
        NothingToUpdateError: No field supplied; no statement is issued.
        ProcessNotFoundError: No process with process_id after the write.
        StoreError: The database rejected the write or the re-read.
    """
    sql, params = build_update(process_id, updates, _now())

    try:
        conn.execute(sql, params)
        conn.commit()
    except sqlite3.Error as e:
        raise StoreError(f"Failed to update process: {e}") from e

    try:
        process = _fetch_process(conn, process_id)
    except sqlite3.Error as e:
        raise StoreError(f"Failed to fetch updated process: {e}") from e

    if process is None:
        raise ProcessNotFoundError(f"Process '{process_id}' not found after update")

    logger.info("Updated process %s", process_id)
    return process


def delete_process(conn: sqlite3.Connection, process_id: str) -> None:
    """Delete a process. Deleting a missing id is not an error.

    Completion rows that reference the process are left untouched.
    """
    try:
        conn.execute("DELETE FROM processes WHERE id = ?", (process_id,))
        conn.commit()
    except sqlite3.Error as e:
        raise StoreError(f"Failed to delete process: {e}") from e

    logger.info("Deleted process %s", process_id)


# ── Completed actions ─────────────────────────────────────


def get_completed_actions(conn: sqlite3.Connection) -> dict[str, list[str]]:
    """Return completed action labels grouped by process id.

    Labels keep the order the database returns them in. Processes with
    no completed actions are absent from the mapping.
    """
    try:
        rows = conn.execute(
            "SELECT process_id, action_text FROM completed_actions"
        ).fetchall()
    except sqlite3.Error as e:
        raise StoreError(f"Failed to fetch completed actions: {e}") from e

    actions: dict[str, list[str]] = {}
    for row in rows:
        if row["process_id"] is None:
            raise StoreError("Missing process_id")
        if row["action_text"] is None:
            raise StoreError("Missing action_text")
        actions.setdefault(row["process_id"], []).append(row["action_text"])
    return actions


def toggle_action_completion(
    conn: sqlite3.Connection, process_id: str, action_text: str
) -> bool:
    """Flip the completion marker for one checklist entry.

    Returns True when the action is now completed, False when the
    marker was removed.
    """
    try:
        existing = conn.execute(
            "SELECT id FROM completed_actions WHERE process_id = ? AND action_text = ?",
            (process_id, action_text),
        ).fetchone()
    except sqlite3.Error as e:
        raise StoreError(f"Failed to check action completion: {e}") from e

    if existing is None:
        try:
            conn.execute(
                """INSERT INTO completed_actions (id, process_id, action_text, completed_at)
                   VALUES (?, ?, ?, ?)""",
                (_uuid(), process_id, action_text, _now()),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to add completed action: {e}") from e
        logger.info("Marked action done on process %s: %r", process_id, action_text)
        return True

    try:
        conn.execute(
            "DELETE FROM completed_actions WHERE process_id = ? AND action_text = ?",
            (process_id, action_text),
        )
        conn.commit()
    except sqlite3.Error as e:
        raise StoreError(f"Failed to remove completed action: {e}") from e
    logger.info("Cleared action on process %s: %r", process_id, action_text)
    return False
