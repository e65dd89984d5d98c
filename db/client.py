"""SQLite connection helper for process-desk.

Connections run in WAL mode and return sqlite3.Row rows. Foreign key
enforcement is left at SQLite's default (off): completed_actions refers
to processes by convention only, and its rows outlive the process they
name.
"""

import sqlite3
from pathlib import Path


def get_connection(db_path: str | Path) -> sqlite3.Connection:
    """Open a SQLite connection to db_path, creating parent directories.

    check_same_thread is off because FastAPI may open the connection in a
    dependency on one worker thread and use it in the endpoint on another.
    """
    db_path = Path(db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = sqlite3.Row
    return conn
