"""Table definitions for process-desk.

Raw DDL keeps the schema explicit. completed_actions.process_id is a
convention-only reference: no FOREIGN KEY, so deleting a process leaves
its completion rows in place.
"""

# Stamped into PRAGMA user_version. Version 1 stores
# processes.pending_actions as a JSON array of strings.
SCHEMA_VERSION = 1

TABLES = {
    "processes": """
        CREATE TABLE IF NOT EXISTS processes (
            id              TEXT PRIMARY KEY,
            number          TEXT NOT NULL,
            type            TEXT NOT NULL,
            status          TEXT NOT NULL,
            due_date        TEXT NOT NULL,
            forwarding      TEXT NOT NULL,
            pending_actions TEXT DEFAULT '[]',
            summary         TEXT,
            created_at      TEXT NOT NULL,
            updated_at      TEXT NOT NULL
        )
    """,
    "completed_actions": """
        CREATE TABLE IF NOT EXISTS completed_actions (
            id           TEXT PRIMARY KEY,
            process_id   TEXT NOT NULL,
            action_text  TEXT NOT NULL,
            completed_at TEXT NOT NULL
        )
    """,
}

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_processes_created_at ON processes(created_at)",
    """CREATE INDEX IF NOT EXISTS idx_completed_actions_pair
       ON completed_actions(process_id, action_text)""",
]

TABLE_CREATION_ORDER = [
    "processes",
    "completed_actions",
]
