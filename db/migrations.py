"""Schema creation for process-desk.

Migrations are idempotent: every CREATE uses IF NOT EXISTS and the
schema version is only ever stamped forward.

Can be run directly:
    python -m db.migrations [db_path]
"""

import logging
import sqlite3
import sys
from pathlib import Path

from db.client import get_connection
from db.schema import INDEXES, SCHEMA_VERSION, TABLE_CREATION_ORDER, TABLES

logger = logging.getLogger(__name__)


def get_schema_version(conn: sqlite3.Connection) -> int:
    return conn.execute("PRAGMA user_version").fetchone()[0]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes, then stamp the schema version. Idempotent."""
    for table_name in TABLE_CREATION_ORDER:
        conn.execute(TABLES[table_name])
    for ddl in INDEXES:
        conn.execute(ddl)
    conn.commit()

    current = get_schema_version(conn)
    if current < SCHEMA_VERSION:
        # PRAGMA does not accept bound parameters
        conn.execute(f"PRAGMA user_version = {int(SCHEMA_VERSION)}")
        conn.commit()
        logger.info("Schema version %d -> %d", current, SCHEMA_VERSION)


def init_db(db_path: str | Path) -> sqlite3.Connection:
    """Open a connection, run migrations, and return the ready connection."""
    conn = get_connection(db_path)
    run_migrations(conn)
    return conn


def main() -> None:
    """CLI entry point for running migrations directly."""
    if len(sys.argv) > 1:
        db_path = sys.argv[1]
    else:
        db_path = "process-desk.db"

    print(f"Running migrations on {db_path}...")
    conn = init_db(db_path)

    journal_mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    print(f"Journal mode: {journal_mode}")
    print(f"Schema version: {get_schema_version(conn)}")

    tables = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ).fetchall()
    print(f"Tables created: {[t[0] for t in tables]}")

    conn.close()
    print("Done.")


if __name__ == "__main__":
    main()
