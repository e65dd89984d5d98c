"""FastAPI dependencies for process-desk."""

import sqlite3
from collections.abc import Generator

from fastapi import Request

from db.client import get_connection


def get_db(request: Request) -> Generator[sqlite3.Connection, None, None]:
    """Yield a DB connection for one request, opened from app.state.db_path."""
    conn = get_connection(request.app.state.db_path)
    try:
        yield conn
    finally:
        conn.close()
