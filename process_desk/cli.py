"""CLI entry point for process-desk.

Commands:
    process-desk init     write a starter config in the current directory
    process-desk migrate  create the database schema
    process-desk serve    start the local API server
    process-desk list     print all processes as JSON
    process-desk export   write a JSON backup
    process-desk import   load a JSON backup
"""

import json
import os
import sys
from pathlib import Path
from typing import Any

import click

from process_desk.config import (
    CONFIG_FILENAME,
    DEFAULT_DB_PATH,
    DEFAULTS,
    ConfigError,
    load_config,
)
from process_desk.logging_setup import setup_logging


def _load_config_or_defaults() -> dict[str, Any]:
    """Load ./process-desk.config.json, or defaults when there is no such file.

    A config file that exists but is invalid ends the command.
    """
    if not (Path.cwd() / CONFIG_FILENAME).exists():
        config = dict(DEFAULTS)
        config["db_path"] = str(Path(DEFAULT_DB_PATH).expanduser())
        return config

    try:
        return load_config()
    except ConfigError as e:
        click.echo(f"Config error: {e}", err=True)
        sys.exit(1)


def _resolve_db_path(config: dict[str, Any], db_path: str | None) -> str:
    """Pick the database path: --db flag, then PROCESS_DESK_DB, then config."""
    if db_path:
        return str(Path(db_path).expanduser())
    env_path = os.environ.get("PROCESS_DESK_DB")
    if env_path:
        return str(Path(env_path).expanduser())
    return config["db_path"]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """process-desk: local tracking of administrative processes."""
    config = _load_config_or_defaults()
    level = "DEBUG" if verbose else config.get("log_level", "INFO")
    setup_logging(level=level, log_dir=config.get("log_dir"))
    ctx.obj = config


@main.command()
def init() -> None:
    """Create a starter process-desk.config.json."""
    config_path = Path.cwd() / CONFIG_FILENAME
    if config_path.exists():
        click.echo(f"Config already exists: {config_path}")
        return

    config = {"db_path": DEFAULT_DB_PATH, **DEFAULTS}
    config_path.write_text(json.dumps(config, indent=2) + "\n")
    click.echo(f"Created {config_path}")


@main.command()
@click.option("--db", "db_path", default=None, help="Path to the SQLite database")
@click.pass_obj
def migrate(config: dict[str, Any], db_path: str | None) -> None:
    """Create or upgrade the database schema."""
    from db.migrations import get_schema_version, init_db

    path = _resolve_db_path(config, db_path)
    conn = init_db(path)
    try:
        click.echo(f"Database ready: {path} (schema v{get_schema_version(conn)})")
    finally:
        conn.close()


@main.command()
@click.option("--host", default=None, help="Bind address (default from config)")
@click.option("--port", default=None, type=int, help="Port (default from config)")
@click.option("--db", "db_path", default=None, help="Path to the SQLite database")
@click.pass_obj
def serve(
    config: dict[str, Any], host: str | None, port: int | None, db_path: str | None
) -> None:
    """Start the process-desk API server."""
    import uvicorn

    from api.app import create_app
    from db.migrations import init_db

    path = _resolve_db_path(config, db_path)
    init_db(path).close()

    app = create_app(db_path=path)
    uvicorn.run(app, host=host or config["host"], port=port or config["port"])


@main.command("list")
@click.option("--db", "db_path", default=None, help="Path to the SQLite database")
@click.pass_obj
def list_cmd(config: dict[str, Any], db_path: str | None) -> None:
    """Print all processes as JSON, newest first."""
    from db.migrations import init_db
    from process_desk.store import StoreError, list_processes

    conn = init_db(_resolve_db_path(config, db_path))
    try:
        processes = list_processes(conn)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        conn.close()

    click.echo(json.dumps(processes, indent=2, ensure_ascii=False))


@main.command("export")
@click.argument("path", type=click.Path(path_type=Path), default=Path("."))
@click.option("--db", "db_path", default=None, help="Path to the SQLite database")
@click.pass_obj
def export_cmd(config: dict[str, Any], path: Path, db_path: str | None) -> None:
    """Write a JSON backup to PATH (a file or a directory)."""
    from db.migrations import init_db
    from process_desk.backup import write_backup
    from process_desk.store import StoreError

    conn = init_db(_resolve_db_path(config, db_path))
    try:
        written = write_backup(conn, path)
    except StoreError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        conn.close()

    click.echo(f"Exported to {written}")


@main.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--db", "db_path", default=None, help="Path to the SQLite database")
@click.pass_obj
def import_cmd(config: dict[str, Any], path: Path, db_path: str | None) -> None:
    """Load a JSON backup from PATH."""
    from db.migrations import init_db
    from process_desk.backup import BackupFormatError, import_data, read_backup
    from process_desk.store import StoreError

    conn = init_db(_resolve_db_path(config, db_path))
    try:
        counts = import_data(conn, read_backup(path))
    except (BackupFormatError, StoreError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        conn.close()

    click.echo(
        f"Imported {counts['processes']} processes and "
        f"{counts['completed_actions']} completed actions"
    )
