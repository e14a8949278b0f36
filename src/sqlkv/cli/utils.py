"""Utility functions for CLI commands."""

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, Optional, Tuple

import typer
from rich.console import Console
from rich.markup import escape

from sqlkv.config import Config, ProjectConfig, utc_now
from sqlkv.core.connection import DatabaseConnection
from sqlkv.core.schema import create_kv_table
from sqlkv.managers.kv import KVStore

console = Console()


def get_config() -> Tuple[Config, ProjectConfig]:
    """Get config and load data for the current project.

    Returns:
        tuple: (config, project_config)
    """
    config = Config()
    try:
        project_config = config.load()
    except FileNotFoundError:
        console.print("[red]❌ Config file not found. Run 'sqlkv init' first.[/red]")
        raise typer.Exit(1)

    return config, project_config


@contextmanager
def open_store() -> Iterator[Tuple[KVStore, DatabaseConnection]]:
    """Open the project database and yield a store bound to it.

    The table is created if it's missing, and the connection is closed on exit.
    """
    config, project_config = get_config()

    conn = DatabaseConnection(project_config.database_path(config.project_dir))
    try:
        create_kv_table(conn, project_config.table_name, project_config.case_sensitive)
        yield KVStore(lambda: conn, project_config.kv_config()), conn
    finally:
        conn.close()


def expires_in(ttl: Optional[int]) -> Optional[datetime]:
    """Turn a TTL in seconds into an absolute expiry."""
    if ttl is None:
        return None
    if ttl <= 0:
        console.print("[red]❌ --ttl must be a positive number of seconds[/red]")
        raise typer.Exit(1)
    return utc_now() + timedelta(seconds=ttl)


def fail(error: Exception) -> None:
    """Print an error in red and exit with status 1."""
    console.print(f"[red]❌ Error: {escape(str(error))}[/red]")
    raise typer.Exit(1)


def format_value(value) -> str:
    if value is None:
        return "(nil)"
    if isinstance(value, bytes):
        return repr(value)
    return value
