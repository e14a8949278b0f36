"""Key-value commands for sqlkv CLI."""

from typing import List, Optional

import typer
from rich.markup import escape
from rich.table import Table as RichTable

from sqlkv.cli.utils import console, expires_in, fail, format_value, open_store
from sqlkv.models.record import KeyValueRecord
from sqlkv.sql import SQL

app = typer.Typer(help="Key-value commands", invoke_without_command=True)


@app.callback()
def callback(ctx: typer.Context):
    """Read and write keys in the project's key-value table."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@app.command()
def get(key: str = typer.Argument(..., help="Key to read")):
    """Print the value of a key."""
    with open_store() as (store, _):
        result = store.get(key)

    if not result.ok:
        fail(result.error)

    console.print(format_value(result.unwrap()), markup=False, highlight=False)


@app.command("set")
def set_key(
    key: str = typer.Argument(..., help="Key to write"),
    value: str = typer.Argument(..., help="Value to store"),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", help="Expire the key after this many seconds"
    ),
):
    """Set a key, replacing any previous value."""
    expires = expires_in(ttl)

    with open_store() as (store, _):
        try:
            store.set(key, value, expires=expires)
        except Exception as e:
            fail(e)

    console.print(f"[green]✅ Set '{escape(key)}'[/green]")


@app.command()
def setnx(
    key: str = typer.Argument(..., help="Key to write"),
    value: str = typer.Argument(..., help="Value to store"),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", help="Expire the key after this many seconds"
    ),
):
    """Set a key only if it isn't already set."""
    expires = expires_in(ttl)

    with open_store() as (store, _):
        try:
            created = store.setnx(key, value, expires=expires)
        except Exception as e:
            fail(e)

    if created:
        console.print(f"[green]✅ Set '{escape(key)}'[/green]")
    else:
        console.print(f"[yellow]'{escape(key)}' is already set[/yellow]")


@app.command()
def incr(
    key: str = typer.Argument(..., help="Key to increment"),
    by: int = typer.Option(1, "--by", "-b", help="Amount to add, may be negative"),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", help="Expire the key after this many seconds"
    ),
    touch_on_insert: bool = typer.Option(
        False,
        "--touch-on-insert",
        help="Only apply --ttl when the key is created or had expired",
    ),
):
    """Atomically increment an integer value."""
    expires = expires_in(ttl)

    with open_store() as (store, _):
        try:
            value = store.increment(
                key, amount=by, expires=expires, touch_on_insert=touch_on_insert
            )
        except Exception as e:
            fail(e)

    console.print(str(value), markup=False, highlight=False)


@app.command("del")
def delete(keys: List[str] = typer.Argument(..., help="Keys to delete")):
    """Delete one or more keys."""
    with open_store() as (store, _):
        try:
            store.mdelete(keys)
        except Exception as e:
            fail(e)

    console.print(f"[green]✅ Deleted {len(keys)} key(s)[/green]")


@app.command()
def exists(key: str = typer.Argument(..., help="Key to check")):
    """Print whether a key is set and not expired."""
    with open_store() as (store, _):
        result = store.exists(key)

    if not result.ok:
        fail(result.error)

    console.print("true" if result.unwrap() else "false", highlight=False)


@app.command()
def ttl(key: str = typer.Argument(..., help="Key to inspect")):
    """Print the expiration time of a key."""
    with open_store() as (store, _):
        result = store.ttl(key)

    if not result.ok:
        fail(result.error)

    expires = result.unwrap()
    if expires is None:
        console.print("[dim]No expiry[/dim]")
    else:
        console.print(expires.isoformat(), highlight=False)


@app.command()
def prune():
    """Delete expired keys."""
    with open_store() as (store, _):
        try:
            removed = store.prune_expired()
        except Exception as e:
            fail(e)

    console.print(f"[green]✅ Pruned {removed} expired key(s)[/green]")


@app.command("list")
def list_keys(
    limit: int = typer.Option(100, "--limit", "-l", help="Maximum number of rows"),
):
    """List stored rows, expired ones included."""
    with open_store() as (store, conn):
        try:
            records = SQL(f"""
                SELECT id, "key", value, created_at, updated_at, expires_at
                FROM {store.table_name}
                ORDER BY "key"
                LIMIT :limit
            """, {"limit": limit}, connection=conn).models(KeyValueRecord)
        except Exception as e:
            fail(e)

    if not records:
        console.print("[yellow]No keys[/yellow]")
        return

    table = RichTable(title=f"Keys ({len(records)} rows)")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Expires At")
    table.add_column("Live")

    for record in records:
        table.add_row(
            escape(record.key),
            escape(format_value(record.value)),
            record.expires_at.isoformat() if record.expires_at else "",
            "yes" if record.is_live() else "no",
        )

    console.print(table)
