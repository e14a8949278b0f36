"""Main CLI entry point for sqlkv."""

import logging
from pathlib import Path
from typing import Optional

import typer

from sqlkv.cli.commands import kv

app = typer.Typer(
    name="sqlkv",
    help="sqlkv - A key-value store on SQLite",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log executed SQL and store activity"
    ),
):
    """
    sqlkv - A key-value store on SQLite
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    if ctx.invoked_subcommand is None:
        # No subcommand was invoked, show help
        print(ctx.get_help())
        raise typer.Exit(0)


app.add_typer(kv.app, name="kv", help="Key-value commands")


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None, help="Directory to initialize project in (default: current directory)"
    ),
    database: str = typer.Option(
        "sqlkv.db", "--database", "-d", help="SQLite database file"
    ),
    table: str = typer.Option(
        "key_values", "--table", "-t", help="Key-value table name"
    ),
    case_insensitive: bool = typer.Option(
        False, "--case-insensitive", help="Treat keys differing only in case as equal"
    ),
):
    """Initialize a new sqlkv project."""
    from sqlkv.config import Config, ProjectConfig
    from sqlkv.core.connection import DatabaseConnection
    from sqlkv.core.schema import create_kv_table

    config = Config(path)

    try:
        project_config = config.init_project(
            ProjectConfig(
                database=database,
                table_name=table,
                case_sensitive=not case_insensitive,
            )
        )
    except FileExistsError:
        typer.secho(
            f"❌ Project already exists in {config.project_dir}", fg=typer.colors.RED
        )
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED)
        raise typer.Exit(1)

    with DatabaseConnection(project_config.database_path(config.project_dir)) as conn:
        create_kv_table(conn, project_config.table_name, project_config.case_sensitive)

    typer.secho(
        f"✅ Initialized sqlkv project in {config.project_dir}", fg=typer.colors.GREEN
    )
    typer.secho(
        f"   Database: {project_config.database}, Table: {project_config.table_name}",
        fg=typer.colors.CYAN,
    )


@app.command()
def version():
    """Show sqlkv version."""
    from sqlkv import __version__

    typer.echo(f"sqlkv version {__version__}")


if __name__ == "__main__":
    app()
