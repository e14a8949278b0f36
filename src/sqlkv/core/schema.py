"""Create and drop the key/value table."""

from sqlkv.core.connection import DatabaseConnection
from sqlkv.utils.validation import validate_identifier


def create_kv_table(
    conn: DatabaseConnection,
    table_name: str = "key_values",
    case_sensitive: bool = True,
) -> None:
    """Ensure the key/value table and its indexes exist.

    Args:
        conn: Connection to create the table on
        table_name: Name of the table
        case_sensitive: When False, keys compare with ``COLLATE NOCASE``
    """
    validate_identifier(table_name)
    collation = "" if case_sensitive else " COLLATE NOCASE"

    with conn.transaction():
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                "key" TEXT NOT NULL{collation},
                value BLOB NOT NULL,
                created_at DATETIME NOT NULL,
                updated_at DATETIME NOT NULL,
                expires_at DATETIME
            )
        """)

        conn.execute(f"""
            CREATE UNIQUE INDEX IF NOT EXISTS index_{table_name}_on_key
            ON {table_name} ("key")
        """)

        # Index for expiry filtering and pruning
        conn.execute(f"""
            CREATE INDEX IF NOT EXISTS index_{table_name}_on_expires_at
            ON {table_name} (expires_at)
        """)


def drop_kv_table(conn: DatabaseConnection, table_name: str = "key_values") -> None:
    """Drop the key/value table if it exists."""
    validate_identifier(table_name)
    conn.execute(f"DROP TABLE IF EXISTS {table_name}")
