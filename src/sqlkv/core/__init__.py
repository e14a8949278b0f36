"""Core sqlkv functionality."""

from sqlkv.core.connection import DatabaseConnection
from sqlkv.core.schema import create_kv_table, drop_kv_table

__all__ = ["DatabaseConnection", "create_kv_table", "drop_kv_table"]
