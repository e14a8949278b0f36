"""CLI command modules."""

from sqlkv.cli.commands import kv

__all__ = ["kv"]
