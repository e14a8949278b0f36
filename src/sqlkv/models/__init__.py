"""sqlkv models."""

from sqlkv.models.record import KeyValueRecord

__all__ = ["KeyValueRecord"]
