"""CLI for sqlkv."""
