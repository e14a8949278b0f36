"""Configuration for key-value stores and sqlkv projects."""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple, Type

import toml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from sqlkv.utils.validation import validate_identifier

CONFIG_FILENAME = "sqlkv.toml"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class KVConfig(BaseModel):
    """Immutable settings for a KVStore, fixed at construction.

    ``encapsulated_errors`` defaults to ``(OSError,)``. SQLite reports transient
    failures such as ``database is locked`` as ``sqlite3.OperationalError``,
    which is not an ``OSError``; add it to have those raised as
    ``UnavailableError`` too.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    table_name: str = Field(default="key_values", description="Table holding the keys")
    encapsulated_errors: Tuple[Type[BaseException], ...] = Field(
        default=(OSError,),
        description="Exception types translated to UnavailableError on writes",
    )
    use_local_time: bool = Field(
        default=False,
        description="Evaluate expiry against `clock` instead of the database clock",
    )
    clock: Callable[[], datetime] = Field(
        default=utc_now, description="Local clock used when use_local_time is set"
    )
    case_sensitive: bool = Field(
        default=True, description="Whether keys differing only in case are distinct"
    )

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        validate_identifier(value)
        return value


class ProjectConfig(BaseModel):
    """Configuration for a sqlkv project stored in sqlkv.toml."""

    model_config = ConfigDict(
        extra="allow"
    )  # Allow additional fields for extensibility

    database: str = Field(default="sqlkv.db", description="SQLite database file")
    table_name: str = Field(default="key_values", description="Key/value table name")
    case_sensitive: bool = Field(default=True, description="Case-sensitive keys")

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        validate_identifier(value)
        return value

    def database_path(self, project_dir: Path) -> Path:
        """Resolve the database file relative to the project directory."""
        path = Path(self.database)
        return path if path.is_absolute() else project_dir / path

    def kv_config(self, **overrides) -> KVConfig:
        return KVConfig(
            table_name=self.table_name, case_sensitive=self.case_sensitive, **overrides
        )


class Config:
    """Manages sqlkv project configuration."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize config manager.

        Args:
            project_dir: Path to project directory. If None, uses SQLKV_PROJECT_DIR env var or current directory.
        """
        # Check environment variable first
        if project_dir is None:
            env_dir = os.environ.get("SQLKV_PROJECT_DIR")
            if env_dir:
                project_dir = Path(env_dir)

        self.project_dir = Path(project_dir) if project_dir else Path.cwd()
        self.config_path = self.project_dir / CONFIG_FILENAME
        self._config: Optional[ProjectConfig] = None

    @property
    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def load(self) -> ProjectConfig:
        """Load configuration from disk, with environment variable overrides."""
        if not self.exists:
            raise FileNotFoundError(f"Config file not found at {self.config_path}")

        with open(self.config_path, "r") as f:
            data = toml.load(f)

        self._apply_env_overrides(data)

        self._config = ProjectConfig(**data)
        return self._config

    def _apply_env_overrides(self, data: dict) -> None:
        """Apply environment variable overrides to configuration data."""
        if env_db := os.environ.get("SQLKV_DATABASE"):
            data["database"] = env_db

        if env_table := os.environ.get("SQLKV_TABLE"):
            data["table_name"] = env_table

    def save(self, config: Optional[ProjectConfig] = None) -> None:
        """Save configuration to disk.

        Args:
            config: Configuration to save. If None, saves current config.
        """
        if config:
            self._config = config

        if not self._config:
            raise ValueError("No configuration to save")

        self.project_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            toml.dump(self._config.model_dump(), f)

    def init_project(self, config: Optional[ProjectConfig] = None) -> ProjectConfig:
        """Write a new sqlkv.toml.

        Raises:
            FileExistsError: If the project already has a config file
        """
        if self.exists:
            raise FileExistsError(f"Config file already exists at {self.config_path}")

        self.save(config or ProjectConfig())
        return self._config
