"""Row model for the key/value table."""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class KeyValueRecord(BaseModel):
    """One stored row, live or not."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(description="Surrogate row id")
    key: str = Field(description="Key")
    value: Union[str, bytes] = Field(description="Stored value, text or binary")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last write timestamp")
    expires_at: Optional[datetime] = Field(
        default=None, description="Expiration timestamp, None if it never expires"
    )

    def is_live(self, now: Optional[datetime] = None) -> bool:
        """Whether the row would be visible to the store at ``now``."""
        if self.expires_at is None:
            return True
        return self.expires_at > (now or datetime.now(timezone.utc))

    @field_serializer("created_at", "updated_at", "expires_at")
    def serialize_datetime(self, dt: Optional[datetime], _info: Any) -> Optional[str]:
        """Serialize datetime to ISO format."""
        return dt.isoformat() if dt else None
