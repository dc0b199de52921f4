"""Base model classes for the Interview Session Engine."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time used for every timestamp in the engine."""
    return datetime.now(timezone.utc)


class BaseModel(PydanticBaseModel):
    """Base model with common functionality."""

    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)


class TimestampedModel(BaseModel):
    """Base model with timestamp fields."""

    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")

    def update_timestamp(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = utcnow()
