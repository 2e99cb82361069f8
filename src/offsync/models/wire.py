"""
Wire schemas for the remote items contract.

Keys are camelCase on the wire (`createdAt`, `imageUrl`, ...). Timestamps are
ISO 8601 UTC with millisecond precision and a trailing `Z`; parsed values are
normalised back to naive UTC datetimes.
"""
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


def format_timestamp(value: datetime) -> str:
    """Serialise a naive-UTC (or aware) datetime as `YYYY-MM-DDTHH:MM:SS.mmmZ`."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO 8601 string (or datetime) into a naive UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


class RecordWire(BaseModel):
    """A record as it travels between replica and remote store."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    title: str
    description: str
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    deleted: bool = False
    synced_at: Optional[datetime] = Field(default=None, alias="syncedAt")

    @field_validator("created_at", "updated_at", "synced_at", mode="before")
    @classmethod
    def _parse_ts(cls, v):
        if v is None:
            return v
        return parse_timestamp(v)

    @field_serializer("created_at", "updated_at", "synced_at")
    def _format_ts(self, v: Optional[datetime]):
        if v is None:
            return None
        return format_timestamp(v)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RecordChanges(BaseModel):
    """Partial update body for `PUT /items/{id}`."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    deleted: Optional[bool] = None


class BatchSyncRequest(BaseModel):
    items: List[RecordWire]


class ApiResponse(BaseModel):
    """Envelope wrapping every response: `{success, data?, error?, timestamp?, synced?}`."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    timestamp: Optional[str] = None
    synced: Optional[int] = None
