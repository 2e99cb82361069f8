"""Local replica models: replicated records and the sync-metadata singleton."""
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

# Fields a caller may change through LocalReplica.mutate_local().
MUTABLE_FIELDS = frozenset({"title", "description", "attachment"})
# Mutable fields that may not be set to None.
REQUIRED_FIELDS = frozenset({"title", "description"})

METADATA_ROW_ID = 1


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_record_id() -> str:
    """Client-side id: creation time in epoch ms plus a random suffix."""
    return f"item_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class Record(SQLModel, table=True):
    """One replicated record. Never physically deleted; see `deleted`."""

    id: str = Field(primary_key=True)
    title: str
    description: str
    attachment: Optional[str] = None  # opaque, e.g. an image data URL

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)

    synced: bool = Field(default=False, index=True)
    deleted: bool = Field(default=False, index=True)


class SyncMetadata(SQLModel, table=True):
    """Singleton row (id=1). Absent until the first successful pull."""

    id: int = Field(default=METADATA_ROW_ID, primary_key=True)
    last_sync_time: datetime  # server clock
