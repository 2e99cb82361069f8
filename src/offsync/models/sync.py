"""Sync audit log model."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from offsync.models.record import utcnow


class SyncLog(SQLModel, table=True):
    """Records each executed sync run for audit and debugging."""

    id: Optional[int] = Field(default=None, primary_key=True)
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    status: str = "running"  # "running", "success", "failed"
    uploaded: int = 0
    downloaded: int = 0
    error_message: Optional[str] = None
