"""Server-side item model used by the reference remote service."""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from offsync.models.record import utcnow


class RemoteItem(SQLModel, table=True):
    """
    One row per item held by the authoritative store.

    `updated_at` and `synced_at` are stamped with the server clock on every
    write, so `GET /items/sync?lastSync=` is ordered by server time.
    """

    id: str = Field(primary_key=True)
    title: str
    description: str
    image_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, index=True)
    synced_at: datetime = Field(default_factory=utcnow)
    deleted: bool = Field(default=False, index=True)
