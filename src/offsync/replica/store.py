"""
LocalReplica — the durable client-side copy of the record set.

Every public method opens its own Session and commits before returning, so a
mutation that returned successfully survives a process restart.

Dirty tracking: every local mutation (create, update, tombstone) sets
synced=False and refreshes updated_at. Only mark_synced() and pulled remote
values (via upsert_local) set synced=True; both are orchestrator calls.

The replica does no locking. Access is assumed single-threaded or serialised
by the caller (see SyncOrchestrator).
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlmodel import Session, select

from offsync.errors import InvalidInput, NotFound
from offsync.models.record import (
    METADATA_ROW_ID,
    MUTABLE_FIELDS,
    REQUIRED_FIELDS,
    Record,
    SyncMetadata,
    new_record_id,
    utcnow,
)
from offsync.models.sync import SyncLog


class LocalReplica:
    """Keyed record store plus the singleton sync-metadata row."""

    def __init__(self, engine):
        """
        Args:
            engine: SQLAlchemy engine (SQLModel create_engine result).
        """
        self.engine = engine

    # ─── Records ──────────────────────────────────────────────────────────────

    def get(self, record_id: str) -> Optional[Record]:
        with Session(self.engine) as s:
            return s.get(Record, record_id)

    def upsert_local(self, record: Record) -> Record:
        """Insert or fully replace a record by id. No pre-image check."""
        with Session(self.engine) as s:
            stored = s.merge(record)
            s.commit()
            s.refresh(stored)
            return stored

    def create_local(
        self,
        title: str,
        description: str,
        attachment: Optional[str] = None,
    ) -> Record:
        """Create a new dirty record with a fresh client-generated id."""
        now = utcnow()
        record = Record(
            id=new_record_id(),
            title=title,
            description=description,
            attachment=attachment,
            created_at=now,
            updated_at=now,
            synced=False,
            deleted=False,
        )
        with Session(self.engine) as s:
            s.add(record)
            s.commit()
            s.refresh(record)
        return record

    def mutate_local(self, record_id: str, changes: Dict[str, Any]) -> Record:
        """
        Merge `changes` into an existing record and mark it dirty.

        Raises:
            NotFound: if no record has this id.
            InvalidInput: if `changes` touches anything but title,
                description or attachment, or sets title or
                description to None.
        """
        illegal = set(changes) - MUTABLE_FIELDS
        if illegal:
            raise InvalidInput(f"Cannot change field(s): {', '.join(sorted(illegal))}")
        missing = sorted(k for k in REQUIRED_FIELDS if k in changes and changes[k] is None)
        if missing:
            raise InvalidInput(f"Field(s) cannot be empty: {', '.join(missing)}")

        with Session(self.engine) as s:
            record = self._require(s, record_id)
            for k, v in changes.items():
                setattr(record, k, v)
            record.updated_at = utcnow()
            record.synced = False
            s.add(record)
            s.commit()
            s.refresh(record)
            return record

    def tombstone(self, record_id: str) -> Record:
        """Mark a record deleted. It stays in the replica until (and after) sync."""
        with Session(self.engine) as s:
            record = self._require(s, record_id)
            record.deleted = True
            record.synced = False
            record.updated_at = utcnow()
            s.add(record)
            s.commit()
            s.refresh(record)
            return record

    def list_dirty(self) -> List[Record]:
        """All records pending upload, tombstones included. Order not guaranteed."""
        with Session(self.engine) as s:
            return list(s.exec(select(Record).where(Record.synced == False)).all())  # noqa: E712

    def list_visible(self) -> List[Record]:
        """Non-deleted records, newest first (what a UI would list)."""
        with Session(self.engine) as s:
            return list(
                s.exec(
                    select(Record)
                    .where(Record.deleted == False)  # noqa: E712
                    .order_by(Record.created_at.desc())
                ).all()
            )

    def mark_synced(self, ids: Iterable[str], at: datetime) -> int:
        """
        Set synced=True and updated_at=`at` for every id present.

        Unknown ids are ignored, so the call is idempotent.

        Returns:
            Number of records updated.
        """
        updated = 0
        with Session(self.engine) as s:
            for record_id in ids:
                record = s.get(Record, record_id)
                if record is None:
                    continue
                record.synced = True
                record.updated_at = at
                s.add(record)
                updated += 1
            s.commit()
        return updated

    # ─── Sync metadata ────────────────────────────────────────────────────────

    def read_metadata(self) -> Optional[datetime]:
        """Return last_sync_time, or None if this replica has never synced."""
        with Session(self.engine) as s:
            meta = s.get(SyncMetadata, METADATA_ROW_ID)
            return meta.last_sync_time if meta else None

    def write_metadata(self, last_sync_time: datetime) -> None:
        with Session(self.engine) as s:
            meta = s.get(SyncMetadata, METADATA_ROW_ID)
            if meta is None:
                meta = SyncMetadata(id=METADATA_ROW_ID, last_sync_time=last_sync_time)
            else:
                meta.last_sync_time = last_sync_time
            s.add(meta)
            s.commit()

    # ─── Sync audit log ───────────────────────────────────────────────────────

    def start_sync_log(self) -> SyncLog:
        log = SyncLog(started_at=utcnow(), status="running")
        with Session(self.engine) as s:
            s.add(log)
            s.commit()
            s.refresh(log)
        return log

    def finish_sync_log(
        self,
        log: SyncLog,
        *,
        status: str,
        uploaded: int = 0,
        downloaded: int = 0,
        error_message: Optional[str] = None,
    ) -> None:
        with Session(self.engine) as s:
            db_log = s.get(SyncLog, log.id)
            db_log.status = status
            db_log.finished_at = utcnow()
            db_log.uploaded = uploaded
            db_log.downloaded = downloaded
            db_log.error_message = error_message
            s.add(db_log)
            s.commit()

    def latest_sync_log(self) -> Optional[SyncLog]:
        with Session(self.engine) as s:
            return s.exec(
                select(SyncLog).order_by(SyncLog.id.desc())
            ).first()

    # ─── Internal helpers ─────────────────────────────────────────────────────

    @staticmethod
    def _require(s: Session, record_id: str) -> Record:
        record = s.get(Record, record_id)
        if record is None:
            raise NotFound(f"Record {record_id!r} not found")
        return record
