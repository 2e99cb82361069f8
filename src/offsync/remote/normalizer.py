"""
Conversions between local `Record` rows and wire-format records.

The replica and the remote store name one field differently: the local
`attachment` travels as `imageUrl`. `synced` is local-only state and never
leaves the client; `syncedAt` is server-only and never enters the replica.

No DB access here. Callers (gateway, orchestrator) handle persistence.
"""
from typing import Any, Dict, Iterable, List

from offsync.models.record import Record
from offsync.models.wire import RecordWire


def record_to_wire(record: Record) -> Dict[str, Any]:
    """Serialise a local record into a JSON-ready wire dict."""
    return RecordWire(
        id=record.id,
        title=record.title,
        description=record.description,
        image_url=record.attachment,
        created_at=record.created_at,
        updated_at=record.updated_at,
        deleted=record.deleted,
    ).to_json()


def records_to_wire(records: Iterable[Record]) -> List[Dict[str, Any]]:
    return [record_to_wire(r) for r in records]


def wire_to_record(wire: RecordWire, *, synced: bool = True) -> Record:
    """
    Materialise a remote record as a local row.

    Args:
        wire: Parsed remote record.
        synced: Value for the local `synced` flag. Remote-origin values are
            by definition held by the remote store, hence True by default.
    """
    return Record(
        id=wire.id,
        title=wire.title,
        description=wire.description,
        attachment=wire.image_url,
        created_at=wire.created_at,
        updated_at=wire.updated_at,
        deleted=wire.deleted,
        synced=synced,
    )
