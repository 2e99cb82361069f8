"""
Item routes: the remote contract the sync engine depends on.

The service is authoritative for ordering: every write stamps updatedAt and
syncedAt with the server clock, whatever the client sent. Tombstones
(deleted=true) are kept, hidden from GET /items, and served by
GET /items/sync so other replicas learn about deletions.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from offsync.db.engine import get_session
from offsync.models.record import utcnow
from offsync.models.remote_item import RemoteItem
from offsync.models.wire import (
    BatchSyncRequest,
    RecordChanges,
    RecordWire,
    format_timestamp,
    parse_timestamp,
)

router = APIRouter()


def _to_wire(item: RemoteItem) -> dict:
    return RecordWire(
        id=item.id,
        title=item.title,
        description=item.description,
        image_url=item.image_url,
        created_at=item.created_at,
        updated_at=item.updated_at,
        deleted=item.deleted,
        synced_at=item.synced_at,
    ).to_json()


def _upsert(session: Session, incoming: RecordWire) -> RemoteItem:
    """Create or overwrite by id. No timestamp comparison."""
    now = utcnow()
    item = session.get(RemoteItem, incoming.id)
    if item is None:
        item = RemoteItem(id=incoming.id, created_at=incoming.created_at)
    item.title = incoming.title
    item.description = incoming.description
    item.image_url = incoming.image_url
    item.deleted = incoming.deleted
    item.updated_at = now
    item.synced_at = now
    session.add(item)
    return item


@router.get("")
def list_items(session: Session = Depends(get_session)):
    """All live items, newest first."""
    items = session.exec(
        select(RemoteItem)
        .where(RemoteItem.deleted == False)  # noqa: E712
        .order_by(RemoteItem.created_at.desc())
    ).all()
    return {"success": True, "data": [_to_wire(i) for i in items]}


@router.get("/sync")
def items_for_sync(
    lastSync: Optional[str] = None,
    session: Session = Depends(get_session),
):
    """Items (tombstones included) changed after `lastSync`, plus server time."""
    # Captured before the query so nothing written concurrently is skipped next time.
    now = utcnow()
    query = select(RemoteItem)
    if lastSync:
        try:
            since = parse_timestamp(lastSync)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid lastSync timestamp")
        query = query.where(RemoteItem.updated_at > since)
    items = session.exec(query.order_by(RemoteItem.created_at.desc())).all()
    return {
        "success": True,
        "data": [_to_wire(i) for i in items],
        "timestamp": format_timestamp(now),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_item(body: RecordWire, session: Session = Depends(get_session)):
    if session.get(RemoteItem, body.id) is not None:
        raise HTTPException(status_code=409, detail=f"Item {body.id} already exists")
    item = _upsert(session, body)
    session.commit()
    session.refresh(item)
    return {"success": True, "data": _to_wire(item)}


@router.post("/sync")
def batch_sync(body: BatchSyncRequest, session: Session = Depends(get_session)):
    """Upsert every item by id. Later duplicates in one batch win."""
    latest = {incoming.id: incoming for incoming in body.items}
    items = [_upsert(session, incoming) for incoming in latest.values()]
    session.commit()
    for item in items:
        session.refresh(item)
    return {
        "success": True,
        "data": [_to_wire(i) for i in items],
        "synced": len(body.items),
    }


@router.put("/{item_id}")
def update_item(
    item_id: str,
    changes: RecordChanges,
    session: Session = Depends(get_session),
):
    item = session.get(RemoteItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    for k, v in changes.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(item, k, v)
    now = utcnow()
    item.updated_at = now
    item.synced_at = now
    session.add(item)
    session.commit()
    session.refresh(item)
    return {"success": True, "data": _to_wire(item)}


@router.delete("/{item_id}")
def delete_item(item_id: str, session: Session = Depends(get_session)):
    item = session.get(RemoteItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    session.delete(item)
    session.commit()
    return {"success": True, "message": "Item deleted"}
