"""Health route used by clients to probe reachability."""
from fastapi import APIRouter

from offsync.models.record import utcnow
from offsync.models.wire import format_timestamp

router = APIRouter()


@router.get("")
def health():
    return {"status": "ok", "timestamp": format_timestamp(utcnow())}
