"""
Async HTTP client for the remote items contract.

RemoteGateway is a pure transport: it serialises records, unwraps the
`{success, data, error, timestamp, synced}` envelope and maps failures onto
the offsync error taxonomy. It never compares timestamps and never retries;
both are SyncOrchestrator decisions.

Error mapping:
  - transport failure / timeout      → NetworkError
  - 404                              → NotFound
  - 409                              → Conflict
  - 400 / 422                        → InvalidInput
  - any other non-2xx, success=false → NetworkError
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from offsync.errors import Conflict, InvalidInput, NetworkError, NotFound
from offsync.models.record import Record
from offsync.models.wire import ApiResponse, RecordWire, format_timestamp, parse_timestamp
from offsync.remote.normalizer import record_to_wire, records_to_wire

logger = logging.getLogger(__name__)


@dataclass
class SyncDelta:
    """Result of fetch_since(): changed records plus the server's clock."""

    records: List[RecordWire] = field(default_factory=list)
    server_time: Optional[datetime] = None


class RemoteGateway:
    """
    Thin async wrapper over the remote items service.

    Usage:
        async with RemoteGateway("http://localhost:8000") as gw:
            delta = await gw.fetch_since(None)
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Service root, e.g. "http://localhost:8000".
            timeout: Per-request timeout in seconds.
            client: Pre-built httpx.AsyncClient (tests inject one with a
                MockTransport or ASGITransport). Owned by the caller.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RemoteGateway":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ─── Contract ─────────────────────────────────────────────────────────────

    async def fetch_all(self) -> List[RecordWire]:
        """GET /items — every record the service currently lists."""
        envelope = await self._request("GET", "/items")
        return self._parse_records(envelope.data)

    async def fetch_since(self, since: Optional[datetime]) -> SyncDelta:
        """GET /items/sync — records with updatedAt > `since` (all if None)."""
        params = {"lastSync": format_timestamp(since)} if since else None
        envelope = await self._request("GET", "/items/sync", params=params)
        server_time = None
        if envelope.timestamp:
            try:
                server_time = parse_timestamp(envelope.timestamp)
            except ValueError as exc:
                raise NetworkError(f"Malformed server timestamp: {envelope.timestamp!r}") from exc
        return SyncDelta(records=self._parse_records(envelope.data), server_time=server_time)

    async def create(self, record: Record) -> RecordWire:
        """POST /items — fails with Conflict if the id already exists."""
        envelope = await self._request("POST", "/items", json=record_to_wire(record))
        return self._parse_record(envelope.data)

    async def batch_upsert(self, records: Sequence[Record]) -> int:
        """
        POST /items/sync — create-or-overwrite every record by id.

        Returns:
            Count of records the service accepted.
        """
        envelope = await self._request(
            "POST", "/items/sync", json={"items": records_to_wire(records)}
        )
        return envelope.synced if envelope.synced is not None else len(records)

    async def update(self, record_id: str, changes: Dict[str, Any]) -> RecordWire:
        """PUT /items/{id} — `changes` uses wire keys (imageUrl, ...)."""
        envelope = await self._request("PUT", f"/items/{record_id}", json=changes)
        return self._parse_record(envelope.data)

    async def delete(self, record_id: str) -> None:
        """DELETE /items/{id} — NotFound if absent."""
        await self._request("DELETE", f"/items/{record_id}")

    async def check_health(self) -> bool:
        """GET /health. Never raises; any failure means unreachable."""
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError:
            return False
        return response.is_success

    # ─── Internal helpers ─────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs) -> ApiResponse:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        envelope = self._parse_envelope(response)
        error = envelope.error if envelope else None
        status = response.status_code

        if status == 404:
            raise NotFound(error or f"{path} not found")
        if status == 409:
            raise Conflict(error or f"{path} conflict")
        if status in (400, 422):
            raise InvalidInput(error or f"{path} rejected payload")
        if not response.is_success:
            logger.warning("%s %s returned HTTP %s: %s", method, path, status, error)
            raise NetworkError(f"HTTP error! status: {status}")
        if envelope is None or not envelope.success:
            raise NetworkError(error or f"{method} {path} reported failure")
        return envelope

    @staticmethod
    def _parse_envelope(response: httpx.Response) -> Optional[ApiResponse]:
        try:
            return ApiResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            return None

    @staticmethod
    def _parse_record(raw: Any) -> RecordWire:
        try:
            return RecordWire.model_validate(raw)
        except ValidationError as exc:
            raise NetworkError(f"Malformed record in response: {exc}") from exc

    @classmethod
    def _parse_records(cls, raw: Any) -> List[RecordWire]:
        if not isinstance(raw, list):
            return []
        return [cls._parse_record(item) for item in raw]
