"""Record store collaborators.

The engine persists four kinds of rows: thoughts, voice profiles, content
feedback and voice learning history. All of them go through the async
RecordStore protocol, a user-scoped table/row interface with equality filters.

Backends:
    InMemoryRecordStore - process-local dicts (default, and for tests)
    JsonFileRecordStore - InMemoryRecordStore persisted to one JSON file
    SupabaseRecordStore - PostgREST over httpx

Every backend raises PersistenceError when the underlying store rejects a
read or write.
"""

import copy
import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from scatterbrain.core.exceptions import PersistenceError
from scatterbrain.core.http_client import create_client, supabase_headers

logger = logging.getLogger(__name__)

THOUGHTS = "thoughts"
VOICE_PROFILES = "voice_profiles"
CONTENT_FEEDBACK = "content_feedback"
VOICE_LEARNING_HISTORY = "voice_learning_history"

Record = dict[str, Any]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@runtime_checkable
class RecordStore(Protocol):
    """Async table/row store with equality filters."""

    async def insert(self, table: str, record: Record) -> Record: ...

    async def get(self, table: str, record_id: str) -> Optional[Record]: ...

    async def find_one(self, table: str, **filters: Any) -> Optional[Record]: ...

    async def find(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Record]: ...

    async def count(self, table: str, filters: Optional[dict[str, Any]] = None) -> int: ...

    async def update(
        self, table: str, filters: dict[str, Any], changes: Record
    ) -> list[Record]: ...


def _matches(record: Record, filters: dict[str, Any]) -> bool:
    return all(record.get(key) == value for key, value in filters.items())


def _sort_key(column: str):
    # None sorts first ascending; rows missing the column still sort stably
    def key(record: Record) -> tuple[bool, Any]:
        value = record.get(column)
        return (value is not None, value if value is not None else "")

    return key


class InMemoryRecordStore:
    """Process-local record store.

    Rows are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Record]] = {}

    def _table(self, table: str) -> dict[str, Record]:
        return self._tables.setdefault(table, {})

    def _persist(self) -> None:
        """Hook for durable subclasses; called after every write."""

    async def insert(self, table: str, record: Record) -> Record:
        row = copy.deepcopy(record)
        row.setdefault("id", str(uuid.uuid4()))
        now = utc_now_iso()
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        rows = self._table(table)
        if row["id"] in rows:
            raise PersistenceError(f"Duplicate id {row['id']} in {table}")
        rows[row["id"]] = row
        self._persist()
        return copy.deepcopy(row)

    async def get(self, table: str, record_id: str) -> Optional[Record]:
        row = self._table(table).get(record_id)
        return copy.deepcopy(row) if row is not None else None

    async def find_one(self, table: str, **filters: Any) -> Optional[Record]:
        rows = await self.find(table, filters, limit=1)
        return rows[0] if rows else None

    async def find(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Record]:
        rows = [r for r in self._table(table).values() if _matches(r, filters or {})]
        if order_by:
            rows.sort(key=_sort_key(order_by), reverse=descending)
        end = None if limit is None else offset + limit
        return [copy.deepcopy(r) for r in rows[offset:end]]

    async def count(self, table: str, filters: Optional[dict[str, Any]] = None) -> int:
        return sum(1 for r in self._table(table).values() if _matches(r, filters or {}))

    async def update(
        self, table: str, filters: dict[str, Any], changes: Record
    ) -> list[Record]:
        updated = []
        for row in self._table(table).values():
            if _matches(row, filters):
                row.update(copy.deepcopy(changes))
                row["updated_at"] = changes.get("updated_at", utc_now_iso())
                updated.append(copy.deepcopy(row))
        if updated:
            self._persist()
        return updated


class JsonFileRecordStore(InMemoryRecordStore):
    """InMemoryRecordStore backed by a single JSON file.

    The file is loaded lazily on first use and rewritten after each write
    using a temp file plus atomic rename.

    Attributes:
        store_file: Path to the JSON file.
    """

    def __init__(self, store_file: str | Path):
        super().__init__()
        self.store_file = Path(store_file)
        self._loaded = False

    def _table(self, table: str) -> dict[str, Record]:
        self._ensure_loaded()
        return super()._table(table)

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.store_file.exists():
            return
        try:
            with open(self.store_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to load record store {self.store_file}: {e}")
        self._tables = data.get("tables", {})

    def _persist(self) -> None:
        payload = {"tables": self._tables, "last_updated": utc_now_iso()}
        try:
            self.store_file.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self.store_file.parent, prefix=".records_", suffix=".tmp"
            )
        except OSError as e:
            raise PersistenceError(f"Failed to write record store: {e}")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
            os.replace(temp_path, self.store_file)
        except OSError as e:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise PersistenceError(f"Failed to write record store: {e}")


class SupabaseRecordStore:
    """Record store speaking PostgREST to a Supabase project.

    Equality filters become ``column=eq.value`` query parameters.
    """

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = create_client(
            f"{url.rstrip('/')}/rest/v1",
            headers=supabase_headers(service_key),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _params(filters: Optional[dict[str, Any]]) -> dict[str, str]:
        params = {"select": "*"}
        for key, value in (filters or {}).items():
            if value is None:
                params[key] = "is.null"
            elif isinstance(value, bool):
                params[key] = f"eq.{str(value).lower()}"
            else:
                params[key] = f"eq.{value}"
        return params

    async def _request(self, method: str, table: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, f"/{table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Supabase %s %s failed: %s %s",
                method, table, e.response.status_code, e.response.text[:200],
            )
            raise PersistenceError(
                f"Store rejected {method} on {table}: {e.response.status_code}"
            )
        except httpx.HTTPError as e:
            logger.error("Supabase %s %s failed: %s", method, table, e)
            raise PersistenceError(f"Store unavailable for {table}: {e}")
        return response

    async def insert(self, table: str, record: Record) -> Record:
        response = await self._request(
            "POST",
            table,
            json=record,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise PersistenceError(f"Store returned no row for insert into {table}")
        return rows[0]

    async def get(self, table: str, record_id: str) -> Optional[Record]:
        return await self.find_one(table, id=record_id)

    async def find_one(self, table: str, **filters: Any) -> Optional[Record]:
        rows = await self.find(table, filters, limit=1)
        return rows[0] if rows else None

    async def find(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Record]:
        params = self._params(filters)
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)
        if offset:
            params["offset"] = str(offset)
        response = await self._request("GET", table, params=params)
        return response.json()

    async def count(self, table: str, filters: Optional[dict[str, Any]] = None) -> int:
        response = await self._request(
            "HEAD",
            table,
            params=self._params(filters),
            headers={"Prefer": "count=exact"},
        )
        # Content-Range: 0-9/42 or */0
        content_range = response.headers.get("content-range", "")
        _, _, total = content_range.partition("/")
        try:
            return int(total)
        except ValueError:
            raise PersistenceError(f"Store returned no count for {table}")

    async def update(
        self, table: str, filters: dict[str, Any], changes: Record
    ) -> list[Record]:
        body = {"updated_at": utc_now_iso(), **changes}
        params = self._params(filters)
        params.pop("select")
        response = await self._request(
            "PATCH",
            table,
            params=params,
            json=body,
            headers={"Prefer": "return=representation"},
        )
        return response.json()


def create_record_store(
    backend: str,
    *,
    store_file: Path | None = None,
    supabase_url: str | None = None,
    supabase_service_key: str | None = None,
) -> RecordStore:
    """Build the configured RecordStore backend."""
    if backend == "memory":
        return InMemoryRecordStore()
    if backend == "json":
        return JsonFileRecordStore(store_file or Path("data/records.json"))
    if backend == "supabase":
        if not (supabase_url and supabase_service_key):
            raise ValueError("supabase backend needs url and service key")
        return SupabaseRecordStore(supabase_url, supabase_service_key)
    raise ValueError(f"Unknown record store backend: {backend}")
