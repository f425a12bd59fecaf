"""
``RowStore`` backed by a PocketBase server.

Each table is a PocketBase collection. PocketBase assigns its own record ids,
so the dictionary ids live in ``legacy_id`` and every owner reference in
``<owner>_legacy_id``. Rows are translated at this boundary; callers only see
the column names of ``wordbook.store``.

Filters are sent as PocketBase filter expressions (``field="value"`` joined
by ``&&``, an ``in`` as a parenthesised ``||`` group). Updates and deletes
are applied record by record; upsert looks the record up by its conflict keys
and then PATCHes or POSTs.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

import requests

from .errors import StoreError
from .models import (
    DEFINITION_TRANSLATIONS,
    DEFINITIONS,
    DICTIONARIES,
    DICTIONARY_TRANSLATIONS,
    ENTRIES,
    ENTRY_TRANSLATIONS,
)
from .store import TABLE_COLUMNS, Filter, RowStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15
PAGE_SIZE = 500

FIELD_MAP: Dict[str, Dict[str, str]] = {
    DICTIONARIES: {"id": "legacy_id"},
    ENTRIES: {"id": "legacy_id", "dictionary_id": "dictionary_legacy_id"},
    DEFINITIONS: {"id": "legacy_id", "entry_id": "entry_legacy_id"},
    DICTIONARY_TRANSLATIONS: {"id": "legacy_id", "dictionary_id": "dictionary_legacy_id"},
    ENTRY_TRANSLATIONS: {"id": "legacy_id", "entry_id": "entry_legacy_id"},
    DEFINITION_TRANSLATIONS: {"id": "legacy_id", "definition_id": "definition_legacy_id"},
}


def map_field(table: str, name: str) -> str:
    return FIELD_MAP.get(table, {}).get(name, name)


def escape_filter_value(value: Any) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def build_filter(table: str, filters: Optional[List[Filter]]) -> str:
    """Render filters as a PocketBase filter expression."""
    clauses = []
    for f in filters or []:
        name = map_field(table, f.field)
        if f.op == "eq":
            clauses.append(f'{name}="{escape_filter_value(f.values[0])}"')
        else:
            inner = " || ".join(f'{name}="{escape_filter_value(v)}"' for v in f.values)
            clauses.append(f"({inner})")
    return " && ".join(clauses)


def row_to_record(table: str, row: Dict[str, Any]) -> Dict[str, Any]:
    return {map_field(table, k): v for k, v in row.items()}


def record_to_row(table: str, record: Dict[str, Any]) -> Dict[str, Any]:
    """Keep the known columns of ``table``, reading mapped ones from their PocketBase names."""
    return {column: record.get(map_field(table, column)) for column in TABLE_COLUMNS[table]}


def _matches_nothing(filters: Optional[List[Filter]]) -> bool:
    return any(f.op == "in" and not f.values for f in filters or [])


class PocketBaseRowStore(RowStore):
    """Row store talking to the PocketBase records API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, table: str, record_id: Optional[str] = None) -> str:
        if table not in TABLE_COLUMNS:
            raise StoreError(f"Unknown table: {table}", table=table)
        url = f"{self.base_url}/api/collections/{table}/records"
        return f"{url}/{record_id}" if record_id else url

    def _request(
        self,
        method: str,
        table: str,
        operation: str,
        record_id: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = self._url(table, record_id)
        try:
            response = self.session.request(
                method, url, params=params, json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StoreError(f"{operation} on {table} failed: {e}", table=table, operation=operation)

        try:
            data = response.json() if response.text else {}
        except ValueError:
            data = {}

        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise StoreError(
                f"{operation} on {table} failed: {message or f'PocketBase error {response.status_code}'}",
                table=table,
                operation=operation,
            )
        return data if isinstance(data, dict) else {}

    def _list_records(
        self,
        table: str,
        filters: Optional[List[Filter]],
        order: Optional[str] = None,
        operation: str = "select",
    ) -> List[Dict[str, Any]]:
        """Fetch every matching record, following pagination."""
        params: Dict[str, Any] = {"perPage": PAGE_SIZE}
        expression = build_filter(table, filters)
        if expression:
            params["filter"] = expression
        if order:
            prefix = "-" if order.startswith("-") else ""
            params["sort"] = prefix + map_field(table, order.lstrip("-"))

        records: List[Dict[str, Any]] = []
        page = 1
        while True:
            params["page"] = page
            data = self._request("GET", table, operation, params=params)
            records.extend(data.get("items") or [])
            if page >= int(data.get("totalPages") or 1):
                break
            page += 1
        return records

    def select(
        self,
        table: str,
        filters: Optional[List[Filter]] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        if _matches_nothing(filters):
            return []
        return [record_to_row(table, r) for r in self._list_records(table, filters, order)]

    def insert(self, table: str, row: Dict[str, Any]) -> None:
        row = dict(row)
        row.setdefault("id", str(uuid.uuid4()))
        self._request("POST", table, "insert", payload=row_to_record(table, row))
        logger.debug(f"Inserted {table} row {row['id']}")

    def update(self, table: str, filters: List[Filter], patch: Dict[str, Any]) -> int:
        if _matches_nothing(filters):
            return 0
        payload = row_to_record(table, {k: v for k, v in patch.items() if k != "id"})
        records = self._list_records(table, filters, operation="update")
        for record in records:
            self._request("PATCH", table, "update", record_id=record["id"], payload=payload)
        return len(records)

    def upsert(self, table: str, row: Dict[str, Any], conflict_keys: List[str]) -> None:
        missing = [k for k in conflict_keys if row.get(k) is None]
        if missing:
            raise StoreError(
                f"upsert on {table} needs values for {', '.join(missing)}",
                table=table, operation="upsert",
            )

        expression = " && ".join(
            f'{map_field(table, k)}="{escape_filter_value(row[k])}"' for k in conflict_keys
        )
        data = self._request(
            "GET", table, "upsert", params={"page": 1, "perPage": 1, "filter": expression}
        )
        items = data.get("items") or []
        if items:
            patch = {k: v for k, v in row.items() if k not in conflict_keys and k != "id"}
            self._request("PATCH", table, "upsert", record_id=items[0]["id"], payload=row_to_record(table, patch))
        else:
            self.insert(table, row)

    def delete(self, table: str, filters: List[Filter]) -> int:
        if _matches_nothing(filters):
            return 0
        records = self._list_records(table, filters, operation="delete")
        for record in records:
            self._request("DELETE", table, "delete", record_id=record["id"])
        return len(records)
