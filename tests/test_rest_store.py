"""
Tests for wordbook.rest_store module.

Uses a fake session that serves a tiny in-memory collection so the
PocketBase request shapes can be checked without a server.
"""

import pytest
import requests

from wordbook.errors import StoreError
from wordbook.models import ENTRIES, ENTRY_TRANSLATIONS
from wordbook.rest_store import (
    PocketBaseRowStore,
    build_filter,
    escape_filter_value,
    record_to_row,
    row_to_record,
)
from wordbook.store import eq, in_


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.text = "" if payload is None else "body"

    def json(self):
        return self._payload


class FakeSession:
    """Records requests; GETs page through ``records``."""

    def __init__(self, records=None, per_page=None, fail_with=None):
        self.records = records or []
        self.per_page = per_page
        self.fail_with = fail_with
        self.calls = []

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": dict(params or {}), "json": json})
        if isinstance(self.fail_with, Exception):
            raise self.fail_with
        if self.fail_with:
            return FakeResponse(self.fail_with, {"message": "Something went wrong."})
        if method != "GET":
            return FakeResponse(200, {"id": "pb1"} if method != "DELETE" else None)

        per_page = self.per_page or int(params.get("perPage", 30))
        page = int(params.get("page", 1))
        start = (page - 1) * per_page
        items = self.records[start:start + per_page]
        total_pages = max(1, -(-len(self.records) // per_page))
        return FakeResponse(200, {"items": items, "page": page, "totalPages": total_pages})


BASE = "http://pb.local"


class TestFieldMapping:
    """Tests for the translation between rows and PocketBase records."""

    def test_row_to_record_maps_ids(self):
        record = row_to_record(ENTRIES, {"id": "e1", "dictionary_id": "d1", "word": "apple"})

        assert record == {"legacy_id": "e1", "dictionary_legacy_id": "d1", "word": "apple"}

    def test_record_to_row_keeps_known_columns(self):
        row = record_to_row(ENTRY_TRANSLATIONS, {
            "id": "pbid", "legacy_id": "t1", "entry_legacy_id": "e1",
            "language": "de", "origin": "Altenglisch", "collectionName": "entry_translations",
        })

        assert row["id"] == "t1"
        assert row["entry_id"] == "e1"
        assert row["origin"] == "Altenglisch"
        assert "collectionName" not in row

    def test_build_filter(self):
        expression = build_filter(ENTRIES, [eq("dictionary_id", "d1"), in_("id", ["a", "b"])])

        assert expression == 'dictionary_legacy_id="d1" && (legacy_id="a" || legacy_id="b")'

    def test_escape_filter_value(self):
        assert escape_filter_value('say "hi"') == 'say \\"hi\\"'


class TestPocketBaseRowStore:
    """Tests for PocketBaseRowStore."""

    def test_select_follows_pages(self):
        records = [{"id": f"pb{i}", "legacy_id": f"e{i}", "word": f"w{i}"} for i in range(5)]
        session = FakeSession(records, per_page=2)
        store = PocketBaseRowStore(BASE, session=session)

        rows = store.select(ENTRIES, [eq("dictionary_id", "d1")], order="-position")

        assert [r["id"] for r in rows] == ["e0", "e1", "e2", "e3", "e4"]
        assert len(session.calls) == 3
        first = session.calls[0]
        assert first["url"] == f"{BASE}/api/collections/dictionary_entries/records"
        assert first["params"]["filter"] == 'dictionary_legacy_id="d1"'
        assert first["params"]["sort"] == "-position"

    def test_empty_in_matches_nothing_without_request(self):
        session = FakeSession()
        store = PocketBaseRowStore(BASE, session=session)

        assert store.select(ENTRIES, [in_("id", [])]) == []
        assert store.delete(ENTRIES, [in_("id", [])]) == 0
        assert session.calls == []

    def test_insert_posts_mapped_record(self):
        session = FakeSession()
        PocketBaseRowStore(BASE, session=session).insert(ENTRIES, {"id": "e1", "dictionary_id": "d1", "word": "a"})

        [call] = session.calls
        assert call["method"] == "POST"
        assert call["json"] == {"legacy_id": "e1", "dictionary_legacy_id": "d1", "word": "a"}

    def test_update_patches_each_record(self):
        session = FakeSession([{"id": "pb1", "legacy_id": "e1"}, {"id": "pb2", "legacy_id": "e2"}])
        store = PocketBaseRowStore(BASE, session=session)

        count = store.update(ENTRIES, [in_("id", ["e1", "e2"])], {"id": "x", "word": "b"})

        assert count == 2
        patches = [c for c in session.calls if c["method"] == "PATCH"]
        assert [c["url"].rsplit("/", 1)[1] for c in patches] == ["pb1", "pb2"]
        assert patches[0]["json"] == {"word": "b"}

    def test_upsert_patches_existing_record(self):
        session = FakeSession([{"id": "pb7", "legacy_id": "t1", "entry_legacy_id": "e1", "language": "de"}])
        store = PocketBaseRowStore(BASE, session=session)

        store.upsert(ENTRY_TRANSLATIONS, {"entry_id": "e1", "language": "de", "origin": "A"}, ["entry_id", "language"])

        lookup, patch = session.calls
        assert lookup["params"]["filter"] == 'entry_legacy_id="e1" && language="de"'
        assert patch["method"] == "PATCH"
        assert patch["url"].endswith("/pb7")
        assert patch["json"] == {"origin": "A"}

    def test_upsert_inserts_when_missing(self):
        session = FakeSession()
        store = PocketBaseRowStore(BASE, session=session)

        store.upsert(ENTRY_TRANSLATIONS, {"entry_id": "e1", "language": "de", "origin": "A"}, ["entry_id", "language"])

        assert [c["method"] for c in session.calls] == ["GET", "POST"]
        assert session.calls[1]["json"]["entry_legacy_id"] == "e1"

    def test_http_error_becomes_store_error(self):
        store = PocketBaseRowStore(BASE, session=FakeSession(fail_with=400))

        with pytest.raises(StoreError) as exc_info:
            store.insert(ENTRIES, {"word": "a"})

        assert "Something went wrong." in str(exc_info.value)
        assert exc_info.value.operation == "insert"

    def test_network_error_becomes_store_error(self):
        store = PocketBaseRowStore(BASE, session=FakeSession(fail_with=requests.ConnectionError("refused")))

        with pytest.raises(StoreError):
            store.select(ENTRIES)

    def test_unknown_table(self):
        with pytest.raises(StoreError):
            PocketBaseRowStore(BASE, session=FakeSession()).select("users")
