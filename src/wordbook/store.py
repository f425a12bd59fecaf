"""
Row store interface and the SQLite implementation.

The rest of the package talks to storage only through ``RowStore``:

- ``select(table, filters, order)`` -> list of row dicts
- ``insert(table, row)``
- ``update(table, filters, patch)``
- ``upsert(table, row, conflict_keys)``: update the row matching the conflict
  keys, insert otherwise
- ``delete(table, filters)``

Filters are built with ``eq()`` and ``in_()`` and are AND-ed together.
Every failure surfaces as ``StoreError``; nothing is retried or rolled back.

``SQLiteRowStore`` is the local backend. Each call opens its own connection
and commits before returning, so a save is a sequence of independent writes,
exactly like the hosted backend.
"""

import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .errors import ConfigurationError, StoreError
from .models import (
    DEFINITION_TRANSLATIONS,
    DEFINITIONS,
    DICTIONARIES,
    DICTIONARY_TRANSLATIONS,
    ENTRIES,
    ENTRY_TRANSLATIONS,
)
from .paths import get_default_db_path

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    """Return current UTC time as ISO format string."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# FILTERS
# =============================================================================

@dataclass(frozen=True)
class Filter:
    """A single column condition: ``eq`` (one value) or ``in`` (many)."""

    field: str
    op: str
    values: tuple = field(default_factory=tuple)


def eq(field_name: str, value: Any) -> Filter:
    """Column equals value."""
    return Filter(field_name, "eq", (value,))


def in_(field_name: str, values: Sequence[Any]) -> Filter:
    """Column is one of values. An empty list matches no rows."""
    return Filter(field_name, "in", tuple(values))


# =============================================================================
# INTERFACE
# =============================================================================

class RowStore(ABC):
    """Generic table store consumed by the dictionary core."""

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[List[Filter]] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Return matching rows. ``order`` is a column name, ``-column`` for descending."""

    @abstractmethod
    def insert(self, table: str, row: Dict[str, Any]) -> None:
        """Insert one row."""

    @abstractmethod
    def update(self, table: str, filters: List[Filter], patch: Dict[str, Any]) -> int:
        """Apply ``patch`` to every matching row. Returns rows affected."""

    @abstractmethod
    def upsert(self, table: str, row: Dict[str, Any], conflict_keys: List[str]) -> None:
        """Update the row matching ``conflict_keys`` or insert ``row``."""

    @abstractmethod
    def delete(self, table: str, filters: List[Filter]) -> int:
        """Delete every matching row. Returns rows affected."""


# =============================================================================
# SQLITE BACKEND
# =============================================================================

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Meta table for schema version tracking
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS dictionaries (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS dictionary_entries (
    id TEXT PRIMARY KEY,
    dictionary_id TEXT NOT NULL,
    word TEXT NOT NULL,
    ipa TEXT,
    origin TEXT,
    audio_url TEXT,
    color_combo INTEGER,
    position INTEGER,
    slug TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (dictionary_id) REFERENCES dictionaries(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_entries_dictionary ON dictionary_entries(dictionary_id);
CREATE INDEX IF NOT EXISTS idx_entries_slug ON dictionary_entries(slug);

CREATE TABLE IF NOT EXISTS definitions (
    id TEXT PRIMARY KEY,
    entry_id TEXT NOT NULL,
    grammatical_class TEXT NOT NULL,
    meaning TEXT NOT NULL,
    example TEXT,
    position INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (entry_id) REFERENCES dictionary_entries(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_definitions_entry ON definitions(entry_id);

CREATE TABLE IF NOT EXISTS dictionary_translations (
    id TEXT PRIMARY KEY,
    dictionary_id TEXT NOT NULL,
    language TEXT NOT NULL CHECK (language IN ('de', 'pt')),
    title TEXT,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (dictionary_id, language),
    FOREIGN KEY (dictionary_id) REFERENCES dictionaries(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS entry_translations (
    id TEXT PRIMARY KEY,
    entry_id TEXT NOT NULL,
    language TEXT NOT NULL CHECK (language IN ('de', 'pt')),
    origin TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (entry_id, language),
    FOREIGN KEY (entry_id) REFERENCES dictionary_entries(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS definition_translations (
    id TEXT PRIMARY KEY,
    definition_id TEXT NOT NULL,
    language TEXT NOT NULL CHECK (language IN ('de', 'pt')),
    grammatical_class TEXT,
    meaning TEXT,
    example TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (definition_id, language),
    FOREIGN KEY (definition_id) REFERENCES definitions(id) ON DELETE CASCADE
);
"""

# Known columns per table; every identifier that reaches SQL is checked here
TABLE_COLUMNS: Dict[str, List[str]] = {
    DICTIONARIES: ["id", "title", "description", "created_at", "updated_at"],
    ENTRIES: [
        "id", "dictionary_id", "word", "ipa", "origin", "audio_url",
        "color_combo", "position", "slug", "created_at", "updated_at",
    ],
    DEFINITIONS: [
        "id", "entry_id", "grammatical_class", "meaning", "example",
        "position", "created_at", "updated_at",
    ],
    DICTIONARY_TRANSLATIONS: [
        "id", "dictionary_id", "language", "title", "description",
        "created_at", "updated_at",
    ],
    ENTRY_TRANSLATIONS: [
        "id", "entry_id", "language", "origin", "created_at", "updated_at",
    ],
    DEFINITION_TRANSLATIONS: [
        "id", "definition_id", "language", "grammatical_class", "meaning",
        "example", "created_at", "updated_at",
    ],
}


def init_db(db_path: Optional[Path] = None, force: bool = False) -> Path:
    """
    Initialize the database with schema.

    Args:
        db_path: Path to the database file. Uses default if None.
        force: If True, recreate the database even if it exists.

    Returns:
        Path to the database file.
    """
    db_path = Path(db_path) if db_path is not None else get_default_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    if db_path.exists() and force:
        logger.info(f"Removing existing database: {db_path}")
        db_path.unlink()

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.executescript(SCHEMA_SQL)
        cursor.execute("SELECT value FROM meta WHERE key = 'schema_version'")
        row = cursor.fetchone()
        if row and int(row[0]) != SCHEMA_VERSION:
            logger.warning(
                f"Schema version mismatch: DB has v{row[0]}, expected v{SCHEMA_VERSION}"
            )
        elif row is None:
            cursor.execute(
                "INSERT INTO meta (key, value, updated_at) VALUES (?, ?, ?)",
                ("schema_version", str(SCHEMA_VERSION), _utcnow()),
            )
            logger.info(f"Database initialized with schema version {SCHEMA_VERSION}")
        conn.commit()
    except sqlite3.Error as e:
        raise StoreError(f"Could not initialize database {db_path}: {e}")
    finally:
        conn.close()

    return db_path


class SQLiteRowStore(RowStore):
    """``RowStore`` backed by a local SQLite file."""

    def __init__(self, db_path: Optional[Path] = None):
        """Open an existing database created by ``init_db``."""
        self.db_path = Path(db_path) if db_path is not None else get_default_db_path()

        if not self.db_path.exists():
            raise ConfigurationError(f"Database not found: {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _columns(self, table: str) -> List[str]:
        try:
            return TABLE_COLUMNS[table]
        except KeyError:
            raise StoreError(f"Unknown table: {table}", table=table)

    def _check_columns(self, table: str, names) -> None:
        known = self._columns(table)
        unknown = [n for n in names if n not in known]
        if unknown:
            raise StoreError(
                f"Unknown column(s) for {table}: {', '.join(unknown)}", table=table
            )

    def _where(self, table: str, filters: Optional[List[Filter]]) -> tuple:
        if not filters:
            return "", []
        self._check_columns(table, [f.field for f in filters])

        clauses = []
        params: List[Any] = []
        for f in filters:
            if f.op == "eq":
                clauses.append(f"{f.field} = ?")
                params.append(f.values[0])
            elif not f.values:
                clauses.append("0")
            else:
                placeholders = ", ".join("?" for _ in f.values)
                clauses.append(f"{f.field} IN ({placeholders})")
                params.extend(f.values)
        return " WHERE " + " AND ".join(clauses), params

    def _execute(self, table: str, operation: str, sql: str, params: List[Any]) -> tuple:
        """Run one statement in its own connection. Returns (rows, rowcount)."""
        conn = self._connect()
        try:
            cursor = conn.execute(sql, params)
            rows = cursor.fetchall() if operation == "select" else []
            conn.commit()
            return rows, cursor.rowcount
        except sqlite3.Error as e:
            logger.debug(f"SQL failed ({operation} {table}): {sql}")
            raise StoreError(f"{operation} on {table} failed: {e}", table=table, operation=operation)
        finally:
            conn.close()

    def select(
        self,
        table: str,
        filters: Optional[List[Filter]] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        where, params = self._where(table, filters)
        sql = f"SELECT * FROM {table}{where}"
        if order:
            column = order.lstrip("-")
            self._check_columns(table, [column])
            direction = "DESC" if order.startswith("-") else "ASC"
            sql += f" ORDER BY {column} {direction}"

        rows, _ = self._execute(table, "select", sql, params)
        return [dict(row) for row in rows]

    def insert(self, table: str, row: Dict[str, Any]) -> None:
        row = dict(row)
        now = _utcnow()
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        self._check_columns(table, row.keys())

        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        self._execute(
            table, "insert",
            f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
            list(row.values()),
        )
        logger.debug(f"Inserted {table} row {row['id']}")

    def update(self, table: str, filters: List[Filter], patch: Dict[str, Any]) -> int:
        patch = {k: v for k, v in patch.items() if k not in ("id", "created_at")}
        patch["updated_at"] = _utcnow()
        self._check_columns(table, patch.keys())

        where, params = self._where(table, filters)
        set_clause = ", ".join(f"{k} = ?" for k in patch)
        _, rowcount = self._execute(
            table, "update",
            f"UPDATE {table} SET {set_clause}{where}",
            list(patch.values()) + params,
        )
        return rowcount

    def upsert(self, table: str, row: Dict[str, Any], conflict_keys: List[str]) -> None:
        missing = [k for k in conflict_keys if row.get(k) is None]
        if missing:
            raise StoreError(
                f"upsert on {table} needs values for {', '.join(missing)}",
                table=table, operation="upsert",
            )

        filters = [eq(k, row[k]) for k in conflict_keys]
        if self.select(table, filters):
            patch = {k: v for k, v in row.items() if k not in conflict_keys}
            self.update(table, filters, patch)
        else:
            self.insert(table, row)

    def delete(self, table: str, filters: List[Filter]) -> int:
        where, params = self._where(table, filters)
        _, rowcount = self._execute(table, "delete", f"DELETE FROM {table}{where}", params)
        return rowcount
