"""
Typed access to the dictionary tables.

``DictionaryRepository`` wraps a ``RowStore`` for one dictionary and converts
raw rows into the records of ``wordbook.models``. The save, overlay and import
code only ever talk to this class.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from .errors import ConfigurationError
from .models import (
    DEFAULT_DICTIONARY_ID,
    DEFINITION_TRANSLATIONS,
    DEFINITIONS,
    DICTIONARIES,
    DICTIONARY_TRANSLATIONS,
    ENTRIES,
    ENTRY_TRANSLATIONS,
    DefinitionRow,
    DefinitionTranslationRow,
    DictionaryData,
    DictionaryRow,
    DictionaryTranslationRow,
    EntryRow,
    EntryTranslationRow,
)
from .store import RowStore, eq, in_

logger = logging.getLogger(__name__)

TranslationRow = Union[DictionaryTranslationRow, EntryTranslationRow, DefinitionTranslationRow]

_TRANSLATION_TABLES = {
    DictionaryTranslationRow: DICTIONARY_TRANSLATIONS,
    EntryTranslationRow: ENTRY_TRANSLATIONS,
    DefinitionTranslationRow: DEFINITION_TRANSLATIONS,
}


def _position_key(row) -> int:
    return row.position if row.position is not None else 0


@dataclass
class Snapshot:
    """Persisted entries of one dictionary with their definitions."""

    entries: List[EntryRow] = field(default_factory=list)
    definitions: Dict[str, List[DefinitionRow]] = field(default_factory=dict)

    def definitions_for(self, entry_id: str) -> List[DefinitionRow]:
        return self.definitions.get(entry_id, [])

    def entry_ids(self) -> set:
        return {e.id for e in self.entries}

    def definition_ids(self) -> set:
        return {d.id for defs in self.definitions.values() for d in defs}


class DictionaryRepository:
    """Row-level operations for a single dictionary."""

    def __init__(self, store: RowStore, dictionary_id: str = DEFAULT_DICTIONARY_ID):
        self.store = store
        self.dictionary_id = dictionary_id

    # ---------------------------------------------------------------- dictionary

    def get_dictionary(self) -> Optional[DictionaryRow]:
        rows = self.store.select(DICTIONARIES, [eq("id", self.dictionary_id)])
        return DictionaryRow.from_row(rows[0]) if rows else None

    def ensure_dictionary(self, title: str = "My Dictionary", description: str = "") -> DictionaryRow:
        """Create the dictionary row if it does not exist yet."""
        existing = self.get_dictionary()
        if existing is not None:
            return existing

        row = DictionaryRow(id=self.dictionary_id, title=title, description=description)
        self.store.insert(DICTIONARIES, row.to_row())
        logger.info(f"Created dictionary {self.dictionary_id}")
        return row

    def update_dictionary(self, title: str, description: str) -> int:
        return self.store.update(
            DICTIONARIES,
            [eq("id", self.dictionary_id)],
            {"title": title, "description": description},
        )

    # ------------------------------------------------------------------- entries

    def list_entries(self) -> List[EntryRow]:
        rows = self.store.select(ENTRIES, [eq("dictionary_id", self.dictionary_id)], order="position")
        return [EntryRow.from_row(r) for r in rows]

    def insert_entry(self, row: EntryRow) -> None:
        self.store.insert(ENTRIES, row.to_row())

    def update_entry(self, row: EntryRow) -> None:
        self.store.update(ENTRIES, [eq("id", row.id)], row.mutable_fields())

    def delete_entries(self, entry_ids: Iterable[str]) -> int:
        entry_ids = list(entry_ids)
        if not entry_ids:
            return 0
        return self.store.delete(ENTRIES, [in_("id", entry_ids)])

    # --------------------------------------------------------------- definitions

    def list_definitions(self, entry_ids: Iterable[str]) -> List[DefinitionRow]:
        entry_ids = list(entry_ids)
        if not entry_ids:
            return []
        rows = self.store.select(DEFINITIONS, [in_("entry_id", entry_ids)], order="position")
        return [DefinitionRow.from_row(r) for r in rows]

    def insert_definition(self, row: DefinitionRow) -> None:
        self.store.insert(DEFINITIONS, row.to_row())

    def update_definition(self, row: DefinitionRow) -> None:
        self.store.update(DEFINITIONS, [eq("id", row.id)], row.mutable_fields())

    def delete_definitions(self, definition_ids: Iterable[str]) -> int:
        definition_ids = list(definition_ids)
        if not definition_ids:
            return 0
        return self.store.delete(DEFINITIONS, [in_("id", definition_ids)])

    def delete_definitions_of(self, entry_ids: Iterable[str]) -> int:
        entry_ids = list(entry_ids)
        if not entry_ids:
            return 0
        return self.store.delete(DEFINITIONS, [in_("entry_id", entry_ids)])

    # ------------------------------------------------------------------ snapshot

    def snapshot(self) -> Snapshot:
        """Fetch every persisted entry and definition of this dictionary."""
        entries = self.list_entries()
        definitions: Dict[str, List[DefinitionRow]] = {e.id: [] for e in entries}
        for d in self.list_definitions(definitions.keys()):
            definitions.setdefault(d.entry_id, []).append(d)
        for defs in definitions.values():
            defs.sort(key=_position_key)
        return Snapshot(entries=entries, definitions=definitions)

    def load(self) -> DictionaryData:
        """
        Read the dictionary as a tree, entries sorted by word.

        Raises:
            ConfigurationError: If the dictionary row does not exist.
        """
        dictionary = self.get_dictionary()
        if dictionary is None:
            raise ConfigurationError(
                f"Dictionary {self.dictionary_id} not found. Run 'wordbook init' first."
            )

        snapshot = self.snapshot()
        entries = [
            row.to_entry([d.to_definition() for d in snapshot.definitions_for(row.id)])
            for row in snapshot.entries
        ]
        entries.sort(key=lambda e: e.word.casefold())

        return DictionaryData(
            title=dictionary.title,
            description=dictionary.description or "",
            entries=entries,
        )

    # -------------------------------------------------------------- translations

    def get_dictionary_translation(self, language: str) -> Optional[DictionaryTranslationRow]:
        rows = self.store.select(
            DICTIONARY_TRANSLATIONS,
            [eq("dictionary_id", self.dictionary_id), eq("language", language)],
        )
        return DictionaryTranslationRow.from_row(rows[0]) if rows else None

    def list_entry_translations(self, language: str, entry_ids: Iterable[str]) -> Dict[str, EntryTranslationRow]:
        entry_ids = list(entry_ids)
        if not entry_ids:
            return {}
        rows = self.store.select(
            ENTRY_TRANSLATIONS, [eq("language", language), in_("entry_id", entry_ids)]
        )
        return {r["entry_id"]: EntryTranslationRow.from_row(r) for r in rows}

    def list_definition_translations(
        self, language: str, definition_ids: Iterable[str]
    ) -> Dict[str, DefinitionTranslationRow]:
        definition_ids = list(definition_ids)
        if not definition_ids:
            return {}
        rows = self.store.select(
            DEFINITION_TRANSLATIONS, [eq("language", language), in_("definition_id", definition_ids)]
        )
        return {r["definition_id"]: DefinitionTranslationRow.from_row(r) for r in rows}

    def upsert_translation(self, row: TranslationRow, merge: bool = False) -> bool:
        """
        Write one translation row keyed by (owner id, language).

        Args:
            row: The translation record.
            merge: If True only the filled-in fields are written, leaving other
                stored fields alone. Otherwise blank fields are stored as NULL.

        Returns:
            False when the row has no content and nothing was written.
        """
        if not row.has_content():
            return False

        table = _TRANSLATION_TABLES[type(row)]
        payload = row.patch() if merge else row.to_row()
        self.store.upsert(table, payload, row.conflict_keys())
        logger.debug(f"Upserted {table} for {row.owner_id()} [{row.language}]")
        return True
