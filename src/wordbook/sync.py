"""
Identity-preserving save of a whole dictionary.

``save_dictionary`` replaces the stored contents of a dictionary with an
edited ``DictionaryData`` tree. Rows that still stand for the same entry or
definition are updated in place, so their ids (and the translation rows keyed
by those ids) survive the edit. Only entries and definitions that disappeared
from the tree are deleted.

Steps:
1. validate the tree (nothing is written when it is invalid)
2. sort entries by word and re-derive color combos
3. overwrite the dictionary title and description
4. fetch the persisted entries and definitions
5. resolve, then update or insert every entry and its definitions; delete the
   definitions of that entry left unmatched
6. delete the entries nobody claimed
7. read the dictionary back

Every store call runs sequentially. A failing call aborts the save; writes
already made are kept because the store offers no transactions.
"""

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import StoreError, ValidationError
from .identity import resolve_definitions, resolve_entries
from .models import DefinitionRow, DictionaryData, DictionaryEntry, EntryRow, is_blank
from .ordering import assign_color_combos, sort_entries
from .repository import DictionaryRepository

logger = logging.getLogger(__name__)


@dataclass
class SaveReport:
    """Result of a save with per-table counts."""

    entries_inserted: int = 0
    entries_updated: int = 0
    entries_deleted: int = 0
    definitions_inserted: int = 0
    definitions_updated: int = 0
    definitions_deleted: int = 0
    entry_tiers: Dict[str, str] = field(default_factory=dict)  # entry id -> tier
    duration_seconds: float = 0.0
    data: Optional[DictionaryData] = None

    @property
    def writes(self) -> int:
        return (
            self.entries_inserted + self.entries_updated + self.entries_deleted
            + self.definitions_inserted + self.definitions_updated + self.definitions_deleted
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "entries": {
                "inserted": self.entries_inserted,
                "updated": self.entries_updated,
                "deleted": self.entries_deleted,
            },
            "definitions": {
                "inserted": self.definitions_inserted,
                "updated": self.definitions_updated,
                "deleted": self.definitions_deleted,
            },
            "entry_tiers": self.entry_tiers,
            "duration_seconds": round(self.duration_seconds, 3),
        }


def validate_dictionary(data: DictionaryData) -> None:
    """
    Check required fields of the tree.

    Raises:
        ValidationError: With one problem per missing field.
    """
    problems: List[str] = []

    for n, entry in enumerate(data.entries, start=1):
        label = f"Entry {n}" if is_blank(entry.word) else f"Entry {n} ({entry.word.strip()})"
        if is_blank(entry.word):
            problems.append(f"{label}: word is required")
        for m, definition in enumerate(entry.definitions, start=1):
            if is_blank(definition.grammatical_class):
                problems.append(f"{label}, definition {m}: grammatical class is required")
            if is_blank(definition.meaning):
                problems.append(f"{label}, definition {m}: meaning is required")

    if problems:
        raise ValidationError(f"{len(problems)} validation problem(s)", problems=problems)


def _save_definitions(
    repo: DictionaryRepository,
    entry: DictionaryEntry,
    persisted: List[DefinitionRow],
    reserved: set,
    report: SaveReport,
) -> None:
    resolutions = resolve_definitions(entry.definitions, persisted, reserved)
    kept = set()

    for position, (definition, resolution) in enumerate(zip(entry.definitions, resolutions)):
        definition.id = resolution.id
        row = DefinitionRow.from_definition(definition, entry.id, position)
        if resolution.is_new:
            repo.insert_definition(row)
            report.definitions_inserted += 1
        else:
            repo.update_definition(row)
            report.definitions_updated += 1
        kept.add(resolution.id)
        logger.debug(f"Definition {row.id} of {entry.word!r}: {resolution.tier}")

    stale = [d.id for d in persisted if d.id not in kept]
    if stale:
        report.definitions_deleted += repo.delete_definitions(stale)


def save_dictionary(repo: DictionaryRepository, data: DictionaryData) -> SaveReport:
    """
    Persist ``data`` while keeping the ids of unchanged entries and definitions.

    The input tree is not modified; the saved state (sorted, recolored, with
    the ids actually used) is returned in ``SaveReport.data``.

    Raises:
        ValidationError: Before any write, when required fields are missing.
        StoreError: When a store call fails; earlier writes are not undone.
    """
    validate_dictionary(data)

    start = time.monotonic()
    report = SaveReport()
    entries = assign_color_combos(sort_entries(copy.deepcopy(data.entries)))

    try:
        if not repo.update_dictionary(data.title, data.description):
            repo.ensure_dictionary(data.title, data.description)

        snapshot = repo.snapshot()
        reserved_entries = snapshot.entry_ids()
        reserved_definitions = snapshot.definition_ids()

        resolutions = resolve_entries(entries, snapshot.entries, reserved_entries)
        touched = set()

        for position, (entry, resolution) in enumerate(zip(entries, resolutions)):
            entry.id = resolution.id
            row = EntryRow.from_entry(entry, repo.dictionary_id, position)
            if resolution.is_new:
                repo.insert_entry(row)
                report.entries_inserted += 1
                persisted_definitions = []
            else:
                repo.update_entry(row)
                report.entries_updated += 1
                persisted_definitions = snapshot.definitions_for(entry.id)
            touched.add(entry.id)
            report.entry_tiers[entry.id] = resolution.tier
            logger.debug(f"Entry {entry.id} ({entry.word!r}): {resolution.tier}")

            _save_definitions(repo, entry, persisted_definitions, reserved_definitions, report)

        removed = [e.id for e in snapshot.entries if e.id not in touched]
        if removed:
            report.definitions_deleted += repo.delete_definitions_of(removed)
            report.entries_deleted += repo.delete_entries(removed)
            logger.debug(f"Deleted entries: {', '.join(removed)}")

        report.data = repo.load()
    except StoreError as e:
        logger.error(f"Save aborted after {report.writes} row write(s); they are not rolled back: {e}")
        raise

    report.duration_seconds = time.monotonic() - start
    logger.info(
        f"Saved {len(entries)} entries: "
        f"{report.entries_inserted} inserted, {report.entries_updated} updated, "
        f"{report.entries_deleted} deleted "
        f"({report.definitions_inserted}/{report.definitions_updated}/"
        f"{report.definitions_deleted} definitions)"
    )
    return report
