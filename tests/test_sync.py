"""
Tests for wordbook.sync module.

Tests the identity-preserving save of a whole dictionary.
"""

import copy

import pytest

from wordbook.errors import StoreError, ValidationError
from wordbook.identity import TIER_ID, is_valid_uuid
from wordbook.models import (
    DEFINITIONS,
    ENTRIES,
    ENTRY_TRANSLATIONS,
    Definition,
    DictionaryData,
    DictionaryEntry,
    DefinitionTranslationRow,
    EntryTranslationRow,
)
from wordbook.overlay import load_dictionary
from wordbook.repository import DictionaryRepository
from wordbook.store import SQLiteRowStore
from wordbook.sync import save_dictionary, validate_dictionary


def _words(data: DictionaryData):
    return [e.word for e in data.entries]


class TestValidateDictionary:
    """Tests for validate_dictionary."""

    def test_valid_data_passes(self, sample_data):
        validate_dictionary(sample_data)

    def test_reports_every_problem(self):
        data = DictionaryData(entries=[
            DictionaryEntry(word=" ", definitions=[Definition(grammatical_class="noun")]),
            DictionaryEntry(word="apple", definitions=[Definition(meaning="fruit")]),
        ])

        with pytest.raises(ValidationError) as exc_info:
            validate_dictionary(data)

        assert exc_info.value.problems == [
            "Entry 1: word is required",
            "Entry 1, definition 1: meaning is required",
            "Entry 2 (apple), definition 1: grammatical class is required",
        ]

    def test_invalid_data_writes_nothing(self, repo):
        data = DictionaryData(title="T", entries=[DictionaryEntry(word="")])

        with pytest.raises(ValidationError):
            save_dictionary(repo, data)

        assert repo.store.select(ENTRIES) == []
        assert repo.get_dictionary().title == "My Words"


class TestSaveDictionary:
    """Tests for save_dictionary."""

    def test_sorts_and_colors(self, repo):
        """Test that zebra and apple are stored alphabetically with their colors."""
        data = DictionaryData(title="T", entries=[
            DictionaryEntry(word="zebra", definitions=[Definition(grammatical_class="noun", meaning="animal")]),
            DictionaryEntry(word="apple", definitions=[Definition(grammatical_class="noun", meaning="fruit")]),
        ])

        report = save_dictionary(repo, data)

        assert _words(report.data) == ["apple", "zebra"]
        assert [e.color_combo for e in report.data.entries] == [1, 2]
        rows = repo.store.select(ENTRIES, order="position")
        assert [(r["word"], r["position"], r["color_combo"]) for r in rows] == [
            ("apple", 0, 1),
            ("zebra", 1, 2),
        ]

    @pytest.mark.parametrize("count", [1, 4, 5, 9])
    def test_color_is_index_mod_four(self, repo, count):
        data = DictionaryData(title="T", entries=[
            DictionaryEntry(word=f"word{i:02d}") for i in range(count)
        ])

        report = save_dictionary(repo, data)

        assert [e.color_combo for e in report.data.entries] == [(i % 4) + 1 for i in range(count)]

    def test_first_save_inserts_with_uuids(self, repo, sample_data):
        report = save_dictionary(repo, sample_data)

        assert report.entries_inserted == 3
        assert report.definitions_inserted == 4
        assert report.entries_updated == report.entries_deleted == 0
        assert all(is_valid_uuid(i) for i in report.data.entry_ids())
        assert all(is_valid_uuid(i) for i in report.data.definition_ids())

    def test_input_is_not_modified(self, repo, sample_data):
        before = copy.deepcopy(sample_data)

        save_dictionary(repo, sample_data)

        assert sample_data == before

    def test_updates_title_and_description(self, repo, sample_data):
        sample_data.title = "New Title"
        sample_data.description = ""

        report = save_dictionary(repo, sample_data)

        assert report.data.title == "New Title"
        assert repo.get_dictionary().description == ""

    def test_creates_missing_dictionary_row(self, store, sample_data):
        repo = DictionaryRepository(store)

        report = save_dictionary(repo, sample_data)

        assert repo.get_dictionary().title == "My Words"
        assert len(report.data.entries) == 3

    def test_resave_keeps_ids(self, repo, saved_data):
        """Test that saving the loaded data again only updates rows."""
        report = save_dictionary(repo, saved_data)

        assert report.entries_inserted == report.entries_deleted == 0
        assert report.definitions_inserted == report.definitions_deleted == 0
        assert report.entries_updated == 3
        assert report.data.entry_ids() == saved_data.entry_ids()
        assert report.data.definition_ids() == saved_data.definition_ids()
        assert set(report.entry_tiers.values()) == {TIER_ID}

    def test_meaning_edit_preserves_identity_and_translations(self, repo, saved_data):
        """Test that translations keyed by the old ids still resolve after an edit."""
        apple = saved_data.entries[0]
        fruit = apple.definitions[0]
        repo.upsert_translation(EntryTranslationRow(entry_id=apple.id, language="de", origin="Altenglisch"))
        repo.upsert_translation(DefinitionTranslationRow(
            definition_id=fruit.id, language="de", grammatical_class="Substantiv", meaning="Eine runde Frucht",
        ))

        edited = copy.deepcopy(saved_data)
        edited.entries[0].definitions[0].meaning = "A round, crisp fruit"
        report = save_dictionary(repo, edited)

        assert report.data.entries[0].id == apple.id
        assert report.data.entries[0].definitions[0].id == fruit.id
        assert report.data.entries[0].definitions[0].meaning == "A round, crisp fruit"

        german = load_dictionary(repo, "de")
        assert german.entries[0].origin == "Altenglisch"
        assert german.entries[0].definitions[0].meaning == "Eine runde Frucht"

    def test_definitions_without_ids_match_by_content(self, repo, saved_data):
        """Test that definitions stripped of ids keep their rows."""
        edited = copy.deepcopy(saved_data)
        apple = edited.entries[0]
        original_ids = [d.id for d in apple.definitions]
        for d in apple.definitions:
            d.id = ""
        apple.definitions.reverse()

        report = save_dictionary(repo, edited)

        saved_apple = report.data.entries[0]
        assert report.definitions_inserted == 0
        assert [d.id for d in saved_apple.definitions] == list(reversed(original_ids))

    def test_removing_entry_deletes_it_and_its_definitions(self, repo, saved_data):
        banana = saved_data.entries[1]
        assert banana.word == "banana"
        repo.upsert_translation(EntryTranslationRow(entry_id=banana.id, language="pt", origin="Banto"))

        edited = copy.deepcopy(saved_data)
        del edited.entries[1]
        report = save_dictionary(repo, edited)

        assert report.entries_deleted == 1
        assert report.definitions_deleted == 1
        assert _words(report.data) == ["Apple", "zebra"]
        assert [r["word"] for r in repo.store.select(ENTRIES, order="position")] == ["Apple", "zebra"]
        assert all(r["entry_id"] != banana.id for r in repo.store.select(DEFINITIONS))
        assert repo.store.select(ENTRY_TRANSLATIONS) == []

    def test_removing_definition_deletes_only_that_row(self, repo, saved_data):
        edited = copy.deepcopy(saved_data)
        removed = edited.entries[0].definitions.pop(1)

        report = save_dictionary(repo, edited)

        assert report.definitions_deleted == 1
        assert removed.id not in report.data.definition_ids()
        assert len(report.data.definition_ids()) == 3

    def test_added_entry_shifts_colors(self, repo, saved_data):
        edited = copy.deepcopy(saved_data)
        edited.entries.append(DictionaryEntry(word="avocado"))

        report = save_dictionary(repo, edited)

        assert _words(report.data) == ["Apple", "avocado", "banana", "zebra"]
        assert [e.color_combo for e in report.data.entries] == [1, 2, 3, 4]
        assert report.entries_inserted == 1

    def test_store_failure_aborts_without_rollback(self, db_path, repo, sample_data):
        """Test that a failing write stops the save and keeps earlier writes."""

        class FailingStore(SQLiteRowStore):
            def insert(self, table, row):
                if table == DEFINITIONS:
                    raise StoreError("insert on definitions failed", table=table, operation="insert")
                super().insert(table, row)

        failing = DictionaryRepository(FailingStore(db_path))

        with pytest.raises(StoreError):
            save_dictionary(failing, sample_data)

        assert [r["word"] for r in repo.store.select(ENTRIES)] == ["Apple"]
