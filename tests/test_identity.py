"""
Tests for wordbook.identity module.

Tests the tiered matching of in-memory entries and definitions to stored rows.
"""

import uuid

from wordbook.identity import (
    TIER_CONTENT,
    TIER_ID,
    TIER_NEW,
    TIER_POSITION,
    TIER_SLUG,
    generate_id,
    is_valid_uuid,
    resolve_definitions,
    resolve_entries,
)
from wordbook.models import Definition, DefinitionRow, DictionaryEntry, EntryRow


def _uuid() -> str:
    return str(uuid.uuid4())


def _entry_row(word: str, slug=None, row_id=None) -> EntryRow:
    return EntryRow(id=row_id or _uuid(), dictionary_id="d", word=word, slug=slug)


def _definition_row(grammatical_class: str, meaning: str, position: int) -> DefinitionRow:
    return DefinitionRow(
        id=_uuid(), entry_id="e", grammatical_class=grammatical_class,
        meaning=meaning, position=position,
    )


class TestUuid:
    """Tests for UUID helpers."""

    def test_valid_uuid(self):
        assert is_valid_uuid("123e4567-e89b-12d3-a456-426614174000")
        assert is_valid_uuid("123E4567-E89B-12D3-A456-426614174000")

    def test_invalid_uuid(self):
        for value in [None, "", "1", "entry-1", "123e4567e89b12d3a456426614174000"]:
            assert not is_valid_uuid(value)

    def test_generate_id(self):
        assert is_valid_uuid(generate_id())
        assert generate_id() != generate_id()


class TestResolveEntries:
    """Tests for resolve_entries."""

    def test_matches_by_id(self):
        """Test that a known UUID keeps its row."""
        row = _entry_row("apple")
        entries = [DictionaryEntry(id=row.id, word="Apple pie")]

        [resolution] = resolve_entries(entries, [row], {row.id})

        assert resolution.id == row.id
        assert resolution.tier == TIER_ID

    def test_matches_by_slug(self):
        """Test that an entry without a usable id is matched by slug."""
        row = _entry_row("apple", slug="apple")
        entries = [DictionaryEntry(id="1", word="apple", slug="apple")]

        [resolution] = resolve_entries(entries, [row], {row.id})

        assert resolution.id == row.id
        assert resolution.tier == TIER_SLUG

    def test_slug_is_case_sensitive(self):
        row = _entry_row("apple", slug="apple")
        entries = [DictionaryEntry(word="apple", slug="Apple")]

        [resolution] = resolve_entries(entries, [row], {row.id})

        assert resolution.is_new

    def test_word_alone_never_matches(self):
        """Test that entries are not matched by word."""
        row = _entry_row("apple")
        entries = [DictionaryEntry(word="apple")]

        [resolution] = resolve_entries(entries, [row], {row.id})

        assert resolution.tier == TIER_NEW
        assert resolution.id != row.id

    def test_new_entry_keeps_fresh_uuid(self):
        """Test that an unknown but valid UUID is kept for a new entry."""
        new_id = _uuid()

        [resolution] = resolve_entries([DictionaryEntry(id=new_id, word="kiwi")], [], set())

        assert resolution.is_new
        assert resolution.id == new_id

    def test_legacy_id_is_replaced(self):
        """Test that a non-UUID id is replaced with a generated one."""
        [resolution] = resolve_entries([DictionaryEntry(id="entry-1", word="kiwi")], [], set())

        assert resolution.is_new
        assert is_valid_uuid(resolution.id)

    def test_duplicate_id_claim_falls_through(self):
        """Test that a second item claiming the same row gets a new id."""
        row = _entry_row("apple")
        entries = [
            DictionaryEntry(id=row.id, word="apple"),
            DictionaryEntry(id=row.id, word="apple copy"),
        ]

        first, second = resolve_entries(entries, [row], {row.id})

        assert first.id == row.id
        assert second.is_new
        assert second.id != row.id

    def test_id_tier_runs_before_slug_tier(self):
        """Test that an id claim wins over an earlier item's slug claim."""
        row = _entry_row("apple", slug="apple")
        entries = [
            DictionaryEntry(word="apple", slug="apple"),
            DictionaryEntry(id=row.id, word="apple"),
        ]

        first, second = resolve_entries(entries, [row], {row.id})

        assert second.id == row.id
        assert second.tier == TIER_ID
        assert first.is_new

    def test_new_ids_avoid_reserved(self):
        """Test that a new item never takes an id reserved by another row."""
        other = _uuid()
        reserved = {other}

        [resolution] = resolve_entries([DictionaryEntry(id=other, word="kiwi")], [], reserved)

        assert resolution.id != other
        assert resolution.id in reserved


class TestResolveDefinitions:
    """Tests for resolve_definitions."""

    def test_content_match_ignores_case(self):
        rows = [_definition_row("noun", "A round fruit", 0)]
        definitions = [Definition(grammatical_class="Noun", meaning="a round fruit")]

        [resolution] = resolve_definitions(definitions, rows, {rows[0].id})

        assert resolution.id == rows[0].id
        assert resolution.tier == TIER_CONTENT

    def test_edited_meaning_matches_by_position(self):
        rows = [_definition_row("noun", "A round fruit", 0)]
        definitions = [Definition(grammatical_class="noun", meaning="A crisp round fruit")]

        [resolution] = resolve_definitions(definitions, rows, {rows[0].id})

        assert resolution.id == rows[0].id
        assert resolution.tier == TIER_POSITION

    def test_reordered_definitions_follow_content(self):
        """Test that swapping two definitions keeps each id with its text."""
        rows = [_definition_row("noun", "fruit", 0), _definition_row("noun", "company", 1)]
        definitions = [
            Definition(grammatical_class="noun", meaning="company"),
            Definition(grammatical_class="noun", meaning="fruit"),
        ]

        first, second = resolve_definitions(definitions, rows, {r.id for r in rows})

        assert first.id == rows[1].id
        assert second.id == rows[0].id

    def test_content_tier_runs_before_position(self):
        """Test that a later exact match is not stolen by an earlier positional one."""
        rows = [_definition_row("noun", "fruit", 0)]
        definitions = [
            Definition(grammatical_class="verb", meaning="to apple"),
            Definition(grammatical_class="noun", meaning="fruit"),
        ]

        first, second = resolve_definitions(definitions, rows, {rows[0].id})

        assert second.id == rows[0].id
        assert second.tier == TIER_CONTENT
        assert first.is_new

    def test_extra_definitions_are_new(self):
        rows = [_definition_row("noun", "fruit", 0)]
        definitions = [
            Definition(grammatical_class="noun", meaning="fruit"),
            Definition(grammatical_class="noun", meaning="company"),
        ]

        first, second = resolve_definitions(definitions, rows, {rows[0].id})

        assert first.id == rows[0].id
        assert second.is_new
        assert is_valid_uuid(second.id)
