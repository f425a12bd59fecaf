"""
Tests for wordbook.translation_import module.

Tests importing filled-in templates and JSON translation files.
"""

import json

import pytest

from wordbook.errors import ValidationError
from wordbook.models import (
    DEFINITION_TRANSLATIONS,
    DICTIONARY_TRANSLATIONS,
    ENTRY_TRANSLATIONS,
    EntryTranslationRow,
)
from wordbook.overlay import load_dictionary
from wordbook.template_codec import PLACEHOLDER, export_translation_template
from wordbook.translation_import import (
    build_sample_json,
    import_translation_file,
    match_entry,
    normalize_word,
    parse_translation_json,
    sample_json_filename,
)


def _fill_every_translation(text: str) -> str:
    """Replace each placeholder with a distinct value derived from its key."""
    lines = []
    for line in text.splitlines():
        key, _, value = line.partition(":")
        if value.strip() == PLACEHOLDER:
            line = f"{key}: value-of-{key}"
        lines.append(line)
    return "\n".join(lines) + "\n"


class TestMatchEntry:
    """Tests for entry matching."""

    def test_normalize_word(self):
        assert normalize_word("Rock 'n' Roll!") == "rocknroll"

    def test_case_insensitive_then_normalized(self, sample_data):
        entries = sample_data.entries

        assert match_entry(entries, "apple").word == "Apple"
        assert match_entry(entries, " ZEBRA ").word == "zebra"
        assert match_entry(entries, "ba-nana").word == "banana"
        assert match_entry(entries, "kiwi") is None
        assert match_entry(entries, "") is None


class TestImportTemplate:
    """Tests for template import."""

    def test_round_trip_writes_every_field(self, repo, saved_data):
        text = _fill_every_translation(export_translation_template(saved_data))

        report = import_translation_file(repo, saved_data, text, "de", filename="de.txt")

        assert report.warnings == []
        assert report.entries_processed == 3
        assert report.definitions_translated == 4
        # dictionary row, 3 entry rows, 4 definition rows
        assert report.rows_written == 8

        german = load_dictionary(repo, "de")
        assert german.title == "value-of-DICTIONARY_TITLE_TRANSLATION"
        apple = german.entries[0]
        assert apple.origin == "value-of-ENTRY_1_ORIGIN_TRANSLATION"
        assert apple.definitions[1].meaning == "value-of-ENTRY_1_DEF_2_MEANING_TRANSLATION"
        assert apple.definitions[0].example == "value-of-ENTRY_1_DEF_1_EXAMPLE_TRANSLATION"

    def test_placeholders_write_nothing_for_that_field(self, repo, saved_data):
        text = export_translation_template(saved_data).replace(
            f"ENTRY_1_DEF_1_CLASS_TRANSLATION: {PLACEHOLDER}",
            "ENTRY_1_DEF_1_CLASS_TRANSLATION: Substantiv",
        )

        report = import_translation_file(repo, saved_data, text, "de", filename="de.txt")

        assert report.rows_written == 1
        assert repo.store.select(DICTIONARY_TRANSLATIONS) == []
        assert repo.store.select(ENTRY_TRANSLATIONS) == []
        [row] = repo.store.select(DEFINITION_TRANSLATIONS)
        assert row["grammatical_class"] == "Substantiv"
        assert row["meaning"] is None
        assert row["example"] is None

    def test_word_case_differs(self, repo, saved_data):
        text = "ENTRY_1_WORD: apple\nENTRY_1_ORIGIN_TRANSLATION: Apfelursprung\n"

        report = import_translation_file(repo, saved_data, text, "de", filename="apple.txt")

        assert report.warnings == []
        assert load_dictionary(repo, "de").entries[0].origin == "Apfelursprung"

    def test_unknown_entry_and_definition_become_warnings(self, repo, saved_data):
        text = "\n".join([
            "ENTRY_1_WORD: kiwi",
            "ENTRY_1_ORIGIN_TRANSLATION: Neuseeland",
            "ENTRY_2_WORD: zebra",
            "ENTRY_2_ORIGIN_TRANSLATION: Italienisch",
            "ENTRY_2_DEF_5_CLASS: verb",
            "ENTRY_2_DEF_5_MEANING: to stripe",
            "ENTRY_2_DEF_5_MEANING_TRANSLATION: streifen",
        ])

        report = import_translation_file(repo, saved_data, text, "de", filename="de.txt")

        assert report.warnings == [
            "Entry not found: 'kiwi'",
            "Definition not found in 'zebra': verb - to stripe",
        ]
        assert report.entries_translated == 1
        assert load_dictionary(repo, "de").entries[2].origin == "Italienisch"

    def test_import_merges_with_stored_fields(self, repo, saved_data):
        """Test that a partial import keeps fields translated earlier."""
        apple = saved_data.entries[0]
        fruit = apple.definitions[0]
        first = "\n".join([
            "ENTRY_1_WORD: Apple",
            "ENTRY_1_DEF_1_CLASS: noun",
            "ENTRY_1_DEF_1_MEANING: A round fruit",
            "ENTRY_1_DEF_1_CLASS_TRANSLATION: Substantiv",
        ])
        second = first.replace("CLASS_TRANSLATION: Substantiv", "MEANING_TRANSLATION: Frucht")

        import_translation_file(repo, saved_data, first, "pt", filename="a.txt")
        import_translation_file(repo, saved_data, second, "pt", filename="b.txt")

        [row] = repo.store.select(DEFINITION_TRANSLATIONS)
        assert row["definition_id"] == fruit.id
        assert row["grammatical_class"] == "Substantiv"
        assert row["meaning"] == "Frucht"

    def test_definition_matched_by_position_after_meaning_edit(self, repo, saved_data):
        text = "\n".join([
            "ENTRY_1_WORD: Apple",
            "ENTRY_1_DEF_2_CLASS: noun",
            "ENTRY_1_DEF_2_MEANING: A computer company",
            "ENTRY_1_DEF_2_MEANING_TRANSLATION: Ein Computerhersteller",
        ])

        report = import_translation_file(repo, saved_data, text, "de", filename="de.txt")

        assert report.warnings == []
        assert load_dictionary(repo, "de").entries[0].definitions[1].meaning == "Ein Computerhersteller"

    def test_rejects_base_language(self, repo, saved_data):
        with pytest.raises(ValidationError):
            import_translation_file(repo, saved_data, "DICTIONARY_TITLE_TRANSLATION: x\n", "en")


class TestImportJson:
    """Tests for JSON translation files."""

    def test_sample_json_imports_cleanly(self, repo, saved_data):
        sample = build_sample_json(saved_data, "pt")

        report = import_translation_file(repo, saved_data, json.dumps(sample), "pt", filename="s.json")

        assert report.warnings == []
        assert report.entries_processed == 2
        portuguese = load_dictionary(repo, "pt")
        assert portuguese.title == "[PT] Dictionary Title Translation"
        assert portuguese.entries[0].definitions[0].meaning == "[PT] A round fruit"
        assert portuguese.entries[1].origin == "[PT] Origin translation for banana"

    def test_sniffs_json_without_filename(self, repo, saved_data):
        payload = {"dictionary": {"title": "Minhas Palavras"}, "entries": []}

        report = import_translation_file(repo, saved_data, json.dumps(payload), "pt")

        assert report.rows_written == 1

    def test_schema_problems_are_reported(self):
        payload = {"dictionary": {}, "entries": [{"origin": 3}]}

        with pytest.raises(ValidationError) as exc_info:
            parse_translation_json(json.dumps(payload))

        problems = exc_info.value.problems
        assert any(p.startswith("$.entries[0]") and "'word' is a required property" in p for p in problems)
        assert any(p.startswith("$.entries[0].origin") for p in problems)

    def test_invalid_json(self):
        with pytest.raises(ValidationError):
            parse_translation_json("{not json")

    def test_json_placeholder_is_not_a_translation(self, repo, saved_data):
        apple = saved_data.entries[0]
        repo.upsert_translation(EntryTranslationRow(entry_id=apple.id, language="de", origin="Altenglisch"))
        payload = {"dictionary": {}, "entries": [{"word": "Apple", "origin": PLACEHOLDER}]}

        report = import_translation_file(repo, saved_data, json.dumps(payload), "de", filename="x.json")

        assert report.rows_written == 0
        assert load_dictionary(repo, "de").entries[0].origin == "Altenglisch"

    def test_sample_filename(self):
        assert sample_json_filename("de") == "sample-de-translations.json"
