"""
Import of translation files.

Two file formats are accepted, both turned into a ``TranslationPatch`` and
applied by the same matcher:

- the line template of ``wordbook.template_codec`` (``.txt``)
- the JSON translation file of the import view (``.json``)::

    {
      "dictionary": {"title": "...", "description": "..."},
      "entries": [
        {"word": "apple", "origin": "...", "definitions": [
          {"grammaticalClass": "noun", "meaning": "...", "example": "...",
           "grammaticalClassTranslation": "...", "meaningTranslation": "...",
           "exampleTranslation": "..."}
        ]}
      ]
    }

Entries are matched by word (case-insensitive, then letters and digits
only). Definitions of a matched entry are matched by class and meaning, then
position, then class alone. Misses become warnings in the ``ImportReport``;
they never stop the import. Store errors do.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from jsonschema import Draft7Validator

from .errors import ValidationError
from .models import (
    LANGUAGE_NAMES,
    Definition,
    DefinitionTranslationRow,
    DictionaryData,
    DictionaryEntry,
    DictionaryTranslationRow,
    EntryTranslationRow,
)
from .overlay import check_translation_language
from .repository import DictionaryRepository
from .template_codec import (
    DefinitionPatch,
    EntryPatch,
    PatchField,
    TranslationPatch,
    clean_translation,
    parse_translation_template,
)

logger = logging.getLogger(__name__)

TRANSLATION_FILE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Wordbook translation file",
    "type": "object",
    "required": ["dictionary", "entries"],
    "properties": {
        "dictionary": {
            "type": "object",
            "properties": {
                "title": {"type": ["string", "null"]},
                "description": {"type": ["string", "null"]},
            },
        },
        "entries": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["word"],
                "properties": {
                    "word": {"type": "string"},
                    "origin": {"type": ["string", "null"]},
                    "definitions": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "grammaticalClass": {"type": ["string", "null"]},
                                "meaning": {"type": ["string", "null"]},
                                "example": {"type": ["string", "null"]},
                                "grammaticalClassTranslation": {"type": ["string", "null"]},
                                "meaningTranslation": {"type": ["string", "null"]},
                                "exampleTranslation": {"type": ["string", "null"]},
                            },
                        },
                    },
                },
            },
        },
    },
}


@dataclass
class ImportReport:
    """Counts and warnings of one translation import."""

    language: str
    entries_processed: int = 0
    entries_translated: int = 0
    definitions_processed: int = 0
    definitions_translated: int = 0
    rows_written: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "entries_processed": self.entries_processed,
            "entries_translated": self.entries_translated,
            "definitions_processed": self.definitions_processed,
            "definitions_translated": self.definitions_translated,
            "rows_written": self.rows_written,
            "warnings": self.warnings,
        }


# =============================================================================
# MATCHING
# =============================================================================

def normalize_word(word: Optional[str]) -> str:
    """Lowercase and keep only letters and digits."""
    return re.sub(r"[^0-9a-z]", "", (word or "").lower())


def match_entry(entries: Sequence[DictionaryEntry], word: str) -> Optional[DictionaryEntry]:
    """Find the entry for ``word``: exact ignoring case, then normalized."""
    wanted = (word or "").strip().casefold()
    if not wanted:
        return None
    for entry in entries:
        if entry.word.strip().casefold() == wanted:
            return entry

    normalized = normalize_word(word)
    if not normalized:
        return None
    for entry in entries:
        if normalize_word(entry.word) == normalized:
            return entry
    return None


def match_definition(
    entry: DictionaryEntry, patch: DefinitionPatch, used: Set[str]
) -> Optional[Definition]:
    """
    Find the definition of ``entry`` that ``patch`` translates.

    Tries class and meaning (ignoring case), then the 1-based position of the
    patch, then the class alone. Definitions in ``used`` are skipped.
    """
    wanted_class = patch.grammatical_class.original.strip().casefold()
    wanted_meaning = patch.meaning.original.strip().casefold()
    candidates = [d for d in entry.definitions if d.id not in used]

    for d in candidates:
        if (
            d.grammatical_class.strip().casefold() == wanted_class
            and d.meaning.strip().casefold() == wanted_meaning
        ):
            return d

    position = patch.index - 1
    if 0 <= position < len(entry.definitions):
        d = entry.definitions[position]
        if d.id not in used:
            return d

    if wanted_class:
        for d in candidates:
            if d.grammatical_class.strip().casefold() == wanted_class:
                return d
    return None


# =============================================================================
# APPLY
# =============================================================================

def apply_translation_patch(
    repo: DictionaryRepository,
    data: DictionaryData,
    patch: TranslationPatch,
    language: str,
) -> ImportReport:
    """
    Write the translations of ``patch`` for the entries of ``data``.

    ``data`` is the base-language dictionary as persisted, so that entry and
    definition ids are the stored ones. Only provided fields are written;
    stored translations of other fields are kept.
    """
    check_translation_language(language)
    report = ImportReport(language=language)

    dictionary_row = DictionaryTranslationRow(
        dictionary_id=repo.dictionary_id,
        language=language,
        title=patch.title.translation,
        description=patch.description.translation,
    )
    if repo.upsert_translation(dictionary_row, merge=True):
        report.rows_written += 1

    for entry_patch in patch.entries:
        report.entries_processed += 1
        report.definitions_processed += len(entry_patch.definitions)

        entry = match_entry(data.entries, entry_patch.word)
        if entry is None:
            report.warnings.append(f"Entry not found: {entry_patch.word!r}")
            logger.warning(f"Import [{language}]: entry not found: {entry_patch.word!r}")
            continue

        written_before = report.rows_written
        entry_row = EntryTranslationRow(
            entry_id=entry.id, language=language, origin=entry_patch.origin.translation
        )
        if repo.upsert_translation(entry_row, merge=True):
            report.rows_written += 1

        used: Set[str] = set()
        for definition_patch in entry_patch.definitions:
            definition = match_definition(entry, definition_patch, used)
            if definition is None:
                label = (
                    f"{definition_patch.grammatical_class.original} - "
                    f"{definition_patch.meaning.original}"
                )
                report.warnings.append(f"Definition not found in {entry.word!r}: {label}")
                logger.warning(f"Import [{language}]: definition not found in {entry.word!r}: {label}")
                continue
            used.add(definition.id)

            row = DefinitionTranslationRow(
                definition_id=definition.id,
                language=language,
                grammatical_class=definition_patch.grammatical_class.translation,
                meaning=definition_patch.meaning.translation,
                example=definition_patch.example.translation,
            )
            if repo.upsert_translation(row, merge=True):
                report.rows_written += 1
                report.definitions_translated += 1

        if report.rows_written > written_before:
            report.entries_translated += 1

    logger.info(
        f"Imported {LANGUAGE_NAMES.get(language, language)} translations: "
        f"{report.entries_translated}/{report.entries_processed} entries, "
        f"{report.definitions_translated}/{report.definitions_processed} definitions, "
        f"{len(report.warnings)} warning(s)"
    )
    return report


def import_template(
    repo: DictionaryRepository, data: DictionaryData, text: str, language: str
) -> ImportReport:
    """Parse a filled-in line template and apply it."""
    return apply_translation_patch(repo, data, parse_translation_template(text), language)


# =============================================================================
# JSON FILES
# =============================================================================

def _format_json_path(path: List[Any]) -> str:
    parts = ["$"]
    for component in path:
        if isinstance(component, int):
            parts.append(f"[{component}]")
        else:
            parts.append(f".{component}")
    return "".join(parts)


def parse_translation_json(text: str) -> TranslationPatch:
    """
    Read a JSON translation file into a patch.

    Raises:
        ValidationError: If the text is not JSON or does not match the schema.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}")

    validator = Draft7Validator(TRANSLATION_FILE_SCHEMA)
    problems = [
        f"{_format_json_path(list(error.absolute_path))}: {error.message}"
        for error in sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
    ]
    if problems:
        raise ValidationError("Invalid translation file format", problems=problems)

    dictionary = payload.get("dictionary") or {}
    patch = TranslationPatch(
        title=PatchField(translation=clean_translation(dictionary.get("title"))),
        description=PatchField(translation=clean_translation(dictionary.get("description"))),
    )

    for n, item in enumerate(payload["entries"], start=1):
        entry = EntryPatch(
            index=n,
            word=item.get("word") or "",
            origin=PatchField(translation=clean_translation(item.get("origin"))),
        )
        for m, d in enumerate(item.get("definitions") or [], start=1):
            entry.definitions.append(DefinitionPatch(
                index=m,
                grammatical_class=PatchField(
                    d.get("grammaticalClass") or "",
                    clean_translation(d.get("grammaticalClassTranslation")),
                ),
                meaning=PatchField(d.get("meaning") or "", clean_translation(d.get("meaningTranslation"))),
                example=PatchField(d.get("example") or "", clean_translation(d.get("exampleTranslation"))),
            ))
        patch.entries.append(entry)

    return patch


def import_json(repo: DictionaryRepository, data: DictionaryData, text: str, language: str) -> ImportReport:
    """Parse a JSON translation file and apply it."""
    return apply_translation_patch(repo, data, parse_translation_json(text), language)


def import_translation_file(
    repo: DictionaryRepository, data: DictionaryData, text: str, language: str, filename: str = ""
) -> ImportReport:
    """Pick the parser from the file name, or sniff JSON when there is none."""
    if filename.lower().endswith(".json") or (not filename and text.lstrip().startswith("{")):
        return import_json(repo, data, text, language)
    return import_template(repo, data, text, language)


def build_sample_json(data: DictionaryData, language: str, limit: int = 2) -> Dict[str, Any]:
    """
    Example translation file built from the first ``limit`` entries.

    Every translation is the source text tagged with the language code.
    """
    tag = f"[{language.upper()}]"
    return {
        "dictionary": {
            "title": f"{tag} Dictionary Title Translation",
            "description": f"{tag} Dictionary Description Translation",
        },
        "entries": [
            {
                "word": entry.word,
                "origin": f"{tag} Origin translation for {entry.word}",
                "definitions": [
                    {
                        "grammaticalClass": d.grammatical_class,
                        "meaning": d.meaning,
                        "example": d.example or "",
                        "grammaticalClassTranslation": f"{tag} {d.grammatical_class}",
                        "meaningTranslation": f"{tag} {d.meaning}",
                        "exampleTranslation": f"{tag} {d.example}" if d.example else "",
                    }
                    for d in entry.definitions
                ],
            }
            for entry in data.entries[:limit]
        ],
    }


def sample_json_filename(language: str) -> str:
    return f"sample-{language}-translations.json"
