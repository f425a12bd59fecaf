"""
Translation overlay and per-item translation editing.

``overlay_dictionary`` composes the display tree for a language: stored
translated fields replace the base text one field at a time, and every blank
or missing translation falls back to the base value. It only reads.

The remaining helpers back the translation edit views: loading the drafts of
one entry, saving one row under the "at least one non-blank field" rule, and
counting what is still untranslated.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .errors import ValidationError
from .models import (
    BASE_LANGUAGE,
    TRANSLATION_LANGUAGES,
    DefinitionTranslationRow,
    DictionaryData,
    DictionaryEntry,
    DictionaryTranslationRow,
    EntryTranslationRow,
    is_blank,
)
from .repository import DictionaryRepository

logger = logging.getLogger(__name__)


def check_translation_language(language: str) -> str:
    """
    Return the language code if translation rows may be written for it.

    Raises:
        ValidationError: For the base language or an unsupported code.
    """
    if language not in TRANSLATION_LANGUAGES:
        raise ValidationError(
            f"Unsupported translation language: {language!r}. "
            f"Expected one of: {', '.join(TRANSLATION_LANGUAGES)}"
        )
    return language


def _pick(translated: Optional[str], base):
    return base if is_blank(translated) else translated


def overlay_dictionary(repo: DictionaryRepository, base: DictionaryData, language: str) -> DictionaryData:
    """
    Compose ``base`` with the stored translations for ``language``.

    Args:
        repo: Repository of the dictionary ``base`` was loaded from.
        base: The base-language tree. Never modified.
        language: Target language code.

    Returns:
        ``base`` itself for the base language, a new tree otherwise.
    """
    if language == BASE_LANGUAGE:
        return base
    check_translation_language(language)

    result = copy.deepcopy(base)

    dictionary_row = repo.get_dictionary_translation(language)
    if dictionary_row is not None:
        result.title = _pick(dictionary_row.title, result.title)
        result.description = _pick(dictionary_row.description, result.description)

    entry_rows = repo.list_entry_translations(language, result.entry_ids())
    definition_rows = repo.list_definition_translations(language, result.definition_ids())

    for entry in result.entries:
        entry_row = entry_rows.get(entry.id)
        if entry_row is not None:
            entry.origin = _pick(entry_row.origin, entry.origin)

        for definition in entry.definitions:
            row = definition_rows.get(definition.id)
            if row is None:
                continue
            definition.grammatical_class = _pick(row.grammatical_class, definition.grammatical_class)
            definition.meaning = _pick(row.meaning, definition.meaning)
            definition.example = _pick(row.example, definition.example)

    logger.debug(
        f"Overlay [{language}]: {len(entry_rows)} entry and "
        f"{len(definition_rows)} definition translation rows"
    )
    return result


def load_dictionary(repo: DictionaryRepository, language: str = BASE_LANGUAGE) -> DictionaryData:
    """Read the dictionary fresh from the store and overlay ``language``."""
    return overlay_dictionary(repo, repo.load(), language)


# =============================================================================
# EDITING
# =============================================================================

def load_dictionary_translations(
    repo: DictionaryRepository, languages: Iterable[str] = TRANSLATION_LANGUAGES
) -> Dict[str, Dict[str, str]]:
    """Stored title/description per language, blank strings where missing."""
    result = {}
    for language in languages:
        row = repo.get_dictionary_translation(check_translation_language(language))
        result[language] = {
            "title": (row.title if row else None) or "",
            "description": (row.description if row else None) or "",
        }
    return result


def load_entry_translations(
    repo: DictionaryRepository,
    entry: DictionaryEntry,
    languages: Iterable[str] = TRANSLATION_LANGUAGES,
) -> Dict[str, Dict[str, Any]]:
    """
    Editable translation drafts of one entry, per language.

    Returns:
        ``{lang: {"origin": str, "definitions": {definition_id: {...}}}}`` with
        blank strings for fields that have no stored translation.
    """
    definition_ids = [d.id for d in entry.definitions]
    drafts = {}
    for language in languages:
        check_translation_language(language)
        entry_row = repo.list_entry_translations(language, [entry.id]).get(entry.id)
        rows = repo.list_definition_translations(language, definition_ids)
        definitions = {}
        for definition_id in definition_ids:
            row = rows.get(definition_id)
            definitions[definition_id] = {
                "grammaticalClass": (row.grammatical_class if row else None) or "",
                "meaning": (row.meaning if row else None) or "",
                "example": (row.example if row else None) or "",
            }
        drafts[language] = {
            "origin": (entry_row.origin if entry_row else None) or "",
            "definitions": definitions,
        }
    return drafts


def save_dictionary_translation(
    repo: DictionaryRepository, language: str, title: str = "", description: str = ""
) -> bool:
    """Store the translated title/description. Returns False if both are blank."""
    row = DictionaryTranslationRow(
        dictionary_id=repo.dictionary_id,
        language=check_translation_language(language),
        title=title,
        description=description,
    )
    return repo.upsert_translation(row)


def save_entry_translation(repo: DictionaryRepository, entry_id: str, language: str, origin: str = "") -> bool:
    row = EntryTranslationRow(entry_id=entry_id, language=check_translation_language(language), origin=origin)
    return repo.upsert_translation(row)


def save_definition_translation(
    repo: DictionaryRepository,
    definition_id: str,
    language: str,
    grammatical_class: str = "",
    meaning: str = "",
    example: str = "",
) -> bool:
    row = DefinitionTranslationRow(
        definition_id=definition_id,
        language=check_translation_language(language),
        grammatical_class=grammatical_class,
        meaning=meaning,
        example=example,
    )
    return repo.upsert_translation(row)


def save_entry_drafts(
    repo: DictionaryRepository, entry: DictionaryEntry, language: str, draft: Dict[str, Any]
) -> int:
    """
    Save a draft as returned by ``load_entry_translations`` for one language.

    Definitions of the draft that do not belong to ``entry`` are ignored.

    Returns:
        Number of translation rows written.
    """
    written = 0
    if save_entry_translation(repo, entry.id, language, draft.get("origin") or ""):
        written += 1

    drafts = draft.get("definitions") or {}
    for definition in entry.definitions:
        values = drafts.get(definition.id)
        if not values:
            continue
        if save_definition_translation(
            repo,
            definition.id,
            language,
            grammatical_class=values.get("grammaticalClass") or "",
            meaning=values.get("meaning") or "",
            example=values.get("example") or "",
        ):
            written += 1

    logger.info(f"Saved {written} translation row(s) for {entry.word!r} [{language}]")
    return written


# =============================================================================
# COVERAGE
# =============================================================================

@dataclass
class CoverageReport:
    """Translated versus missing fields for one language."""

    language: str
    translated: int = 0
    missing: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.translated + len(self.missing)

    @property
    def percent(self) -> float:
        return 100.0 if self.total == 0 else round(100.0 * self.translated / self.total, 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "translated": self.translated,
            "total": self.total,
            "percent": self.percent,
            "missing": self.missing,
        }


def translation_coverage(repo: DictionaryRepository, base: DictionaryData, language: str) -> CoverageReport:
    """
    Count translatable fields with and without a stored translation.

    Only fields with base text count; an empty base origin needs no
    translation.
    """
    check_translation_language(language)
    report = CoverageReport(language=language)

    def tally(label: str, base_value: Optional[str], translated: Optional[str]) -> None:
        if is_blank(base_value):
            return
        if is_blank(translated):
            report.missing.append(label)
        else:
            report.translated += 1

    dictionary_row = repo.get_dictionary_translation(language)
    tally("title", base.title, dictionary_row.title if dictionary_row else None)
    tally("description", base.description, dictionary_row.description if dictionary_row else None)

    entry_rows = repo.list_entry_translations(language, base.entry_ids())
    definition_rows = repo.list_definition_translations(language, base.definition_ids())

    for entry in base.entries:
        entry_row = entry_rows.get(entry.id)
        tally(f"{entry.word}: origin", entry.origin, entry_row.origin if entry_row else None)
        for m, definition in enumerate(entry.definitions, start=1):
            row = definition_rows.get(definition.id)
            prefix = f"{entry.word}: definition {m}"
            tally(f"{prefix} class", definition.grammatical_class, row.grammatical_class if row else None)
            tally(f"{prefix} meaning", definition.meaning, row.meaning if row else None)
            tally(f"{prefix} example", definition.example, row.example if row else None)

    return report
