"""
Line-oriented translation template.

The template lists every translatable field of the base dictionary as a
``KEY: value`` line followed by a ``KEY_TRANSLATION`` line that the
translator fills in::

    DICTIONARY_TITLE: My Words
    DICTIONARY_TITLE_TRANSLATION: [ADD YOUR TRANSLATION HERE]
    DICTIONARY_DESCRIPTION: ...
    DICTIONARY_DESCRIPTION_TRANSLATION: [ADD YOUR TRANSLATION HERE]
    --- ENTRIES ---
    ENTRY_1_WORD: apple
    ENTRY_1_ORIGIN: Old English
    ENTRY_1_ORIGIN_TRANSLATION: [ADD YOUR TRANSLATION HERE]
    ENTRY_1_DEF_1_CLASS: noun
    ENTRY_1_DEF_1_CLASS_TRANSLATION: [ADD YOUR TRANSLATION HERE]
    ...

Entry and definition numbers are 1-based and follow list order. Parsing
returns a ``TranslationPatch`` that keeps the source text of every field for
matching and the translation (or None) as the value to store.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .models import DictionaryData

logger = logging.getLogger(__name__)

PLACEHOLDER = "[ADD YOUR TRANSLATION HERE]"
ENTRIES_SEPARATOR = "--- ENTRIES ---"
TRANSLATION_SUFFIX = "_TRANSLATION"

_DICTIONARY_KEY = re.compile(r"^DICTIONARY_(TITLE|DESCRIPTION)(_TRANSLATION)?$")
_ENTRY_KEY = re.compile(r"^ENTRY_(\d+)_(WORD|ORIGIN)(_TRANSLATION)?$")
_DEFINITION_KEY = re.compile(r"^ENTRY_(\d+)_DEF_(\d+)_(CLASS|MEANING|EXAMPLE)(_TRANSLATION)?$")

_DEFINITION_FIELDS = {"CLASS": "grammatical_class", "MEANING": "meaning", "EXAMPLE": "example"}


@dataclass
class PatchField:
    """Source text of one field and its translation, if one was provided."""

    original: str = ""
    translation: Optional[str] = None


@dataclass
class DefinitionPatch:
    index: int
    grammatical_class: PatchField = field(default_factory=PatchField)
    meaning: PatchField = field(default_factory=PatchField)
    example: PatchField = field(default_factory=PatchField)

    def has_translation(self) -> bool:
        return any(
            f.translation is not None for f in (self.grammatical_class, self.meaning, self.example)
        )


@dataclass
class EntryPatch:
    index: int
    word: str = ""
    origin: PatchField = field(default_factory=PatchField)
    definitions: List[DefinitionPatch] = field(default_factory=list)


@dataclass
class TranslationPatch:
    """Sparse set of translations read from a template or JSON file."""

    title: PatchField = field(default_factory=PatchField)
    description: PatchField = field(default_factory=PatchField)
    entries: List[EntryPatch] = field(default_factory=list)


def clean_translation(value: Optional[str]) -> Optional[str]:
    """None for a missing, blank or placeholder value, else the stripped text."""
    if value is None:
        return None
    value = value.strip()
    if not value or value == PLACEHOLDER:
        return None
    return value


def _one_line(value: Optional[str]) -> str:
    """Keep every field on a single line."""
    return " ".join((value or "").split())


# =============================================================================
# EXPORT
# =============================================================================

def export_translation_template(data: DictionaryData) -> str:
    """
    Render the base dictionary as a translation template.

    Returns:
        Template text, newline-terminated.
    """
    lines: List[str] = []

    def pair(key: str, value: Optional[str]) -> None:
        lines.append(f"{key}: {_one_line(value)}".rstrip())
        lines.append(f"{key}{TRANSLATION_SUFFIX}: {PLACEHOLDER}")

    pair("DICTIONARY_TITLE", data.title)
    pair("DICTIONARY_DESCRIPTION", data.description)
    lines.append(ENTRIES_SEPARATOR)

    for n, entry in enumerate(data.entries, start=1):
        lines.append(f"ENTRY_{n}_WORD: {_one_line(entry.word)}".rstrip())
        pair(f"ENTRY_{n}_ORIGIN", entry.origin)
        for m, definition in enumerate(entry.definitions, start=1):
            prefix = f"ENTRY_{n}_DEF_{m}"
            pair(f"{prefix}_CLASS", definition.grammatical_class)
            pair(f"{prefix}_MEANING", definition.meaning)
            pair(f"{prefix}_EXAMPLE", definition.example)

    logger.debug(f"Exported template with {len(data.entries)} entries")
    return "\n".join(lines) + "\n"


# =============================================================================
# IMPORT
# =============================================================================

def _split_line(line: str) -> Optional[tuple]:
    if ":" not in line:
        return None
    key, value = line.split(":", 1)
    return key.strip(), value.strip()


def _set(target: PatchField, is_translation: bool, value: str) -> None:
    if is_translation:
        target.translation = clean_translation(value)
    else:
        target.original = value


def parse_translation_template(text: str) -> TranslationPatch:
    """
    Parse a filled-in template.

    Unknown keys, blank lines and the entries separator are ignored, and a
    translation left as the placeholder or empty becomes None.
    """
    patch = TranslationPatch()
    entries: Dict[int, EntryPatch] = {}
    definitions: Dict[tuple, DefinitionPatch] = {}

    def entry_at(n: int) -> EntryPatch:
        if n not in entries:
            entries[n] = EntryPatch(index=n)
        return entries[n]

    if text.startswith("\ufeff"):
        text = text[1:]

    for line in text.splitlines():
        parsed = _split_line(line)
        if parsed is None:
            continue
        key, value = parsed

        match = _DICTIONARY_KEY.match(key)
        if match:
            target = patch.title if match.group(1) == "TITLE" else patch.description
            _set(target, bool(match.group(2)), value)
            continue

        match = _DEFINITION_KEY.match(key)
        if match:
            n, m = int(match.group(1)), int(match.group(2))
            if (n, m) not in definitions:
                definitions[(n, m)] = DefinitionPatch(index=m)
                entry_at(n).definitions.append(definitions[(n, m)])
            target = getattr(definitions[(n, m)], _DEFINITION_FIELDS[match.group(3)])
            _set(target, bool(match.group(4)), value)
            continue

        match = _ENTRY_KEY.match(key)
        if match:
            entry = entry_at(int(match.group(1)))
            if match.group(2) == "WORD":
                if not match.group(3):
                    entry.word = value
            else:
                _set(entry.origin, bool(match.group(3)), value)
            continue

        logger.debug(f"Ignoring unknown template key: {key}")

    for entry in entries.values():
        entry.definitions.sort(key=lambda d: d.index)
    patch.entries = [entries[n] for n in sorted(entries)]
    return patch
