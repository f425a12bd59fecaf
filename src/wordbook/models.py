"""
Data model for Wordbook.

Two families of records live here:

- The in-memory dictionary tree edited by the user
  (``DictionaryData`` -> ``DictionaryEntry`` -> ``Definition``). It round-trips
  through the camelCase JSON shape used by the browser front-end.
- One record per store table (``EntryRow``, ``DefinitionTranslationRow``, ...)
  with ``from_row()``/``to_row()``. These are the only shapes that cross the
  row store boundary, so the rest of the package never handles untyped rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Tables
DICTIONARIES = "dictionaries"
ENTRIES = "dictionary_entries"
DEFINITIONS = "definitions"
DICTIONARY_TRANSLATIONS = "dictionary_translations"
ENTRY_TRANSLATIONS = "entry_translations"
DEFINITION_TRANSLATIONS = "definition_translations"

# Languages
BASE_LANGUAGE = "en"
TRANSLATION_LANGUAGES = ("de", "pt")
SUPPORTED_LANGUAGES = (BASE_LANGUAGE,) + TRANSLATION_LANGUAGES

LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "de": "German",
    "pt": "Portuguese",
}

DEFAULT_DICTIONARY_ID = "00000000-0000-0000-0000-000000000001"

COLOR_COMBOS = (1, 2, 3, 4)


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty and whitespace-only strings."""
    return value is None or not str(value).strip()


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Normalize a blank value to None; leave real text untouched."""
    return None if is_blank(value) else value


# =============================================================================
# IN-MEMORY TREE
# =============================================================================

@dataclass
class Definition:
    """One sense of an entry."""

    id: str = ""
    grammatical_class: str = ""
    meaning: str = ""
    example: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "grammaticalClass": self.grammatical_class,
            "meaning": self.meaning,
        }
        if self.example:
            data["example"] = self.example
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Definition":
        return cls(
            id=str(data.get("id") or ""),
            grammatical_class=data.get("grammaticalClass", data.get("grammatical_class")) or "",
            meaning=data.get("meaning") or "",
            example=data.get("example") or None,
        )


@dataclass
class DictionaryEntry:
    """One headword with its metadata and definitions."""

    id: str = ""
    word: str = ""
    ipa: str = ""
    origin: str = ""
    audio_url: Optional[str] = None
    color_combo: int = 1
    slug: Optional[str] = None
    definitions: List[Definition] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "word": self.word,
            "ipa": self.ipa,
            "origin": self.origin,
            "colorCombo": self.color_combo,
            "definitions": [d.to_dict() for d in self.definitions],
        }
        if self.audio_url:
            data["audioUrl"] = self.audio_url
        if self.slug:
            data["slug"] = self.slug
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DictionaryEntry":
        color = data.get("colorCombo", data.get("color_combo")) or 1
        return cls(
            id=str(data.get("id") or ""),
            word=data.get("word") or "",
            ipa=data.get("ipa") or "",
            origin=data.get("origin") or "",
            audio_url=data.get("audioUrl", data.get("audio_url")) or None,
            color_combo=int(color) if int(color) in COLOR_COMBOS else 1,
            slug=data.get("slug") or None,
            definitions=[Definition.from_dict(d) for d in data.get("definitions") or []],
        )


@dataclass
class DictionaryData:
    """The whole dictionary as edited and displayed."""

    title: str = ""
    description: str = ""
    entries: List[DictionaryEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DictionaryData":
        return cls(
            title=data.get("title") or "",
            description=data.get("description") or "",
            entries=[DictionaryEntry.from_dict(e) for e in data.get("entries") or []],
        )

    def find_entry(self, entry_id: str) -> Optional[DictionaryEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def entry_ids(self) -> List[str]:
        return [e.id for e in self.entries]

    def definition_ids(self) -> List[str]:
        return [d.id for e in self.entries for d in e.definitions]


# =============================================================================
# TABLE RECORDS
# =============================================================================

@dataclass
class DictionaryRow:
    id: str
    title: str = ""
    description: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DictionaryRow":
        return cls(id=row["id"], title=row.get("title") or "", description=row.get("description"))

    def to_row(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "description": self.description}


@dataclass
class EntryRow:
    id: str
    dictionary_id: str
    word: str
    ipa: Optional[str] = None
    origin: Optional[str] = None
    audio_url: Optional[str] = None
    color_combo: Optional[int] = None
    position: Optional[int] = None
    slug: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "EntryRow":
        return cls(
            id=row["id"],
            dictionary_id=row.get("dictionary_id") or "",
            word=row.get("word") or "",
            ipa=row.get("ipa"),
            origin=row.get("origin"),
            audio_url=row.get("audio_url"),
            color_combo=row.get("color_combo"),
            position=row.get("position"),
            slug=row.get("slug"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dictionary_id": self.dictionary_id,
            "word": self.word,
            "ipa": self.ipa,
            "origin": self.origin,
            "audio_url": self.audio_url,
            "color_combo": self.color_combo,
            "position": self.position,
            "slug": self.slug,
        }

    @classmethod
    def from_entry(cls, entry: DictionaryEntry, dictionary_id: str, position: int) -> "EntryRow":
        return cls(
            id=entry.id,
            dictionary_id=dictionary_id,
            word=entry.word,
            ipa=entry.ipa,
            origin=entry.origin,
            audio_url=entry.audio_url,
            color_combo=entry.color_combo,
            position=position,
            slug=entry.slug,
        )

    def mutable_fields(self) -> Dict[str, Any]:
        """Columns a save may rewrite on an existing row (never ``id``)."""
        row = self.to_row()
        del row["id"]
        del row["dictionary_id"]
        return row

    def to_entry(self, definitions: List[Definition]) -> DictionaryEntry:
        color = self.color_combo if self.color_combo in COLOR_COMBOS else 1
        return DictionaryEntry(
            id=self.id,
            word=self.word,
            ipa=self.ipa or "",
            origin=self.origin or "",
            audio_url=self.audio_url or None,
            color_combo=color,
            slug=self.slug or None,
            definitions=definitions,
        )


@dataclass
class DefinitionRow:
    id: str
    entry_id: str
    grammatical_class: str
    meaning: str
    example: Optional[str] = None
    position: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DefinitionRow":
        return cls(
            id=row["id"],
            entry_id=row.get("entry_id") or "",
            grammatical_class=row.get("grammatical_class") or "",
            meaning=row.get("meaning") or "",
            example=row.get("example"),
            position=row.get("position"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "entry_id": self.entry_id,
            "grammatical_class": self.grammatical_class,
            "meaning": self.meaning,
            "example": self.example,
            "position": self.position,
        }

    @classmethod
    def from_definition(cls, definition: Definition, entry_id: str, position: int) -> "DefinitionRow":
        return cls(
            id=definition.id,
            entry_id=entry_id,
            grammatical_class=definition.grammatical_class,
            meaning=definition.meaning,
            example=blank_to_none(definition.example),
            position=position,
        )

    def mutable_fields(self) -> Dict[str, Any]:
        row = self.to_row()
        del row["id"]
        return row

    def to_definition(self) -> Definition:
        return Definition(
            id=self.id,
            grammatical_class=self.grammatical_class,
            meaning=self.meaning,
            example=self.example or None,
        )


class _TranslationRow:
    """Shared behaviour of the three translation tables."""

    OWNER_KEY = ""
    FIELDS: tuple = ()

    def owner_id(self) -> str:
        return getattr(self, self.OWNER_KEY)

    def has_content(self) -> bool:
        """A row is only worth writing when at least one field is non-blank."""
        return any(not is_blank(getattr(self, name)) for name in self.FIELDS)

    def to_row(self) -> Dict[str, Any]:
        """Full row; blank fields become NULL ("not translated")."""
        row = {self.OWNER_KEY: self.owner_id(), "language": self.language}
        for name in self.FIELDS:
            row[name] = blank_to_none(getattr(self, name))
        return row

    def patch(self) -> Dict[str, Any]:
        """Conflict keys plus only the filled-in fields, for merging upserts."""
        row = {self.OWNER_KEY: self.owner_id(), "language": self.language}
        for name in self.FIELDS:
            value = getattr(self, name)
            if not is_blank(value):
                row[name] = value
        return row

    @classmethod
    def conflict_keys(cls) -> List[str]:
        return [cls.OWNER_KEY, "language"]


@dataclass
class DictionaryTranslationRow(_TranslationRow):
    dictionary_id: str
    language: str
    title: Optional[str] = None
    description: Optional[str] = None

    OWNER_KEY = "dictionary_id"
    FIELDS = ("title", "description")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DictionaryTranslationRow":
        return cls(
            dictionary_id=row.get("dictionary_id") or "",
            language=row.get("language") or "",
            title=row.get("title"),
            description=row.get("description"),
        )


@dataclass
class EntryTranslationRow(_TranslationRow):
    entry_id: str
    language: str
    origin: Optional[str] = None

    OWNER_KEY = "entry_id"
    FIELDS = ("origin",)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "EntryTranslationRow":
        return cls(
            entry_id=row.get("entry_id") or "",
            language=row.get("language") or "",
            origin=row.get("origin"),
        )


@dataclass
class DefinitionTranslationRow(_TranslationRow):
    definition_id: str
    language: str
    grammatical_class: Optional[str] = None
    meaning: Optional[str] = None
    example: Optional[str] = None

    OWNER_KEY = "definition_id"
    FIELDS = ("grammatical_class", "meaning", "example")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DefinitionTranslationRow":
        return cls(
            definition_id=row.get("definition_id") or "",
            language=row.get("language") or "",
            grammatical_class=row.get("grammatical_class"),
            meaning=row.get("meaning"),
            example=row.get("example"),
        )
