"""
Wordbook - personal multilingual dictionary.

This package provides:
- An English dictionary of entries and their definitions
- German and Portuguese translations kept in overlay tables
- Identity-preserving saves that keep ids stable across edits
- Translation template and JSON import/export
- A small JSON web API with PIN-protected edit mode
"""

__version__ = "1.0.0"
__author__ = "Wordbook Contributors"

# Models
from .models import (
    BASE_LANGUAGE,
    SUPPORTED_LANGUAGES,
    TRANSLATION_LANGUAGES,
    Definition,
    DictionaryData,
    DictionaryEntry,
)

# Storage
from .repository import DictionaryRepository
from .store import RowStore, SQLiteRowStore, init_db

# Dictionary operations
from .overlay import load_dictionary, translation_coverage
from .sync import save_dictionary

# Translation files
from .template_codec import export_translation_template, parse_translation_template
from .translation_import import import_translation_file

__all__ = [
    # Models
    "BASE_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "TRANSLATION_LANGUAGES",
    "Definition",
    "DictionaryEntry",
    "DictionaryData",
    # Storage
    "RowStore",
    "SQLiteRowStore",
    "DictionaryRepository",
    "init_db",
    # Dictionary operations
    "load_dictionary",
    "save_dictionary",
    "translation_coverage",
    # Translation files
    "export_translation_template",
    "parse_translation_template",
    "import_translation_file",
    # Version
    "__version__",
]
