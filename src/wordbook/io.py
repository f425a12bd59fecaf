"""
I/O utilities for Wordbook.

Provides functions for:
- Loading and writing ``DictionaryData`` JSON files
- Reading text files for import
- Converting legacy dictionary dumps (string ids) for a first save
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigurationError, ValidationError
from .identity import generate_id, is_valid_uuid
from .models import DictionaryData
from .ordering import sort_entries

logger = logging.getLogger(__name__)


def read_text_file(filepath: Path) -> str:
    """
    Read a UTF-8 text file.

    Raises:
        ConfigurationError: If the file doesn't exist or cannot be read.
    """
    if not filepath.exists():
        raise ConfigurationError(f"File not found: {filepath}")
    try:
        return filepath.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Error reading {filepath.name}: {e}")


def load_json_file(filepath: Path) -> Dict[str, Any]:
    """
    Load a JSON object from a file.

    Raises:
        ConfigurationError: If the file doesn't exist.
        ValidationError: If the JSON is invalid or not an object.
    """
    text = read_text_file(filepath)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {filepath.name}: {e}")

    if not isinstance(data, dict):
        raise ValidationError(f"{filepath.name}: expected a JSON object at the top level")

    logger.debug(f"Loaded JSON data from {filepath.name}")
    return data


def load_dictionary_file(filepath: Path) -> DictionaryData:
    """Load a ``DictionaryData`` tree from its camelCase JSON form."""
    data = load_json_file(filepath)
    if not isinstance(data.get("entries", []), list):
        raise ValidationError(f"{filepath.name}: 'entries' must be a list")
    return DictionaryData.from_dict(data)


def write_text_file(filepath: Path, content: str) -> Path:
    """Write UTF-8 text, creating parent directories."""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(content, encoding="utf-8")
    logger.info(f"Wrote {filepath}")
    return filepath


def write_dictionary_file(data: DictionaryData, filepath: Path) -> Path:
    return write_text_file(filepath, json.dumps(data.to_dict(), indent=2, ensure_ascii=False) + "\n")


def migrate_legacy_data(payload: Dict[str, Any], current: Optional[DictionaryData] = None) -> DictionaryData:
    """
    Prepare an old dictionary dump for its first save.

    Legacy dumps used short string ids. Every id that is not a UUID is
    replaced with a fresh one, entries are sorted by word, and a missing
    title or description falls back to ``current``.
    """
    data = DictionaryData.from_dict(payload)
    if current is not None:
        data.title = data.title or current.title
        data.description = data.description or current.description

    replaced = 0
    for entry in data.entries:
        if not is_valid_uuid(entry.id):
            entry.id = generate_id()
            replaced += 1
        for definition in entry.definitions:
            if not is_valid_uuid(definition.id):
                definition.id = generate_id()
                replaced += 1

    data.entries = sort_entries(data.entries)
    logger.info(f"Prepared {len(data.entries)} legacy entries ({replaced} id(s) replaced)")
    return data
