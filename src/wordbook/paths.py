"""
Path resolution helpers for Wordbook.

Provides consistent path resolution relative to the repository root,
regardless of the current working directory.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Cache for the repository root
_repo_root: Optional[Path] = None

# Default database location (relative to the repository root)
DEFAULT_DB_PATH = Path("data/db/wordbook.db")


def get_repo_root() -> Path:
    """
    Get the repository root directory.

    Walks up from this file looking for ``pyproject.toml`` or
    ``wordbook.toml``; falls back to the current working directory.

    Returns:
        Path to the repository root.
    """
    global _repo_root

    if _repo_root is not None:
        return _repo_root

    current = Path(__file__).resolve()
    markers = ["pyproject.toml", "wordbook.toml"]

    for parent in [current] + list(current.parents):
        for marker in markers:
            if (parent / marker).exists():
                _repo_root = parent
                return _repo_root

    _repo_root = Path.cwd().resolve()
    return _repo_root


def resolve_path(path: str | os.PathLike, base: Optional[Path] = None) -> Path:
    """
    Resolve a path, optionally relative to a base directory.

    Args:
        path: The path to resolve.
        base: Base directory for relative paths. Defaults to repo root.

    Returns:
        Resolved absolute path.
    """
    p = Path(path)
    if p.is_absolute():
        return p.resolve()

    if base is None:
        base = get_repo_root()

    return (base / p).resolve()


def get_default_db_path() -> Path:
    """Get the default path to the SQLite database."""
    return get_repo_root() / DEFAULT_DB_PATH
