"""Test configuration and fixtures for Wordbook tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for development testing
_src_dir = Path(__file__).parent.parent / "src"
if _src_dir.exists():
    sys.path.insert(0, str(_src_dir))

from wordbook.models import Definition, DictionaryData, DictionaryEntry  # noqa: E402
from wordbook.repository import DictionaryRepository  # noqa: E402
from wordbook.store import SQLiteRowStore, init_db  # noqa: E402


# ==============================================================================
# Sample data
# ==============================================================================

def make_sample_data() -> DictionaryData:
    """Three entries, deliberately out of order, without ids."""
    return DictionaryData(
        title="My Words",
        description="Words I like",
        entries=[
            DictionaryEntry(
                word="zebra",
                ipa="ˈziːbrə",
                origin="Italian",
                definitions=[
                    Definition(grammatical_class="noun", meaning="A striped animal"),
                ],
            ),
            DictionaryEntry(
                word="Apple",
                ipa="ˈæpəl",
                origin="Old English",
                definitions=[
                    Definition(
                        grammatical_class="noun",
                        meaning="A round fruit",
                        example="She ate an apple.",
                    ),
                    Definition(grammatical_class="noun", meaning="A tech company"),
                ],
            ),
            DictionaryEntry(
                word="banana",
                definitions=[
                    Definition(grammatical_class="noun", meaning="A long yellow fruit"),
                ],
            ),
        ],
    )


# ==============================================================================
# Shared pytest fixtures
# ==============================================================================

@pytest.fixture
def db_path(tmp_path) -> Path:
    """Create an initialized database file."""
    return init_db(tmp_path / "test.db")


@pytest.fixture
def store(db_path) -> SQLiteRowStore:
    return SQLiteRowStore(db_path)


@pytest.fixture
def repo(store) -> DictionaryRepository:
    """Repository with the dictionary row already created."""
    repository = DictionaryRepository(store)
    repository.ensure_dictionary("My Words", "Words I like")
    return repository


@pytest.fixture
def sample_data() -> DictionaryData:
    return make_sample_data()


@pytest.fixture
def saved_data(repo, sample_data) -> DictionaryData:
    """Sample data after a first save, with the stored ids."""
    from wordbook.sync import save_dictionary

    return save_dictionary(repo, sample_data).data
