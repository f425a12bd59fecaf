"""
Entry ordering and color assignment.

Entries are kept in case-insensitive alphabetical order and every entry gets
one of four display colors from its position in that order.
"""

from typing import List, Sequence

from .models import COLOR_COMBOS, DictionaryEntry


def word_sort_key(entry: DictionaryEntry) -> str:
    return (entry.word or "").casefold()


def sort_entries(entries: Sequence[DictionaryEntry]) -> List[DictionaryEntry]:
    """Return entries sorted by word, ignoring case. Equal words keep their order."""
    return sorted(entries, key=word_sort_key)


def color_for_index(index: int) -> int:
    return COLOR_COMBOS[index % len(COLOR_COMBOS)]


def assign_color_combos(entries: Sequence[DictionaryEntry]) -> List[DictionaryEntry]:
    """
    Set ``color_combo`` from each entry's index in the already sorted list.

    Colors are never carried over from a previous save: inserting or removing
    an entry shifts every entry after it.
    """
    for index, entry in enumerate(entries):
        entry.color_combo = color_for_index(index)
    return list(entries)
