"""
Identity resolution for entries and definitions.

Decides, for every in-memory item of a save, which persisted row it stands
for, so updates keep the row id and with it every translation row that points
at that id.

Entries are matched in tiers:
1. ``id``: the in-memory id is a canonical UUID equal to a persisted id
2. ``slug``: both sides carry the same slug (case-sensitive)
3. ``new``: nothing matched; a fresh id is allocated

Definitions are matched against the persisted definitions of their own entry
with two extra tiers after ``slug``:
4. ``content``: same (grammatical class, meaning), ignoring case
5. ``position``: same index in the definitions list

Every tier runs over the whole batch before the next one starts, and a
persisted row can be claimed only once. A later item pointing at an already
claimed row falls through to the next tier.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from .models import Definition, DefinitionRow, DictionaryEntry, EntryRow

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Resolution tiers
TIER_ID = "id"
TIER_SLUG = "slug"
TIER_CONTENT = "content"
TIER_POSITION = "position"
TIER_NEW = "new"


def is_valid_uuid(value: Optional[str]) -> bool:
    """True if value is a canonical 8-4-4-4-12 hex UUID string."""
    return bool(value) and UUID_PATTERN.match(str(value)) is not None


def generate_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Resolution:
    """Outcome for one in-memory item."""

    index: int
    id: str
    tier: str

    @property
    def is_new(self) -> bool:
        return self.tier == TIER_NEW


# A matcher gets (item index, item, claimed row indices) and returns the
# index of the persisted row it claims, or None.
Matcher = Callable[[int, object, Set[int]], Optional[int]]


def _content_key(grammatical_class: Optional[str], meaning: Optional[str]) -> tuple:
    return ((grammatical_class or "").strip().casefold(), (meaning or "").strip().casefold())


def _first_unclaimed(candidates: List[int], claimed: Set[int]) -> Optional[int]:
    for j in candidates:
        if j not in claimed:
            return j
    return None


def _index_by(rows: Sequence, key) -> Dict:
    index: Dict = {}
    for j, row in enumerate(rows):
        k = key(row)
        if k:
            index.setdefault(k, []).append(j)
    return index


def _resolve(
    items: Sequence, rows: Sequence, reserved: Set[str], tiers: List[Tuple[str, Matcher]]
) -> List[Resolution]:
    """
    Run the tiers over the batch and allocate ids for what is left.

    ``reserved`` holds every id that a new item must not reuse: all persisted
    ids of the table plus ids already handed out in this save. It is updated
    in place.
    """
    results: List[Optional[Resolution]] = [None] * len(items)
    claimed: Set[int] = set()

    for tier, matcher in tiers:
        for i, item in enumerate(items):
            if results[i] is not None:
                continue
            j = matcher(i, item, claimed)
            if j is None:
                continue
            claimed.add(j)
            results[i] = Resolution(index=i, id=rows[j].id, tier=tier)
            reserved.add(rows[j].id)

    for i, item in enumerate(items):
        if results[i] is not None:
            continue
        new_id = item.id if is_valid_uuid(item.id) and item.id not in reserved else generate_id()
        if item.id and new_id != item.id:
            logger.debug(f"Replacing unusable id {item.id!r} with {new_id}")
        reserved.add(new_id)
        results[i] = Resolution(index=i, id=new_id, tier=TIER_NEW)

    return results


def _id_and_slug_tiers(rows: Sequence) -> List[Tuple[str, Matcher]]:
    by_id = _index_by(rows, lambda r: r.id)
    by_slug = _index_by(rows, lambda r: getattr(r, "slug", None))

    def match_id(i, item, claimed):
        if not is_valid_uuid(item.id):
            return None
        return _first_unclaimed(by_id.get(item.id, []), claimed)

    def match_slug(i, item, claimed):
        slug = getattr(item, "slug", None)
        if not slug:
            return None
        return _first_unclaimed(by_slug.get(slug, []), claimed)

    return [(TIER_ID, match_id), (TIER_SLUG, match_slug)]


def resolve_entries(
    entries: Sequence[DictionaryEntry],
    persisted: Sequence[EntryRow],
    reserved: Set[str],
) -> List[Resolution]:
    """
    Resolve in-memory entries against the persisted entries of the dictionary.

    Args:
        entries: Entries in save order.
        persisted: Snapshot of the persisted entry rows.
        reserved: Ids a new entry may not take; updated in place.

    Returns:
        One ``Resolution`` per entry, in input order.
    """
    return _resolve(entries, persisted, reserved, _id_and_slug_tiers(persisted))


def resolve_definitions(
    definitions: Sequence[Definition],
    persisted: Sequence[DefinitionRow],
    reserved: Set[str],
) -> List[Resolution]:
    """
    Resolve one entry's definitions against that entry's persisted definitions.

    ``persisted`` must be in stored position order for the positional tier.
    """
    by_content = _index_by(persisted, lambda r: _content_key(r.grammatical_class, r.meaning))

    def match_content(i, item, claimed):
        return _first_unclaimed(
            by_content.get(_content_key(item.grammatical_class, item.meaning), []), claimed
        )

    def match_position(i, item, claimed):
        if i < len(persisted) and i not in claimed:
            return i
        return None

    tiers = _id_and_slug_tiers(persisted) + [
        (TIER_CONTENT, match_content),
        (TIER_POSITION, match_position),
    ]
    return _resolve(definitions, persisted, reserved, tiers)
