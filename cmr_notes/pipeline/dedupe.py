"""
Dedupe Store Module.

Tracks the composite keys of every admitted note so the same note is
never turned into a row twice, within a run or across runs.

Key: (file name, page index, raw datum, raw aantal, raw unit), taken
before any trimming, case-sensitive. Absent fields count as "".
"""

from typing import Iterable, Set, Tuple

from cmr_notes.utils.logger import get_logger
from cmr_notes.extraction.schemas import RawNote
from cmr_notes.postprocessor.derived_row import DerivedRow

# Initialize module logger
logger = get_logger(__name__)

DedupeKey = Tuple[str, int, str, str, str]


def make_key(file_name: str, page_index: int, note: RawNote) -> DedupeKey:
    """Key for a note arriving from the extraction boundary."""
    return (
        file_name,
        page_index,
        note.datum or '',
        note.aantal or '',
        note.unit or '',
    )


def key_for_row(row: DerivedRow) -> DedupeKey:
    """
    Key for a persisted row.

    Uses the embedded raw note when there is one so the key matches the
    one computed at admission; older rows fall back to their own fields.
    """
    source = row.raw if row.raw else {
        'datum': row.datum,
        'aantal': row.aantal,
        'unit': row.unit,
    }
    return (
        row.file_name,
        row.page_index,
        str(source.get('datum') or ''),
        str(source.get('aantal') or ''),
        str(source.get('unit') or ''),
    )


class DedupeStore:
    """
    Set of admitted note keys.

    Example:
        >>> store = DedupeStore()
        >>> key = ("scan.pdf", 1, "01-01-2024", "10", "E28")
        >>> store.admit(key), store.admit(key)
        (True, False)
    """

    def __init__(self) -> None:
        self._keys: Set[DedupeKey] = set()

    def admit(self, key: DedupeKey) -> bool:
        """
        Record a key if it is new.

        Returns:
            True if the key was unseen, False for a duplicate.
        """
        if key in self._keys:
            logger.debug(f"Dropping duplicate note {key}")
            return False
        self._keys.add(key)
        return True

    def rehydrate(self, rows: Iterable[DerivedRow]) -> None:
        """Rebuild the key set from persisted rows."""
        self._keys = {key_for_row(row) for row in rows}
        logger.debug(f"Dedupe store rehydrated with {len(self._keys)} key(s)")

    def clear(self) -> None:
        self._keys.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
