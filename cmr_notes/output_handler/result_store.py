"""
Result Store Module.

Ordered collection of derived rows. Insertion order is arrival order,
which under concurrent processing is not necessarily page order.

Features:
    - Stable sort on any scalar field, ascending or descending
    - Case-insensitive substring filter over every field
    - Flattened warnings list for an issues overview
    - Clearing together with the dedupe store

Author: ML Engineering Team
"""

from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Sequence, Tuple

from cmr_notes.utils.logger import get_logger
from cmr_notes.postprocessor.derived_row import DerivedRow
from cmr_notes.postprocessor.normalizers import DateNormalizer

if TYPE_CHECKING:
    from cmr_notes.pipeline.dedupe import DedupeStore

# Initialize module logger
logger = get_logger(__name__)

SORTABLE_FIELDS = [
    'datum',
    'aantal',
    'unit',
    'hoogte_enkel',
    'hoogte_stack',
    'aantal2',
    'pallet',
    'file_name',
    'page_index',
    'note_index',
    'id',
]

NO_WARNINGS_TEXT = "No warnings."


def _searchable_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return ','.join('' if item is None else str(item) for item in value)
    if isinstance(value, dict):
        parts = [_searchable_text(item) for item in value.values()]
        return ' '.join(part for part in parts if part is not None)
    return str(value)


class ResultStore:
    """
    Append-only ordered collection of derived rows.

    Attributes:
        dedupe: DedupeStore cleared together with the rows

    Example:
        >>> store = ResultStore(DedupeStore())
        >>> store.append(row)
        >>> store.view(sort_key="aantal2", descending=True, term="blok")
    """

    def __init__(self, dedupe: "DedupeStore") -> None:
        self.dedupe = dedupe
        self._rows: List[DerivedRow] = []
        self._date_normalizer = DateNormalizer()

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[DerivedRow]:
        return iter(list(self._rows))

    @property
    def rows(self) -> List[DerivedRow]:
        """Snapshot of the rows in arrival order."""
        return list(self._rows)

    def append(self, row: DerivedRow) -> None:
        self._rows.append(row)

    def load(self, rows: Sequence[DerivedRow]) -> None:
        """Replace the contents with persisted rows and rehydrate dedupe."""
        self._rows = list(rows)
        self.dedupe.rehydrate(self._rows)
        logger.info(f"Loaded {len(self._rows)} stored row(s)")

    def get(self, row_id: str) -> Optional[DerivedRow]:
        for row in self._rows:
            if row.id == row_id:
                return row
        return None

    def clear(self) -> None:
        """Empty the rows and the dedupe store."""
        self._rows = []
        self.dedupe.clear()

    def _sort_key(self, row: DerivedRow, key: str) -> Tuple[int, Any]:
        value = getattr(row, key)
        if key == 'datum':
            return self._date_normalizer.sort_key(value)
        if value is None:
            return (0, '')
        return (1, value)

    def sorted_rows(
        self,
        key: str = 'datum',
        descending: bool = False,
        rows: Optional[Sequence[DerivedRow]] = None
    ) -> List[DerivedRow]:
        """
        Sort rows by a field; ties keep arrival order.

        Args:
            key: Field to sort on, one of SORTABLE_FIELDS.
            descending: Sort direction.
            rows: Rows to sort, defaults to the whole store.

        Returns:
            New sorted list.

        Raises:
            ValueError: For an unknown sort field.
        """
        if key not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort on '{key}'. Choose from: {', '.join(SORTABLE_FIELDS)}")

        source = self._rows if rows is None else rows
        return sorted(source, key=lambda row: self._sort_key(row, key), reverse=descending)

    def filter(self, term: str, rows: Optional[Sequence[DerivedRow]] = None) -> List[DerivedRow]:
        """
        Keep rows where any field contains ``term``, ignoring case.

        An empty term keeps every row.
        """
        source = self._rows if rows is None else rows
        if not term:
            return list(source)

        needle = term.lower()
        matches = []
        for row in source:
            for value in row.to_dict().values():
                text = _searchable_text(value)
                if text is not None and needle in text.lower():
                    matches.append(row)
                    break
        return matches

    def view(
        self,
        sort_key: Optional[str] = None,
        descending: bool = False,
        term: str = ''
    ) -> List[DerivedRow]:
        """Filtered, then sorted, rows for display."""
        rows = self.filter(term)
        if sort_key:
            rows = self.sorted_rows(sort_key, descending, rows)
        return rows

    def issues(self) -> List[str]:
        """Every warning as "<file> p<page>: <warning>", in row order."""
        return [
            f"{row.file_name} p{row.page_index}: {warning}"
            for row in self._rows
            for warning in row.warnings
        ]

    def issues_text(self) -> str:
        issues = self.issues()
        return ' | '.join(issues) if issues else NO_WARNINGS_TEXT

    def to_list(self) -> List[dict]:
        return [row.to_dict() for row in self._rows]
