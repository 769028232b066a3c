"""
Derived Row Data Class.

This module defines the record produced for every admitted delivery
note: the trimmed raw values, the derived heights and quantity, the
pallet classification and all warnings collected along the way.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field, fields as dataclass_fields
from typing import Any, Dict, List, Optional, Tuple


# Column order shared by the CSV/TSV/XLSX exports
EXPORT_COLUMNS = [
    'datum',
    'aantal',
    'unit',
    'hoogte_enkel',
    'hoogte_stack',
    'aantal2',
    'pallet',
]


@dataclass
class DerivedFields:
    """
    Deterministic output of the field derivation engine.

    Attributes:
        datum: Trimmed date string
        aantal: Trimmed raw quantity string
        unit: Trimmed raw unit code
        hoogte_enkel: Single height (digits x 10), None for invalid units
        hoogte_stack: Stacked height, doubled for heights up to 150
        aantal2: Adjusted integer quantity
        pallet: "BLOK" for unit letter M, otherwise "EURO"
        warnings: Warnings in the order the checks ran
        duplicate: Always False; duplicates never become rows
        file_name: Source file name
        page_index: 1-based source page
    """
    datum: str = ""
    aantal: str = ""
    unit: str = ""
    hoogte_enkel: Optional[int] = None
    hoogte_stack: Optional[int] = None
    aantal2: Optional[int] = None
    pallet: str = "EURO"
    warnings: List[str] = field(default_factory=list)
    duplicate: bool = False
    file_name: str = ""
    page_index: int = 0


@dataclass
class DerivedRow(DerivedFields):
    """
    A delivery note record as kept in the result store.

    Adds to DerivedFields the row identity and provenance: the original
    raw note, the task metadata and the note's position on its page.

    Example:
        >>> row = DerivedRow(id="r1", datum="01-01-2024", unit="E28")
        >>> row.export_values()[:3]
        ['01-01-2024', '', 'E28']
    """
    id: str = ""
    raw: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    note_index: int = 0

    def export_values(self) -> List[Any]:
        """Values in export column order."""
        return [getattr(self, column) for column in EXPORT_COLUMNS]

    def details(self) -> List[Tuple[str, Any]]:
        """
        Label/value pairs for a detail view of the row.

        Returns:
            List of (label, display value) tuples.
        """
        def show(value: Any) -> Any:
            return '-' if value is None or value == '' else value

        return [
            ('Filename', self.file_name),
            ('Page #', self.page_index),
            ('Datum', show(self.datum)),
            ('Aantal (raw)', show(self.aantal)),
            ('Unit', show(self.unit)),
            ('Hoogte enkel', show(self.hoogte_enkel)),
            ('Hoogte stack', show(self.hoogte_stack)),
            ('Aantal2', show(self.aantal2)),
            ('Pallet', self.pallet),
            ('Warnings', ', '.join(self.warnings) if self.warnings else 'None'),
        ]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary format.

        Returns:
            Dictionary representation of the row.
        """
        return {
            'id': self.id,
            'datum': self.datum,
            'aantal': self.aantal,
            'unit': self.unit,
            'hoogte_enkel': self.hoogte_enkel,
            'hoogte_stack': self.hoogte_stack,
            'aantal2': self.aantal2,
            'pallet': self.pallet,
            'warnings': list(self.warnings),
            'duplicate': self.duplicate,
            'file_name': self.file_name,
            'page_index': self.page_index,
            'raw': dict(self.raw),
            'meta': dict(self.meta),
            'note_index': self.note_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DerivedRow':
        """
        Create a DerivedRow from a persisted dictionary.

        Unknown keys are ignored and missing keys take their defaults.

        Args:
            data: Dictionary with row data.

        Returns:
            DerivedRow instance.
        """
        known = {f.name for f in dataclass_fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        values['warnings'] = list(values.get('warnings') or [])
        values['raw'] = dict(values.get('raw') or {})
        values['meta'] = dict(values.get('meta') or {})
        return cls(**values)

    def __repr__(self) -> str:
        return (
            f"DerivedRow("
            f"file={self.file_name}, page={self.page_index}, "
            f"unit={self.unit!r}, aantal2={self.aantal2}, "
            f"pallet={self.pallet}, warnings={len(self.warnings)})"
        )
