"""
Field Derivation Engine Module.

This module maps one raw extracted note to one derived record. The
derivation is deterministic, touches no shared state, and never raises
for bad field values: every problem becomes a warning on the record.

Derivation steps (warnings are recorded in this order):
    1. Quantity: trim, comma decimal, numeric parse
    2. Unit: trim, pattern check, letter and digits
    3. Single height: digits x 10 for valid units
    4. Stacked height: doubled for single heights up to 150
    5. Adjusted quantity: halved for single heights up to 150, rounded
    6. Pallet: BLOK for unit letter M, otherwise EURO

Author: ML Engineering Team
"""

from typing import Any, Dict, List, Optional

from cmr_notes.utils.logger import get_logger
from cmr_notes.utils.helpers import generate_row_id
from cmr_notes.extraction.schemas import PageMeta, RawNote
from .derived_row import DerivedFields, DerivedRow
from .normalizers import QuantityNormalizer, round_half_up
from .validators import UnitValidator

# Initialize module logger
logger = get_logger(__name__)

HEIGHT_MISSING = "Unit invalid; hoogte_enkel missing."

# Sample notes checked at startup in debug mode
SELF_CHECK_SAMPLES = [
    {'unit': 'E28', 'aantal': '10', 'label': 'E28 with aantal 10'},
    {'unit': 'E15', 'aantal': '9', 'label': 'E15 with aantal 9'},
    {'unit': 'E20', 'aantal': '12,5', 'label': 'E20 with aantal 12,5'},
    {'unit': 'M15', 'aantal': '8', 'label': 'M15 pallet=BLOK'},
    {'unit': 'A20', 'aantal': '5', 'label': 'A20 pallet=EURO'},
    {'unit': 'E2X', 'aantal': '7', 'label': 'Invalid unit E2X'},
]


class FieldDerivationEngine:
    """
    Derives heights, adjusted quantity and pallet type for a note.

    Attributes:
        quantity_normalizer: QuantityNormalizer instance
        unit_validator: UnitValidator instance

    Example:
        >>> engine = FieldDerivationEngine()
        >>> meta = PageMeta(fileName="scan.pdf", fileIndex=0, pageIndex=1)
        >>> fields = engine.derive(RawNote(aantal="9", unit="E15"), meta)
        >>> fields.hoogte_stack, fields.aantal2
        (300, 5)
    """

    HEIGHT_FACTOR = 10
    # Single heights at or below this are stacked two high
    STACK_THRESHOLD = 150
    BLOCK_LETTER = 'M'

    def __init__(self) -> None:
        """Initialize the engine with its parsers."""
        self.quantity_normalizer = QuantityNormalizer()
        self.unit_validator = UnitValidator()

    def derive(self, note: RawNote, meta: PageMeta) -> DerivedFields:
        """
        Derive all fields for one note.

        Args:
            note: Raw note from the extraction boundary.
            meta: Metadata of the page the note came from.

        Returns:
            DerivedFields with accumulated warnings.
        """
        warnings: List[str] = []
        datum = (note.datum or '').strip()
        raw_aantal = (note.aantal or '').strip()
        raw_unit = (note.unit or '').strip()

        quantity = self.quantity_normalizer.parse(raw_aantal, warnings)
        unit = self.unit_validator.parse(raw_unit, warnings)

        hoogte_enkel: Optional[int] = None
        if unit.valid:
            hoogte_enkel = unit.digits * self.HEIGHT_FACTOR
        else:
            warnings.append(HEIGHT_MISSING)

        hoogte_stack: Optional[int] = None
        if hoogte_enkel is not None:
            if hoogte_enkel <= self.STACK_THRESHOLD:
                hoogte_stack = hoogte_enkel * 2
            else:
                hoogte_stack = hoogte_enkel

        aantal2: Optional[int] = None
        if quantity is not None:
            if hoogte_enkel is not None and hoogte_enkel <= self.STACK_THRESHOLD:
                aantal2 = round_half_up(quantity / 2)
            else:
                aantal2 = round_half_up(quantity)

        pallet = 'BLOK' if unit.letter == self.BLOCK_LETTER else 'EURO'

        return DerivedFields(
            datum=datum,
            aantal=raw_aantal,
            unit=raw_unit,
            hoogte_enkel=hoogte_enkel,
            hoogte_stack=hoogte_stack,
            aantal2=aantal2,
            pallet=pallet,
            warnings=warnings,
            duplicate=False,
            file_name=meta.file_name,
            page_index=meta.page_index
        )

    def build_row(self, note: RawNote, meta: PageMeta, note_index: int) -> DerivedRow:
        """
        Derive a note and wrap it into a new result row.

        Args:
            note: Raw note from the extraction boundary.
            meta: Metadata of the page the note came from.
            note_index: Position of the note in the page's response.

        Returns:
            DerivedRow with a fresh id and its provenance attached.
        """
        derived = self.derive(note, meta)
        row = DerivedRow(
            id=generate_row_id(),
            raw=note.to_dict(),
            meta=meta.to_wire(),
            note_index=note_index,
            **vars(derived)
        )
        if row.warnings:
            logger.debug(f"{row.file_name} p{row.page_index}: {', '.join(row.warnings)}")
        return row


_default_engine = FieldDerivationEngine()


def derive_fields(note: RawNote, meta: PageMeta) -> DerivedFields:
    """Derive one note with the shared engine instance."""
    return _default_engine.derive(note, meta)


def run_self_check() -> List[Dict[str, Any]]:
    """
    Derive the built-in sample notes and log the results.

    Returns:
        List of {"label", "fields"} dictionaries.
    """
    meta = PageMeta(fileName='test.pdf', fileIndex=0, pageIndex=1)
    results = []
    for sample in SELF_CHECK_SAMPLES:
        note = RawNote(datum='01-01-2024', aantal=sample['aantal'], unit=sample['unit'])
        derived = derive_fields(note, meta)
        logger.debug(f"{sample['label']}: {derived}")
        results.append({'label': sample['label'], 'fields': derived})
    return results
