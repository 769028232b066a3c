"""
Data Validators Module.

This module provides validation for unit codes. A unit code is one
uppercase ASCII letter followed by exactly two digits, e.g. "E28".

Author: ML Engineering Team
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from cmr_notes.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

UNIT_FORMAT_INVALID = "Unit format invalid."


@dataclass(frozen=True)
class UnitInfo:
    """
    Parsed unit code.

    Attributes:
        valid: Whether the code matches the unit pattern
        letter: First character of the code ("" for an empty code)
        digits: Integer value of the two digits, only when valid
    """
    valid: bool
    letter: str
    digits: Optional[int]


class UnitValidator:
    """
    Validates and splits unit codes.

    The letter is taken from the raw code whether or not the code as a
    whole is valid, so "E2X" still reports letter "E".

    Example:
        >>> warnings = []
        >>> UnitValidator().parse("E28", warnings)
        UnitInfo(valid=True, letter='E', digits=28)
        >>> UnitValidator().parse("E2X", warnings).digits is None
        True
    """

    UNIT_PATTERN = re.compile(r'[A-Z][0-9]{2}')

    def is_valid(self, raw: str) -> bool:
        """Check if a trimmed unit code is valid."""
        return self.UNIT_PATTERN.fullmatch(raw) is not None

    def parse(self, raw: str, warnings: List[str]) -> UnitInfo:
        """
        Parse a trimmed unit code.

        Args:
            raw: Trimmed raw unit code.
            warnings: Warning list to append to.

        Returns:
            UnitInfo for the code.
        """
        valid = self.is_valid(raw)
        if not valid:
            warnings.append(UNIT_FORMAT_INVALID)

        return UnitInfo(
            valid=valid,
            letter=raw[0] if raw else "",
            digits=int(raw[1:]) if valid else None
        )
