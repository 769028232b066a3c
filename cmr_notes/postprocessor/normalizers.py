"""
Data Normalizers Module.

This module provides normalization functions for:
    - Quantity strings (comma decimals, lenient numeric prefix)
    - Delivery note dates (for ordering only, the raw string is kept)
    - Half-up rounding

Author: ML Engineering Team
"""

import math
import re
from datetime import datetime
from typing import Any, List, Optional, Tuple
from dateutil import parser as date_parser

from cmr_notes.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

MISSING_QUANTITY = "Missing aantal."
QUANTITY_NOT_A_NUMBER = "Aantal is not a number."


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves rounding up.

    Example:
        >>> round_half_up(4.5)
        5
        >>> round_half_up(-2.5)
        -2
    """
    return int(math.floor(value + 0.5))


class QuantityNormalizer:
    """
    Parses raw quantity ("aantal") strings.

    Only the first comma is treated as the decimal separator. Parsing is
    lenient: the longest leading numeric prefix is used, so "12,5 pcs"
    yields 12.5 while "abc" is not a number.

    Example:
        >>> warnings = []
        >>> QuantityNormalizer().parse("12,5", warnings)
        12.5
        >>> QuantityNormalizer().parse("", warnings)
        >>> warnings
        ['Missing aantal.']
    """

    NUMBER_PREFIX = re.compile(
        r'[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)'
    )

    def parse(self, raw: str, warnings: List[str]) -> Optional[float]:
        """
        Parse a trimmed quantity string.

        Args:
            raw: Trimmed raw quantity.
            warnings: Warning list to append to.

        Returns:
            Parsed value, or None with a warning appended.
        """
        if not raw:
            warnings.append(MISSING_QUANTITY)
            return None

        normalized = raw.replace(',', '.', 1)
        match = self.NUMBER_PREFIX.match(normalized)
        if match is None:
            warnings.append(QUANTITY_NOT_A_NUMBER)
            return None

        value = float(match.group(0))
        if not math.isfinite(value):
            warnings.append(QUANTITY_NOT_A_NUMBER)
            return None

        return value


class DateNormalizer:
    """
    Interprets delivery note dates for ordering.

    Dates are expected as DD-MM-YYYY, so parsing is day-first. The
    stored date string itself is never rewritten.

    Example:
        >>> DateNormalizer().parse("03-04-2024")
        datetime.datetime(2024, 4, 3, 0, 0)
    """

    INPUT_FORMATS = ["%d-%m-%Y", "%d.%m.%Y", "%d/%m/%Y", "%Y-%m-%d"]
    FILL_A = datetime(2000, 1, 1)
    FILL_B = datetime(2001, 2, 2)

    def parse(self, date_str: Optional[str]) -> Optional[datetime]:
        """
        Parse a date string, or return None when it cannot be read.
        """
        if not date_str or not date_str.strip():
            return None

        date_str = date_str.strip()

        for fmt in self.INPUT_FORMATS:
            try:
                return datetime.strptime(date_str, fmt)
            except ValueError:
                continue

        # dateutil fills missing parts from `default`; a date only counts
        # when two different defaults give the same result.
        try:
            first = date_parser.parse(date_str, dayfirst=True, default=self.FILL_A)
            second = date_parser.parse(date_str, dayfirst=True, default=self.FILL_B)
        except (ValueError, OverflowError):
            logger.debug(f"Could not parse date: {date_str}")
            return None

        first = first.replace(tzinfo=None)
        if first.date() != second.replace(tzinfo=None).date():
            logger.debug(f"Incomplete date: {date_str}")
            return None
        return first

    def sort_key(self, date_str: Optional[str]) -> Tuple[int, Any]:
        """
        Ordering key: empty dates first, then parsed dates, then the rest.
        """
        if not date_str:
            return (0, "")
        parsed = self.parse(date_str)
        if parsed is not None:
            return (1, parsed)
        return (2, date_str)
