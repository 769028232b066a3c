"""
Post-Processing Module for the Delivery Note Extraction System.

This module provides functionality for:
    - Quantity parsing and half-up rounding
    - Unit code validation
    - Height, adjusted quantity and pallet derivation
    - Per-field warnings

Author: ML Engineering Team
"""

from .processor import FieldDerivationEngine, derive_fields, run_self_check
from .validators import UnitValidator, UnitInfo
from .normalizers import QuantityNormalizer, DateNormalizer, round_half_up
from .derived_row import DerivedFields, DerivedRow, EXPORT_COLUMNS

__all__ = [
    'FieldDerivationEngine',
    'derive_fields',
    'run_self_check',
    'UnitValidator',
    'UnitInfo',
    'QuantityNormalizer',
    'DateNormalizer',
    'round_half_up',
    'DerivedFields',
    'DerivedRow',
    'EXPORT_COLUMNS',
]
