"""
Output Handler Package.

Result storage, persisted state and exports for derived rows.
"""

from .result_store import ResultStore, SORTABLE_FIELDS, NO_WARNINGS_TEXT
from .state_store import StateStore
from .csv_exporter import CsvExporter, format_csv_value
from .excel_exporter import ExcelExporter
from .handler import OutputHandler

__all__ = [
    'ResultStore',
    'SORTABLE_FIELDS',
    'NO_WARNINGS_TEXT',
    'StateStore',
    'CsvExporter',
    'format_csv_value',
    'ExcelExporter',
    'OutputHandler',
]
