"""
Main Output Handler Module.

This module provides the OutputHandler class that coordinates the
snapshot exports of the result store (CSV, TSV and Excel).

Author: ML Engineering Team
"""

from typing import Optional, Sequence

from cmr_notes.utils.logger import get_logger
from cmr_notes.postprocessor.derived_row import DerivedRow
from .csv_exporter import CsvExporter
from .excel_exporter import ExcelExporter

# Initialize module logger
logger = get_logger(__name__)


class OutputHandler:
    """
    Unified export entry point.

    Exporters are created lazily so a CSV-only session never touches
    openpyxl.

    Example:
        >>> handler = OutputHandler()
        >>> handler.to_csv(store.rows, "notes.csv")
        >>> print(handler.to_tsv(store.rows))
    """

    def __init__(self) -> None:
        self._csv_exporter = None
        self._excel_exporter = None

    @property
    def csv_exporter(self) -> CsvExporter:
        """Get or create the CSV exporter."""
        if self._csv_exporter is None:
            self._csv_exporter = CsvExporter()
        return self._csv_exporter

    @property
    def excel_exporter(self) -> ExcelExporter:
        """Get or create the Excel exporter."""
        if self._excel_exporter is None:
            self._excel_exporter = ExcelExporter()
        return self._excel_exporter

    def to_csv(self, rows: Sequence[DerivedRow], filename: Optional[str] = None) -> Optional[str]:
        """
        Export rows to a CSV file.

        Returns:
            Path to the written file, or None for an empty store.
        """
        return self.csv_exporter.export(rows, filename)

    def to_tsv(self, rows: Sequence[DerivedRow]) -> Optional[str]:
        """
        Render rows as TSV text for pasting into a spreadsheet.

        Returns:
            The TSV text, or None for an empty store.
        """
        if not rows:
            logger.info("No rows to copy")
            return None
        return self.csv_exporter.render_tsv(rows)

    def to_excel(self, rows: Sequence[DerivedRow], filename: Optional[str] = None) -> Optional[str]:
        """
        Export rows to an Excel workbook.

        Returns:
            Path to the created file, or None for an empty store.
        """
        return self.excel_exporter.export(rows, filename)
