"""
Excel Exporter Module.

This module provides Excel workbook generation for derived delivery
note rows. Uses openpyxl for modern Excel format support.

Features:
    - Formatted headers
    - Auto-column width
    - Metadata sheet with provenance and warnings

Author: ML Engineering Team
"""

from pathlib import Path
from typing import List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from cmr_notes.config import get_config
from cmr_notes.utils.logger import get_logger
from cmr_notes.utils.helpers import ensure_directory
from cmr_notes.utils.exceptions import ExportError
from cmr_notes.postprocessor.derived_row import DerivedRow

# Initialize module logger
logger = get_logger(__name__)


class ExcelExporter:
    """
    Exports derived rows to an Excel workbook.

    The data sheet carries the export columns in arrival order; the
    optional metadata sheet lists source file, page, row id and warnings
    for the same rows.

    Attributes:
        output_dir: Directory for output files
        include_metadata: Whether to add the metadata sheet
        sheet_name: Title of the data sheet

    Example:
        >>> exporter = ExcelExporter()
        >>> filepath = exporter.export(rows, "cmr-notes.xlsx")
    """

    COLUMNS = [
        ('Datum', 'datum'),
        ('Aantal', 'aantal'),
        ('Unit', 'unit'),
        ('Hoogte enkel', 'hoogte_enkel'),
        ('Hoogte stack', 'hoogte_stack'),
        ('Aantal2', 'aantal2'),
        ('Pallet', 'pallet'),
    ]

    METADATA_COLUMNS = [
        ('Filename', 'file_name'),
        ('Page #', 'page_index'),
        ('Note #', 'note_index'),
        ('Row ID', 'id'),
        ('Warnings', 'warnings'),
    ]

    def __init__(self) -> None:
        """Initialize the Excel exporter with configuration."""
        self.output_dir = Path(get_config("paths.output_dir", "outputs"))
        self.include_metadata = get_config("output.excel.include_metadata", True)
        self.sheet_name = get_config("output.excel.sheet_name", "Delivery Notes")
        self.default_filename = get_config("output.excel.filename", "cmr-notes.xlsx")

        logger.debug(f"ExcelExporter initialized (output_dir: {self.output_dir})")

    def export(
        self,
        rows: Sequence[DerivedRow],
        filename: Optional[str] = None,
        output_dir: Optional[str] = None
    ) -> Optional[str]:
        """
        Export rows to an Excel file.

        Args:
            rows: Rows in arrival order.
            filename: Output filename or path. If None, uses config.
            output_dir: Directory for a bare filename.

        Returns:
            Path to the created file, or None when there are no rows.

        Raises:
            ExportError: If the workbook cannot be written.
        """
        if not rows:
            logger.info("No rows to export")
            return None

        filepath = Path(filename or self.default_filename)
        if not filepath.is_absolute() and filepath.parent == Path('.'):
            filepath = Path(output_dir or self.output_dir) / filepath

        try:
            ensure_directory(filepath.parent)
            workbook = Workbook()
            self._create_data_sheet(workbook, rows)
            if self.include_metadata:
                self._create_metadata_sheet(workbook, rows)
            workbook.save(filepath)
        except OSError as e:
            logger.error(f"Excel export failed: {e}")
            raise ExportError(str(filepath), str(e))

        logger.info(f"Excel file saved: {filepath} ({len(rows)} records)")
        return str(filepath)

    def _create_data_sheet(self, workbook: Workbook, rows: Sequence[DerivedRow]) -> None:
        """
        Fill the active sheet with the export columns.

        Args:
            workbook: openpyxl Workbook instance.
            rows: Rows to write.
        """
        sheet = workbook.active
        sheet.title = self.sheet_name

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")
        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        for col, (header_name, _) in enumerate(self.COLUMNS, 1):
            cell = sheet.cell(row=1, column=col, value=header_name)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = thin_border

        for row_num, row in enumerate(rows, 2):
            for col, (_, field_name) in enumerate(self.COLUMNS, 1):
                cell = sheet.cell(row=row_num, column=col, value=getattr(row, field_name))
                cell.border = thin_border

        self._fit_columns(sheet, [name for name, _ in self.COLUMNS], len(rows))
        sheet.freeze_panes = 'A2'

    def _create_metadata_sheet(self, workbook: Workbook, rows: Sequence[DerivedRow]) -> None:
        sheet = workbook.create_sheet(title="Metadata")

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="548235", end_color="548235", fill_type="solid")

        for col, (header_name, _) in enumerate(self.METADATA_COLUMNS, 1):
            cell = sheet.cell(row=1, column=col, value=header_name)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center")

        for row_num, row in enumerate(rows, 2):
            for col, (_, field_name) in enumerate(self.METADATA_COLUMNS, 1):
                value = getattr(row, field_name)
                if field_name == 'warnings':
                    value = ', '.join(value)
                sheet.cell(row=row_num, column=col, value=value)

        self._fit_columns(sheet, [name for name, _ in self.METADATA_COLUMNS], len(rows))

    @staticmethod
    def _fit_columns(sheet, headers: List[str], row_count: int) -> None:
        """Size each column to its longest value, capped at 50."""
        for col, header_name in enumerate(headers, 1):
            max_length = len(header_name)
            for row in range(2, row_count + 2):
                cell_value = sheet.cell(row=row, column=col).value
                if cell_value is not None:
                    max_length = max(max_length, len(str(cell_value)))
            sheet.column_dimensions[get_column_letter(col)].width = min(max_length + 2, 50)
