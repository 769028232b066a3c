"""
CSV/TSV Exporter Module.

Renders the result store as delimited text in the fixed export column
order. CSV quotes only values containing a comma or a double quote; TSV
never quotes. Lines are joined with "\\n" and there is no trailing
newline.

Author: ML Engineering Team
"""

from pathlib import Path
from typing import Any, Optional, Sequence

from cmr_notes.config import get_config
from cmr_notes.utils.logger import get_logger
from cmr_notes.utils.helpers import ensure_directory
from cmr_notes.utils.exceptions import ExportError
from cmr_notes.postprocessor.derived_row import DerivedRow, EXPORT_COLUMNS

# Initialize module logger
logger = get_logger(__name__)


def format_csv_value(value: Any) -> str:
    """
    Format one CSV cell.

    Example:
        >>> format_csv_value('12,5')
        '"12,5"'
        >>> format_csv_value(None)
        ''
    """
    if value is None:
        return ''
    text = str(value)
    if ',' in text or '"' in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def format_tsv_value(value: Any) -> str:
    return '' if value is None else str(value)


class CsvExporter:
    """
    Exports derived rows to CSV or TSV text.

    Attributes:
        output_dir: Directory for output files
        columns: Export column order

    Example:
        >>> exporter = CsvExporter()
        >>> path = exporter.export(rows, "notes.csv")
    """

    def __init__(self) -> None:
        self.output_dir = Path(get_config("paths.output_dir", "outputs"))
        self.default_filename = get_config("output.csv.filename", "cmr-notes.csv")
        self.columns = list(get_config("output.csv.columns", EXPORT_COLUMNS))

        logger.debug(f"CsvExporter initialized (output_dir: {self.output_dir})")

    def render_csv(self, rows: Sequence[DerivedRow]) -> str:
        lines = [','.join(self.columns)]
        for row in rows:
            lines.append(','.join(format_csv_value(getattr(row, c)) for c in self.columns))
        return '\n'.join(lines)

    def render_tsv(self, rows: Sequence[DerivedRow]) -> str:
        lines = ['\t'.join(self.columns)]
        for row in rows:
            lines.append('\t'.join(format_tsv_value(getattr(row, c)) for c in self.columns))
        return '\n'.join(lines)

    def export(
        self,
        rows: Sequence[DerivedRow],
        filename: Optional[str] = None,
        output_dir: Optional[str] = None
    ) -> Optional[str]:
        """
        Write rows to a CSV file.

        Args:
            rows: Rows in arrival order.
            filename: Output filename or path. If None, uses config.
            output_dir: Directory for a bare filename. If None, uses
                the configured output directory.

        Returns:
            Path to the written file, or None when there are no rows.

        Raises:
            ExportError: If the file cannot be written.
        """
        if not rows:
            logger.info("No rows to export")
            return None

        filepath = Path(filename or self.default_filename)
        if not filepath.is_absolute() and filepath.parent == Path('.'):
            filepath = Path(output_dir or self.output_dir) / filepath

        try:
            ensure_directory(filepath.parent)
            filepath.write_text(self.render_csv(rows), encoding='utf-8')
        except OSError as e:
            logger.error(f"CSV export failed: {e}")
            raise ExportError(str(filepath), str(e))

        logger.info(f"CSV file saved: {filepath} ({len(rows)} records)")
        return str(filepath)
