"""
PDF Processor Module.

This module handles PDF page rasterization:
    - Page counting
    - Rendering one page to PNG at a fixed oversampling factor

Uses PyMuPDF for rendering and Pillow to normalize the image mode.

Author: ML Engineering Team
"""

import asyncio
import io
import threading
from pathlib import Path
from typing import Union

import fitz  # PyMuPDF
from PIL import Image

from cmr_notes.config import get_config
from cmr_notes.utils.logger import get_logger
from cmr_notes.utils.exceptions import CorruptedFileError, PageRenderError

# Initialize module logger
logger = get_logger(__name__)

# PyMuPDF documents must not be used from two threads at once
_RENDER_LOCK = threading.Lock()


class PDFProcessor:
    """
    Rasterizer for PDF pages.

    Pages are rendered at ``scale`` times their 72 DPI size and encoded
    as PNG, which is what the extraction service expects.

    Attributes:
        scale: Oversampling factor (2.5 by default)
        image_format: Encoded image format

    Example:
        >>> processor = PDFProcessor()
        >>> processor.get_page_count("scan.pdf")
        3
        >>> png = await processor.render_page("scan.pdf", 1)
    """

    DEFAULT_SCALE = 2.5

    def __init__(self, scale: float = None) -> None:
        """Initialize the PDF processor with configuration."""
        self.scale = scale or get_config("input.pdf.scale", self.DEFAULT_SCALE)
        self.image_format = get_config("input.pdf.image_format", "png")

        logger.debug(f"PDFProcessor initialized (scale={self.scale})")

    def get_page_count(self, filepath: Union[str, Path]) -> int:
        """
        Get the total number of pages in a PDF.

        Args:
            filepath: Path to PDF file.

        Returns:
            Number of pages in the PDF.

        Raises:
            CorruptedFileError: If the PDF cannot be opened.
        """
        try:
            with _RENDER_LOCK:
                doc = fitz.open(filepath)
                try:
                    return doc.page_count
                finally:
                    doc.close()
        except Exception as e:
            logger.error(f"Could not open PDF {filepath}: {e}")
            raise CorruptedFileError(str(filepath), str(e))

    def render_page_sync(self, filepath: Union[str, Path], page_number: int) -> bytes:
        """
        Render one page to encoded image bytes.

        Args:
            filepath: Path to PDF file.
            page_number: 1-based page number.

        Returns:
            PNG bytes of the page.

        Raises:
            PageRenderError: If the page cannot be rendered.
        """
        try:
            with _RENDER_LOCK:
                doc = fitz.open(filepath)
                try:
                    if not 1 <= page_number <= doc.page_count:
                        raise PageRenderError(
                            str(filepath), page_number,
                            f"page out of range (1-{doc.page_count})"
                        )
                    page = doc.load_page(page_number - 1)
                    matrix = fitz.Matrix(self.scale, self.scale)
                    pix = page.get_pixmap(matrix=matrix)
                    img_data = pix.tobytes("png")
                finally:
                    doc.close()

            image = Image.open(io.BytesIO(img_data))
            if image.mode != 'RGB':
                image = image.convert('RGB')

            buffer = io.BytesIO()
            image.save(buffer, format=self.image_format.upper())

        except PageRenderError:
            raise
        except Exception as e:
            logger.error(f"Rendering page {page_number} of {filepath} failed: {e}")
            raise PageRenderError(str(filepath), page_number, str(e))

        logger.debug(
            f"Rendered {Path(filepath).name} p{page_number} "
            f"({image.width}x{image.height})"
        )
        return buffer.getvalue()

    async def render_page(self, filepath: Union[str, Path], page_number: int) -> bytes:
        """Render one page in a worker thread so the event loop keeps running."""
        return await asyncio.to_thread(self.render_page_sync, filepath, page_number)
