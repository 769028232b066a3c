"""
Input Handler Module for the Delivery Note Extraction System.

This module provides functionality for:
    - Filtering offered files down to PDFs
    - Counting PDF pages
    - Rasterizing single pages for the extraction service

Author: ML Engineering Team
"""

from .handler import InputHandler, IngestionResult, QueuedFile, ONLY_PDF_NOTICE
from .pdf_processor import PDFProcessor

__all__ = ['InputHandler', 'IngestionResult', 'QueuedFile', 'ONLY_PDF_NOTICE', 'PDFProcessor']
