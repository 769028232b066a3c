"""
Utility Module for the Delivery Note Extraction System.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Common helpers
"""

from .logger import setup_logger, get_logger, page_logger
from .helpers import ensure_directory, get_file_extension, generate_row_id

__all__ = [
    'setup_logger',
    'get_logger',
    'page_logger',
    'ensure_directory',
    'get_file_extension',
    'generate_row_id'
]
