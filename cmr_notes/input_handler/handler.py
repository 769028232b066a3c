"""
Main Input Handler Module.

This module provides the InputHandler class, the ingestion filter for
the pipeline. Only PDF files are queued; anything else is rejected with
a notice while the remaining files are still accepted.

Usage:
    from cmr_notes.input_handler import InputHandler

    handler = InputHandler()
    result = handler.accept(["a.pdf", "notes.txt"])
    print(result.accepted, result.rejected)

Classes:
    QueuedFile: A PDF accepted into the run queue
    IngestionResult: Accepted files and rejections of one call
    InputHandler: Main class for file input filtering
"""

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple, Union

from cmr_notes.config import get_config
from cmr_notes.utils.logger import get_logger
from cmr_notes.utils.helpers import format_file_size, get_file_extension
from cmr_notes.utils.exceptions import (
    InputError,
    UnsupportedFileTypeError,
    FileNotFoundError,
    CorruptedFileError
)

# Initialize module logger
logger = get_logger(__name__)

ONLY_PDF_NOTICE = "Only PDF files are supported."


@dataclass
class QueuedFile:
    """
    A PDF accepted into the run queue.

    Attributes:
        path: Path to the file
        name: File name used in row metadata and dedupe keys
        size_bytes: File size
    """
    path: Path
    name: str
    size_bytes: int = 0

    def __repr__(self) -> str:
        return f"QueuedFile(name='{self.name}', size={format_file_size(self.size_bytes)})"


@dataclass
class IngestionResult:
    """
    Outcome of offering files to the ingestion filter.

    Attributes:
        accepted: Files that were queued
        rejected: (path, reason) pairs for files that were not
    """
    accepted: List[QueuedFile] = field(default_factory=list)
    rejected: List[Tuple[str, str]] = field(default_factory=list)


class InputHandler:
    """
    Ingestion filter for scanned shipment documents.

    A file is recognized as PDF by its declared MIME type or by its
    extension. Rejections never abort acceptance of the other files.

    Attributes:
        supported_extensions: Accepted file extensions
        supported_mime_types: Accepted MIME types

    Example:
        >>> handler = InputHandler()
        >>> result = handler.accept(["scan.pdf", "photo.jpg"])
        >>> [f.name for f in result.accepted]
        ['scan.pdf']
    """

    PDF_EXTENSIONS = {'.pdf'}
    PDF_MIME_TYPES = {'application/pdf'}

    def __init__(self) -> None:
        """Initialize the InputHandler from configuration."""
        self.supported_extensions: Set[str] = {
            ext.lower() for ext in get_config(
                "input.supported_extensions", list(self.PDF_EXTENSIONS)
            )
        }
        self.supported_mime_types: Set[str] = set(
            get_config("input.supported_mime_types", list(self.PDF_MIME_TYPES))
        )

        logger.debug(f"InputHandler initialized with extensions: {self.supported_extensions}")

    def is_pdf(self, filepath: Union[str, Path], declared_type: Optional[str] = None) -> bool:
        """
        Check whether a file is recognized as PDF.

        Args:
            filepath: Path to the file.
            declared_type: MIME type declared by the caller, if any.

        Returns:
            True for PDFs.
        """
        mime_type = declared_type or mimetypes.guess_type(str(filepath))[0]
        if mime_type in self.supported_mime_types:
            return True
        return get_file_extension(filepath) in self.supported_extensions

    def validate_file(self, filepath: Union[str, Path]) -> Path:
        """
        Validate that a file exists and is a PDF.

        Args:
            filepath: Path to the file to validate.

        Returns:
            Path object pointing to the validated file.

        Raises:
            FileNotFoundError: If file doesn't exist.
            UnsupportedFileTypeError: If file is not a PDF.
            CorruptedFileError: If the file is empty.
        """
        path = Path(filepath)

        if not self.is_pdf(path):
            raise UnsupportedFileTypeError(str(filepath), sorted(self.supported_extensions))

        if not path.exists():
            raise FileNotFoundError(str(filepath))

        if not path.is_file():
            raise InputError(f"Path is not a file: {filepath}")

        if path.stat().st_size == 0:
            raise CorruptedFileError(str(filepath), "File is empty")

        return path

    def accept(self, filepaths: Iterable[Union[str, Path]]) -> IngestionResult:
        """
        Filter offered files into the run queue.

        Args:
            filepaths: Files offered by the operator.

        Returns:
            IngestionResult with accepted files and rejections.
        """
        result = IngestionResult()

        for filepath in filepaths:
            try:
                path = self.validate_file(filepath)
            except InputError as e:
                logger.warning(f"Rejected {filepath}: {e.message}")
                result.rejected.append((str(filepath), e.message))
                continue

            queued = QueuedFile(path=path, name=path.name, size_bytes=path.stat().st_size)
            result.accepted.append(queued)
            logger.debug(f"Queued {queued!r}")

        logger.info(
            f"Ingestion: {len(result.accepted)} accepted, {len(result.rejected)} rejected"
        )
        return result
