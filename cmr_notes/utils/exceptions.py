"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the delivery
note pipeline. Using specific exceptions allows per-task failures to be
isolated and reported without aborting a run.

Exception Hierarchy:
    DeliveryNoteError (base)
    ├── ConfigurationError
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   ├── FileNotFoundError
    │   └── CorruptedFileError
    ├── RenderError
    │   └── PageRenderError
    ├── ExtractionError
    │   ├── ExtractionServiceError
    │   └── MissingCredentialError
    ├── PipelineError
    │   └── SchedulerBusyError
    └── OutputError
        ├── PersistenceError
        └── ExportError
"""


class DeliveryNoteError(Exception):
    """
    Base exception for all delivery note pipeline errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DeliveryNoteError):
    """Raised when configuration cannot be loaded."""
    pass


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(DeliveryNoteError):
    """Base exception for input handling errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when a file that is not a PDF is offered.

    Example:
        >>> raise UnsupportedFileTypeError("scan.docx", [".pdf"])
    """

    def __init__(self, filepath: str, supported_types: list):
        message = f"Unsupported file type: '{filepath}'"
        details = {"filepath": filepath, "supported_types": supported_types}
        super().__init__(message, details)


class FileNotFoundError(InputError):
    """Raised when input file cannot be found."""

    def __init__(self, filepath: str):
        message = f"File not found: {filepath}"
        details = {"filepath": filepath}
        super().__init__(message, details)


class CorruptedFileError(InputError):
    """Raised when a PDF cannot be opened."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Corrupted or unreadable file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# RENDER ERRORS
# =============================================================================

class RenderError(DeliveryNoteError):
    """Base exception for page rasterization errors."""
    pass


class PageRenderError(RenderError):
    """Raised when a single page cannot be rasterized."""

    def __init__(self, filepath: str, page_number: int, reason: str = None):
        message = f"Failed to render page {page_number} of {filepath}"
        details = {"filepath": filepath, "page": page_number, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================

class ExtractionError(DeliveryNoteError):
    """Base exception for extraction boundary errors."""
    pass


class ExtractionServiceError(ExtractionError):
    """Raised when the extraction service returns a failure for a page."""

    def __init__(self, reason: str, status_code: int = None):
        message = "Extraction service request failed"
        details = {"reason": reason, "status_code": status_code}
        self.status_code = status_code
        super().__init__(message, details)


class MissingCredentialError(ExtractionError):
    """Raised by the service when the model API key is not configured."""

    def __init__(self, variable: str):
        message = f"Missing {variable}"
        details = {"variable": variable}
        super().__init__(message, details)


# =============================================================================
# PIPELINE ERRORS
# =============================================================================

class PipelineError(DeliveryNoteError):
    """Base exception for scheduling errors."""
    pass


class SchedulerBusyError(PipelineError):
    """Raised when a run is started while another run is active."""

    def __init__(self):
        super().__init__("A run is already in progress")


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class OutputError(DeliveryNoteError):
    """Base exception for output handling errors."""
    pass


class PersistenceError(OutputError):
    """Raised when the persisted state slot cannot be read or written."""

    def __init__(self, operation: str, reason: str = None):
        message = f"State storage operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


class ExportError(OutputError):
    """Raised when an export file cannot be written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'DeliveryNoteError',
    'ConfigurationError',
    'InputError',
    'UnsupportedFileTypeError',
    'FileNotFoundError',
    'CorruptedFileError',
    'RenderError',
    'PageRenderError',
    'ExtractionError',
    'ExtractionServiceError',
    'MissingCredentialError',
    'PipelineError',
    'SchedulerBusyError',
    'OutputError',
    'PersistenceError',
    'ExportError',
]
