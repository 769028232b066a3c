"""
Extraction Boundary Module.

This module wraps the external image-understanding service:
    - schemas: typed notes, page metadata and tagged results
    - client: HTTP client used by the pipeline, one request per page
    - service: FastAPI endpoint forwarding page images to a vision model

Author: ML Engineering Team
"""

from .schemas import (
    RawNote,
    PageMeta,
    ExtractionSuccess,
    ExtractionFailure,
    parse_extraction_payload,
)
from .client import ExtractionClient

__all__ = [
    'RawNote',
    'PageMeta',
    'ExtractionSuccess',
    'ExtractionFailure',
    'parse_extraction_payload',
    'ExtractionClient',
]
