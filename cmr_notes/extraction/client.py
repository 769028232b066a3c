"""
Extraction Client Module.

This module provides the ExtractionClient class that submits one
rasterized page to the extraction service and returns the typed notes.

Wire format:
    multipart/form-data with an ``image`` file field (PNG) and a ``meta``
    text field holding ``{"fileName", "fileIndex", "pageIndex"}`` as JSON.
    Success body is ``{"notes": [...], "meta": {...}}``; failures carry
    ``{"error": "..."}`` with a non-success status.

Author: ML Engineering Team
"""

import json
from typing import Any, Callable, List, Optional

import httpx

from cmr_notes.config import get_config
from cmr_notes.utils.logger import get_logger
from cmr_notes.utils.exceptions import ExtractionServiceError
from .schemas import (
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionSuccess,
    PageMeta,
    RawNote,
    parse_extraction_payload,
)

# Initialize module logger
logger = get_logger(__name__)

API_ERROR_NOTICE = "API error while extracting. Retry allowed."
NETWORK_ERROR_NOTICE = "Network/API error. Please retry."


class ExtractionClient:
    """
    HTTP client for the page extraction service.

    One request is made per page; there is no retry and, unless
    configured, no request timeout.

    Attributes:
        endpoint: URL of the extraction endpoint
        timeout: Request timeout in seconds, or None for no timeout

    Example:
        >>> client = ExtractionClient()
        >>> notes = await client.extract(png_bytes, meta)
        >>> print(len(notes))
    """

    DEFAULT_ENDPOINT = "http://localhost:3000/api/extract"

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        notify: Optional[Callable[[str], None]] = None
    ) -> None:
        """
        Initialize the extraction client.

        Args:
            endpoint: Extraction endpoint URL. If None, uses config.
            timeout: Request timeout in seconds. If None, uses config.
            transport: Optional httpx transport (used by tests).
            notify: Callback receiving operator notices.
        """
        self.endpoint = endpoint or get_config("extraction.endpoint", self.DEFAULT_ENDPOINT)
        self.timeout = timeout if timeout is not None else get_config(
            "extraction.timeout_seconds", None
        )
        self._transport = transport
        self._notify = notify

        logger.debug(f"ExtractionClient initialized (endpoint={self.endpoint})")

    def _emit(self, message: str) -> None:
        if self._notify is not None:
            self._notify(message)

    async def fetch(self, image: bytes, meta: PageMeta) -> ExtractionOutcome:
        """
        Submit one page and return a tagged result.

        Args:
            image: PNG bytes of the rendered page.
            meta: Task metadata for the page.

        Returns:
            ExtractionSuccess with typed notes, or ExtractionFailure.
        """
        wire_meta = meta.to_wire()
        files = {
            "image": (
                f"{meta.file_name}-p{meta.page_index}.png",
                image,
                "image/png",
            )
        }
        data = {"meta": json.dumps(wire_meta)}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport
            ) as client:
                response = await client.post(self.endpoint, files=files, data=data)
        except httpx.HTTPError as e:
            logger.error(f"Request to {self.endpoint} failed: {e}")
            self._emit(NETWORK_ERROR_NOTICE)
            return ExtractionFailure(error=str(e))

        if not response.is_success:
            error = self._error_message(response)
            logger.error(
                f"Extraction failed for {meta.file_name} p{meta.page_index}: "
                f"HTTP {response.status_code} {error}"
            )
            self._emit(API_ERROR_NOTICE)
            self._emit(NETWORK_ERROR_NOTICE)
            return ExtractionFailure(
                error=f"API error {response.status_code}",
                status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Extraction response is not JSON: {e}")
            self._emit(NETWORK_ERROR_NOTICE)
            return ExtractionFailure(error="Malformed response body", status_code=response.status_code)

        if not isinstance(payload, dict):
            logger.error(f"Extraction response is not an object: {str(payload)[:200]}")
            self._emit(NETWORK_ERROR_NOTICE)
            return ExtractionFailure(error="Malformed response body", status_code=response.status_code)

        result = parse_extraction_payload(payload)
        logger.debug(
            f"Extracted {len(result.notes)} note(s) from {meta.file_name} "
            f"p{meta.page_index} ({result.skipped} skipped)"
        )
        return result

    async def extract(self, image: bytes, meta: PageMeta) -> List[RawNote]:
        """
        Submit one page and return its notes.

        Raises:
            ExtractionServiceError: If the request failed.
        """
        outcome = await self.fetch(image, meta)
        if isinstance(outcome, ExtractionFailure):
            raise ExtractionServiceError(outcome.error, outcome.status_code)
        return outcome.notes

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body: Any = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and "error" in body:
            return str(body["error"])
        return str(body)[:200]


__all__ = ['ExtractionClient', 'ExtractionSuccess', 'ExtractionFailure']
