"""
Extraction Boundary Schemas.

This module defines the typed shapes that cross the extraction boundary:
    - RawNote: one delivery note as returned by the extraction service
    - PageMeta: the task metadata sent along with every page image
    - ExtractionSuccess / ExtractionFailure: tagged result of one request

Responses are validated here, before any note reaches the field
derivation engine. An absent or malformed ``notes`` array is an empty
result, not an error.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cmr_notes.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

# JSON schema the extraction model is constrained to. Unit codes the
# model is unsure about come back empty, so the empty string is allowed.
# Strict mode needs every key listed as required; optional keys are
# nullable instead.
DELIVERY_NOTES_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["notes"],
    "properties": {
        "notes": {
            "type": "array",
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["datum", "aantal", "unit", "confidence", "warnings"],
                "properties": {
                    "datum": {"type": "string"},
                    "aantal": {"type": "string"},
                    "unit": {"type": "string", "pattern": r"^(?:[A-Z][0-9]{2})?$"},
                    "confidence": {"type": ["number", "null"]},
                    "warnings": {
                        "type": ["array", "null"],
                        "items": {"type": "string"},
                    },
                },
            },
        },
    },
}


class RawNote(BaseModel):
    """
    One delivery note as extracted from a page.

    The three text fields are optional so that an absent field (None)
    can be told apart from a field that is present but empty ("").

    Attributes:
        datum: Date string, DD-MM-YYYY when the service could convert it
        aantal: Raw quantity string, may use a comma decimal ("12,5")
        unit: Unit code, one uppercase letter followed by two digits
        confidence: Optional model confidence
        warnings: Warnings reported by the service
    """

    model_config = ConfigDict(extra="ignore")

    datum: Optional[str] = None
    aantal: Optional[str] = None
    unit: Optional[str] = None
    confidence: Optional[float] = None
    warnings: List[str] = Field(default_factory=list)

    @field_validator("datum", "aantal", "unit", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        # Models occasionally return bare numbers for quantities
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("warnings", mode="before")
    @classmethod
    def _coerce_warnings(cls, value: Any) -> Any:
        if value is None:
            return []
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary, dropping unset optionals."""
        return self.model_dump(exclude_none=True)


class PageMeta(BaseModel):
    """Task metadata sent with every page: ``{fileName, fileIndex, pageIndex}``."""

    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    file_index: int = Field(alias="fileIndex")
    page_index: int = Field(alias="pageIndex")

    def to_wire(self) -> Dict[str, Any]:
        """Return the camelCase form used on the wire and in persisted rows."""
        return self.model_dump(by_alias=True)


class NotesPayload(BaseModel):
    """Strict model output: an object with a required notes array."""

    notes: List[RawNote]


@dataclass
class ExtractionSuccess:
    """Successful extraction of one page."""
    notes: List[RawNote] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)
    skipped: int = 0

    ok = True


@dataclass
class ExtractionFailure:
    """Failed extraction of one page."""
    error: str
    status_code: Optional[int] = None

    ok = False


ExtractionOutcome = Union[ExtractionSuccess, ExtractionFailure]


def parse_notes(entries: Any) -> ExtractionSuccess:
    """
    Validate a raw ``notes`` value into typed notes.

    Anything that is not a list yields an empty success. Entries that do
    not match the RawNote schema are skipped and counted.

    Args:
        entries: The decoded ``notes`` value from a response body.

    Returns:
        ExtractionSuccess carrying the valid notes.
    """
    if not isinstance(entries, list):
        if entries is not None:
            logger.warning(f"Ignoring non-list notes payload ({type(entries).__name__})")
        return ExtractionSuccess()

    notes: List[RawNote] = []
    skipped = 0
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"Skipping note {index}: expected an object")
            skipped += 1
            continue
        try:
            notes.append(RawNote.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping note {index}: {e.error_count()} schema error(s)")
            skipped += 1

    return ExtractionSuccess(notes=notes, skipped=skipped)


def parse_extraction_payload(payload: Any) -> ExtractionSuccess:
    """
    Validate a decoded success body ``{notes, meta}``.

    Args:
        payload: Decoded JSON body.

    Returns:
        ExtractionSuccess with typed notes and the echoed metadata.
    """
    if not isinstance(payload, dict):
        return ExtractionSuccess()

    result = parse_notes(payload.get("notes"))
    meta = payload.get("meta")
    if isinstance(meta, dict):
        result.meta = meta
    return result
