"""
Extraction Service Module.

FastAPI application exposing ``POST /api/extract``. Each request carries
one page image and its metadata; the image is forwarded to an OpenAI
vision model constrained to the delivery note JSON schema.

Responses:
    200 {"notes": [...], "meta": {...}}
    400 {"error": "Image is required"}
    405 {"error": "Method not allowed"} with ``Allow: POST``
    500 {"error": "..."} on a missing API key or any model failure

Author: ML Engineering Team
"""

import base64
import json
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from openai import AsyncOpenAI

from cmr_notes.config import get_config
from cmr_notes.utils.logger import get_logger
from cmr_notes.utils.exceptions import MissingCredentialError
from .schemas import DELIVERY_NOTES_SCHEMA, NotesPayload

# Initialize module logger
logger = get_logger(__name__)

SYSTEM_PROMPT = """
Je krijgt een gescande pagina. Zoek alle secties die starten met de grote titel "Delivery note".
Voor elke delivery note:
- Vind "Quantity" en "Unit" en pak de waarden uit de kolommen/rijen eronder.
- Datum: als aanwezig, geef DD-MM-YYYY (convert als nodig).
- Unit moet matchen ^[A-Z][0-9]{2}$. Bij twijfel: leeg laten en warning zetten.
- Aantal mag komma decimalen bevatten (12,5).
Output: een array delivery notes met datum, aantal (raw string), unit (letter+2 digits), optioneel confidence en warnings.
Als er geen delivery notes zijn: notes = [].
""".strip()

USER_PROMPT = "Extract delivery notes from this page and return strict JSON."

OTHER_METHODS = ["GET", "PUT", "PATCH", "DELETE", "OPTIONS"]


class NoteExtractor:
    """
    Calls the vision model for one page image.

    Attributes:
        model: OpenAI model name
        api_key_env: Environment variable holding the API key
    """

    def __init__(self, model: Optional[str] = None, api_key_env: Optional[str] = None) -> None:
        self.model = model or get_config("service.model", "gpt-4.1")
        self.api_key_env = api_key_env or get_config("service.api_key_env", "OPENAI_API_KEY")

    def api_key(self) -> str:
        """
        Return the configured API key.

        Raises:
            MissingCredentialError: If the variable is unset or empty.
        """
        key = os.environ.get(self.api_key_env)
        if not key:
            raise MissingCredentialError(self.api_key_env)
        return key

    async def extract(self, image: bytes, api_key: str) -> List[Dict[str, Any]]:
        """
        Run the model on one PNG page and return the raw note dicts.

        Args:
            image: PNG bytes.
            api_key: OpenAI API key.

        Returns:
            List of note dictionaries (possibly empty).
        """
        client = AsyncOpenAI(api_key=api_key)
        encoded = base64.b64encode(image).decode("ascii")

        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_PROMPT},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/png;base64,{encoded}"},
                        },
                    ],
                },
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": "delivery_notes",
                    "schema": DELIVERY_NOTES_SCHEMA,
                    "strict": True,
                },
            },
        )

        content = response.choices[0].message.content or "{}"
        payload = NotesPayload.model_validate_json(content)
        return [note.to_dict() for note in payload.notes]


def _parse_meta(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, str):
        return {}
    try:
        meta = json.loads(raw)
    except ValueError:
        return {}
    return meta if isinstance(meta, dict) else {}


def create_app(extractor: Optional[NoteExtractor] = None) -> FastAPI:
    """
    Build the extraction service application.

    Args:
        extractor: Model caller; a default NoteExtractor when None.

    Returns:
        FastAPI application.
    """
    app = FastAPI(title="Delivery Note Extraction Service", version="1.0.0")
    app.state.extractor = extractor or NoteExtractor()

    @app.post("/api/extract")
    async def extract(request: Request) -> JSONResponse:
        note_extractor: NoteExtractor = request.app.state.extractor

        try:
            api_key = note_extractor.api_key()
        except MissingCredentialError as e:
            logger.error(str(e))
            return JSONResponse(status_code=500, content={"error": e.message})

        try:
            form = await request.form()
            upload = form.get("image")
            image = await upload.read() if hasattr(upload, "read") else None
            meta = _parse_meta(form.get("meta"))

            if not image:
                return JSONResponse(status_code=400, content={"error": "Image is required"})

            notes = await note_extractor.extract(image, api_key)
            logger.info(
                f"Extracted {len(notes)} note(s) for "
                f"{meta.get('fileName', '?')} p{meta.get('pageIndex', '?')}"
            )
            return JSONResponse(status_code=200, content={"notes": notes, "meta": meta})

        except Exception as e:
            logger.exception(f"Extraction request failed: {e}")
            return JSONResponse(status_code=500, content={"error": str(e) or "Unknown error"})

    @app.api_route("/api/extract", methods=OTHER_METHODS, include_in_schema=False)
    async def method_not_allowed() -> JSONResponse:
        return JSONResponse(
            status_code=405,
            content={"error": "Method not allowed"},
            headers={"Allow": "POST"},
        )

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve the extraction endpoint with uvicorn."""
    import uvicorn

    host = host or get_config("service.host", "127.0.0.1")
    port = port or get_config("service.port", 3000)
    logger.info(f"Starting extraction service on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port)
