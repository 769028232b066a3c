"""
Tests for the extraction client and response validation.
"""

import json

import httpx
import pytest

from cmr_notes.extraction.client import API_ERROR_NOTICE, NETWORK_ERROR_NOTICE, ExtractionClient
from cmr_notes.extraction.schemas import (
    ExtractionFailure,
    ExtractionSuccess,
    RawNote,
    parse_extraction_payload,
)
from cmr_notes.utils.exceptions import ExtractionServiceError

ENDPOINT = "http://extractor.test/api/extract"


def make_client(handler, notices=None):
    return ExtractionClient(
        endpoint=ENDPOINT,
        transport=httpx.MockTransport(handler),
        notify=notices.append if notices is not None else None
    )


class TestResponseValidation:
    """Tests for parse_extraction_payload"""

    def test_valid_payload(self):
        result = parse_extraction_payload({
            "notes": [{"datum": "01-01-2024", "aantal": "10", "unit": "E28", "confidence": 0.8}],
            "meta": {"fileName": "scan.pdf"},
        })
        assert isinstance(result, ExtractionSuccess)
        assert result.notes == [RawNote(datum="01-01-2024", aantal="10", unit="E28", confidence=0.8)]
        assert result.meta == {"fileName": "scan.pdf"}

    @pytest.mark.parametrize("payload", [{}, {"notes": None}, {"notes": "x"}, {"notes": {}}, [], None])
    def test_missing_or_malformed_notes_are_empty(self, payload):
        result = parse_extraction_payload(payload)
        assert result.ok
        assert result.notes == []

    def test_invalid_entries_are_skipped(self):
        result = parse_extraction_payload({"notes": [
            "text",
            {"datum": ["not", "a", "string"]},
            {"aantal": "3", "unit": "A12"},
        ]})
        assert [note.aantal for note in result.notes] == ["3"]
        assert result.skipped == 2

    def test_absent_and_empty_fields_differ(self):
        result = parse_extraction_payload({"notes": [{"aantal": ""}]})
        note = result.notes[0]
        assert note.aantal == ""
        assert note.unit is None

    def test_numeric_quantity_is_coerced(self):
        result = parse_extraction_payload({"notes": [{"aantal": 12, "unit": "E28", "warnings": None}]})
        assert result.notes[0].aantal == "12"
        assert result.notes[0].warnings == []


class TestExtractionClient:
    """Tests for ExtractionClient"""

    @pytest.mark.asyncio
    async def test_sends_image_and_meta(self, meta):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = request.read()
            seen["content_type"] = request.headers["content-type"]
            return httpx.Response(200, json={"notes": [{"datum": "d", "aantal": "1", "unit": "E28"}],
                                             "meta": meta.to_wire()})

        notes = await make_client(handler).extract(b"PNGDATA", meta)

        assert seen["method"] == "POST"
        assert seen["content_type"].startswith("multipart/form-data")
        assert b'name="image"; filename="scan.pdf-p1.png"' in seen["body"]
        assert b"PNGDATA" in seen["body"]
        assert json.dumps(meta.to_wire()).encode() in seen["body"]
        assert notes == [RawNote(datum="d", aantal="1", unit="E28")]

    @pytest.mark.asyncio
    async def test_empty_body_means_no_notes(self, meta):
        client = make_client(lambda request: httpx.Response(200, json={}))
        assert await client.extract(b"img", meta) == []

    @pytest.mark.asyncio
    async def test_error_status_is_a_failure(self, meta):
        notices = []
        client = make_client(
            lambda request: httpx.Response(500, json={"error": "Missing OPENAI_API_KEY"}),
            notices
        )

        outcome = await client.fetch(b"img", meta)

        assert isinstance(outcome, ExtractionFailure)
        assert outcome.status_code == 500
        assert notices == [API_ERROR_NOTICE, NETWORK_ERROR_NOTICE]

    @pytest.mark.asyncio
    async def test_extract_raises_on_failure(self, meta):
        client = make_client(lambda request: httpx.Response(400, json={"error": "Image is required"}))

        with pytest.raises(ExtractionServiceError) as exc_info:
            await client.extract(b"img", meta)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_network_error(self, meta):
        notices = []

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        outcome = await make_client(handler, notices).fetch(b"img", meta)

        assert not outcome.ok
        assert notices == [NETWORK_ERROR_NOTICE]

    @pytest.mark.asyncio
    async def test_non_json_body(self, meta):
        notices = []
        client = make_client(lambda request: httpx.Response(200, text="<html>"), notices)

        outcome = await client.fetch(b"img", meta)

        assert not outcome.ok
        assert notices == [NETWORK_ERROR_NOTICE]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"null", b"[1, 2]", b'"oops"'])
    async def test_non_object_body_is_a_failure(self, meta, body):
        notices = []
        client = make_client(
            lambda request: httpx.Response(
                200, content=body, headers={"content-type": "application/json"}
            ),
            notices
        )

        outcome = await client.fetch(b"img", meta)

        assert isinstance(outcome, ExtractionFailure)
        assert outcome.status_code == 200
        assert notices == [NETWORK_ERROR_NOTICE]
        with pytest.raises(ExtractionServiceError):
            await client.extract(b"img", meta)

    def test_endpoint_from_config(self):
        assert ExtractionClient().endpoint == "http://localhost:3000/api/extract"
        assert ExtractionClient().timeout is None
