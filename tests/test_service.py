"""
Tests for the extraction service endpoint.

The model call is replaced by a stub extractor; no request leaves the
test process.
"""

import json

import pytest
from fastapi.testclient import TestClient

from cmr_notes.extraction.schemas import DELIVERY_NOTES_SCHEMA
from cmr_notes.extraction.service import NoteExtractor, create_app

PNG = b"\x89PNG\r\n\x1a\nfake"
META = {"fileName": "scan.pdf", "fileIndex": 0, "pageIndex": 2}


class StubExtractor(NoteExtractor):
    """Returns canned notes instead of calling the model."""

    def __init__(self, notes=None, error=None):
        super().__init__()
        self.notes = notes if notes is not None else []
        self.error = error
        self.images = []

    async def extract(self, image, api_key):
        self.images.append((image, api_key))
        if self.error is not None:
            raise self.error
        return self.notes


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


def post_page(client, image=PNG, meta=json.dumps(META)):
    files = {"image": ("scan.pdf-p2.png", image, "image/png")} if image is not None else None
    data = {"meta": meta} if meta is not None else {}
    return client.post("/api/extract", files=files, data=data)


class TestExtractEndpoint:
    """Tests for POST /api/extract"""

    def test_success_echoes_meta(self, api_key):
        notes = [{"datum": "01-01-2024", "aantal": "10", "unit": "E28"}]
        extractor = StubExtractor(notes=notes)
        client = TestClient(create_app(extractor))

        response = post_page(client)

        assert response.status_code == 200
        assert response.json() == {"notes": notes, "meta": META}
        assert extractor.images == [(PNG, "sk-test")]

    def test_no_notes_is_an_empty_list(self, api_key):
        response = post_page(TestClient(create_app(StubExtractor())))
        assert response.status_code == 200
        assert response.json()["notes"] == []

    def test_malformed_meta_becomes_empty(self, api_key):
        response = post_page(TestClient(create_app(StubExtractor())), meta="{broken")
        assert response.json()["meta"] == {}

    def test_missing_meta_becomes_empty(self, api_key):
        response = post_page(TestClient(create_app(StubExtractor())), meta=None)
        assert response.json()["meta"] == {}

    def test_missing_image(self, api_key):
        response = post_page(TestClient(create_app(StubExtractor())), image=None)
        assert response.status_code == 400
        assert response.json() == {"error": "Image is required"}

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        extractor = StubExtractor()

        response = post_page(TestClient(create_app(extractor)))

        assert response.status_code == 500
        assert response.json() == {"error": "Missing OPENAI_API_KEY"}
        assert extractor.images == []

    def test_model_failure(self, api_key):
        client = TestClient(create_app(StubExtractor(error=RuntimeError("model unavailable"))))

        response = post_page(client)

        assert response.status_code == 500
        assert response.json() == {"error": "model unavailable"}

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "OPTIONS"])
    def test_other_methods_not_allowed(self, method):
        client = TestClient(create_app(StubExtractor()))

        response = client.request(method, "/api/extract")

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"
        assert response.json() == {"error": "Method not allowed"}


class TestNotesSchema:
    """Tests for the model output schema"""

    def test_strict_schema_lists_every_key(self):
        item = DELIVERY_NOTES_SCHEMA["properties"]["notes"]["items"]
        assert set(item["required"]) == set(item["properties"])
        assert item["additionalProperties"] is False

    def test_model_from_config(self):
        assert NoteExtractor().model == "gpt-4.1"
