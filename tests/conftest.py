"""
Shared fixtures for the cmr_notes test suite.

Every test runs in its own temporary working directory with a fresh
configuration singleton, so persisted state and exports never leak
between tests.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import fitz
import pytest

from cmr_notes.config import ENV_OVERRIDES, ConfigurationManager
from cmr_notes.extraction.schemas import PageMeta, RawNote
from cmr_notes.utils.exceptions import CorruptedFileError, ExtractionServiceError, PageRenderError
from cmr_notes.utils.logger import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Run each test from a clean directory with freshly loaded config."""
    for env_name in ENV_OVERRIDES:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.chdir(tmp_path)
    ConfigurationManager.reset()
    yield tmp_path
    ConfigurationManager.reset()

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def make_pdf(tmp_path):
    """Factory writing a real PDF with the given number of pages."""
    def _make(name: str = "scan.pdf", pages: int = 1) -> Path:
        path = tmp_path / name
        doc = fitz.open()
        for number in range(1, pages + 1):
            page = doc.new_page()
            page.insert_text((72, 72), f"CMR page {number}")
        doc.save(str(path))
        doc.close()
        return path
    return _make


@pytest.fixture
def meta():
    return PageMeta(fileName="scan.pdf", fileIndex=0, pageIndex=1)


def note(datum: Optional[str] = "01-01-2024", aantal: Optional[str] = "10", unit: Optional[str] = "E28") -> RawNote:
    return RawNote(datum=datum, aantal=aantal, unit=unit)


class FakeRasterizer:
    """
    Stand-in for PDFProcessor that needs no real PDFs.

    Page counts come from ``pages`` keyed by file name; files listed in
    ``unreadable`` fail to open and pages in ``fail`` fail to render.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, int]] = None,
        unreadable: Optional[Set[str]] = None,
        fail: Optional[Set[Tuple[str, int]]] = None
    ) -> None:
        self.pages = pages or {}
        self.unreadable = unreadable or set()
        self.fail = fail or set()
        self.rendered: List[Tuple[str, int]] = []

    def get_page_count(self, filepath) -> int:
        name = Path(filepath).name
        if name in self.unreadable:
            raise CorruptedFileError(str(filepath), "cannot open")
        return self.pages.get(name, 1)

    async def render_page(self, filepath, page_number: int) -> bytes:
        name = Path(filepath).name
        await asyncio.sleep(0)
        if (name, page_number) in self.fail:
            raise PageRenderError(str(filepath), page_number, "render failed")
        self.rendered.append((name, page_number))
        return f"{name}-p{page_number}".encode()


class FakeClient:
    """
    Stand-in for ExtractionClient.

    Returns the notes configured per (file name, page) and records the
    highest number of calls that were in flight at the same time.
    """

    def __init__(
        self,
        responses: Optional[Dict[Tuple[str, int], List[RawNote]]] = None,
        fail: Optional[Set[Tuple[str, int]]] = None,
        delay: float = 0.01
    ) -> None:
        self.responses = responses or {}
        self.fail = fail or set()
        self.delay = delay
        self.calls: List[Tuple[str, int]] = []
        self.active = 0
        self.peak = 0

    async def extract(self, image: bytes, meta: PageMeta) -> List[RawNote]:
        key = (meta.file_name, meta.page_index)
        self.calls.append(key)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
            if key in self.fail:
                raise ExtractionServiceError("API error 500", 500)
            return list(self.responses.get(key, []))
        finally:
            self.active -= 1


@pytest.fixture
def fake_rasterizer():
    return FakeRasterizer()


@pytest.fixture
def fake_client():
    return FakeClient()
