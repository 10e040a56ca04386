"""Tests for the Tesseract adapter.

pytesseract is replaced by a mock module, so these run without the
Tesseract binary installed.
"""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest

from screenscrub.core.config import ScrubConfig
from screenscrub.core.ocr import engine
from screenscrub.core.ocr.engine import document_from_tesseract, ocr_image
from screenscrub.models.schemas import BBox


def _tesseract_data() -> dict:
    # Level-1 page entry, two words on one line, one word on a second block,
    # and a low-confidence word that must be dropped.
    return {
        "text": ["", "Phone", "050-123-4567", "Thanks", "~~"],
        "conf": ["-1", "95", "91.5", "88", "10"],
        "left": [0, 10, 70, 10, 200],
        "top": [0, 10, 12, 50, 50],
        "width": [300, 50, 120, 60, 20],
        "height": [100, 20, 20, 20, 20],
        "block_num": [0, 1, 1, 2, 2],
        "line_num": [0, 1, 1, 1, 1],
    }


@pytest.fixture
def fake_tesseract(monkeypatch):
    module = MagicMock()
    module.image_to_data.return_value = _tesseract_data()
    monkeypatch.setattr(engine, "_tesseract_available", None)
    with patch.dict(sys.modules, {"pytesseract": module}):
        yield module


class TestDocumentFromTesseract:
    def test_groups_words_into_lines_and_blocks(self):
        doc = document_from_tesseract(_tesseract_data())
        assert doc.text == "Phone 050-123-4567\nThanks"
        assert [b.text for b in doc.blocks] == ["Phone 050-123-4567", "Thanks"]

        line = doc.blocks[0].lines[0]
        assert [e.text for e in line.elements] == ["Phone", "050-123-4567"]
        assert line.bbox == BBox(x0=10, y0=10, x1=190, y1=32)
        assert line.elements[1].bbox == BBox(x0=70, y0=12, x1=190, y1=32)

    def test_confidence_threshold(self):
        doc = document_from_tesseract(_tesseract_data(), min_conf=90)
        assert doc.text == "Phone 050-123-4567"

    def test_paragraphs_split_lines(self):
        data = _tesseract_data()
        data["par_num"] = [0, 1, 2, 1, 1]
        doc = document_from_tesseract(data)
        assert [ln.text for ln in doc.blocks[0].lines] == ["Phone", "050-123-4567"]

    def test_empty(self):
        doc = document_from_tesseract({"text": []})
        assert doc.text == ""
        assert doc.blocks == []


class TestTesseractAvailability:
    def test_missing_binary_is_cached(self, fake_tesseract):
        fake_tesseract.get_tesseract_version.side_effect = RuntimeError("not installed")
        assert engine._check_tesseract() is False
        assert engine._check_tesseract() is False
        assert fake_tesseract.get_tesseract_version.call_count == 1

    def test_ocr_skipped_when_unavailable(self, monkeypatch):
        monkeypatch.setattr(engine, "_tesseract_available", False)
        doc = ocr_image(object())
        assert doc.text == ""
        assert doc.blocks == []

    def test_ocr_image_builds_document(self, fake_tesseract):
        fake_tesseract.get_tesseract_version.return_value = "5.3.0"
        doc = ocr_image(object())
        assert doc.text == "Phone 050-123-4567\nThanks"
        _, kwargs = fake_tesseract.image_to_data.call_args
        assert kwargs["lang"] == "eng"
        assert kwargs["output_type"] is fake_tesseract.Output.DICT

    def test_configured_binary_path_is_used(self, fake_tesseract):
        fake_tesseract.get_tesseract_version.return_value = "5.3.0"
        cfg = ScrubConfig(tesseract_cmd="/custom/bin/tesseract", ocr_language="heb")
        ocr_image(object(), cfg)
        assert fake_tesseract.pytesseract.tesseract_cmd == "/custom/bin/tesseract"
        _, kwargs = fake_tesseract.image_to_data.call_args
        assert kwargs["lang"] == "heb"

    def test_binary_path_applied_after_cached_probe(self, fake_tesseract, monkeypatch):
        monkeypatch.setattr(engine, "_tesseract_available", True)
        ocr_image(object(), ScrubConfig(tesseract_cmd="/opt/tesseract"))
        assert fake_tesseract.pytesseract.tesseract_cmd == "/opt/tesseract"
        fake_tesseract.get_tesseract_version.assert_not_called()
