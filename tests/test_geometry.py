"""Tests for the flattened OCR geometry index."""

from __future__ import annotations

from screenscrub.core.ocr.geometry import GeometryIndex
from screenscrub.models.schemas import BBox, OcrDocument, TextBlock, TextElement, TextLine

from tests.helpers import make_line


def _two_block_document() -> OcrDocument:
    first = TextBlock(text="Name: Dana\nPhone 050-123-4567",
                      lines=[make_line("Name: Dana"), make_line("Phone 050-123-4567", y0=40)])
    second = TextBlock(text="Thanks", lines=[make_line("Thanks", y0=80)])
    return OcrDocument(text=first.text + "\n" + second.text, blocks=[first, second])


class TestGeometryIndex:
    def test_lines_depth_first(self):
        index = GeometryIndex(_two_block_document())
        assert [n.line.text for n in index.lines()] == [
            "Name: Dana", "Phone 050-123-4567", "Thanks",
        ]
        assert [(n.block_idx, n.line_idx) for n in index.lines()] == [(0, 0), (0, 1), (1, 0)]
        assert len(index) == 3

    def test_elements_keep_their_line(self):
        index = GeometryIndex(_two_block_document())
        elements = index.elements()
        assert [e.element.text for e in elements] == [
            "Name:", "Dana", "Phone", "050-123-4567", "Thanks",
        ]
        assert elements[3].line.text == "Phone 050-123-4567"

    def test_elements_of_line(self):
        index = GeometryIndex(_two_block_document())
        second_line = index.lines()[1]
        assert [e.element.text for e in index.elements_of(second_line)] == ["Phone", "050-123-4567"]

    def test_nodes_interleave_lines_and_elements(self):
        index = GeometryIndex(_two_block_document())
        texts = [text for text, _ in index.nodes()]
        assert texts[:3] == ["Name: Dana", "Name:", "Dana"]
        assert texts[-2:] == ["Thanks", "Thanks"]

    def test_nodes_without_boxes_are_kept(self):
        line = TextLine(text="no geometry", elements=[TextElement(text="no"), TextElement(text="geometry")])
        doc = OcrDocument(text="no geometry", blocks=[TextBlock(text="no geometry", lines=[line])])
        nodes = GeometryIndex(doc).nodes()
        assert len(nodes) == 3
        assert all(bbox is None for _, bbox in nodes)

    def test_empty_document(self):
        index = GeometryIndex(OcrDocument())
        assert index.lines() == ()
        assert index.elements() == ()


def test_bbox_union():
    boxes = [BBox(x0=10, y0=5, x1=20, y1=15), BBox(x0=0, y0=8, x1=12, y1=30)]
    assert BBox.union(boxes) == BBox(x0=0, y0=5, x1=20, y1=30)
    assert BBox.union([]) is None
