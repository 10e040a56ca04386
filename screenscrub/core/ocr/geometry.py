"""Flattened, read-only view of an OCR geometry tree.

The span locator walks lines and elements many times per image; this
index flattens the block → line → element tree once, depth-first, so the
walks stay cheap and always visit nodes in the same order.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from screenscrub.models.schemas import BBox, OcrDocument, TextElement, TextLine


class LineNode(NamedTuple):
    block_idx: int
    line_idx: int
    line: TextLine


class ElementNode(NamedTuple):
    block_idx: int
    line_idx: int
    elem_idx: int
    element: TextElement
    line: TextLine


class GeometryIndex:
    """Depth-first index over the lines and elements of an :class:`OcrDocument`."""

    def __init__(self, document: OcrDocument):
        self.document = document
        lines: list[LineNode] = []
        elements: list[ElementNode] = []
        self._by_line: dict[tuple[int, int], tuple[ElementNode, ...]] = {}
        for b, block in enumerate(document.blocks):
            for l, line in enumerate(block.lines):
                lines.append(LineNode(b, l, line))
                line_elems = tuple(
                    ElementNode(b, l, e, elem, line) for e, elem in enumerate(line.elements)
                )
                self._by_line[(b, l)] = line_elems
                elements.extend(line_elems)
        self._lines = tuple(lines)
        self._elements = tuple(elements)

    def lines(self) -> tuple[LineNode, ...]:
        return self._lines

    def elements(self) -> tuple[ElementNode, ...]:
        return self._elements

    def elements_of(self, node: LineNode) -> tuple[ElementNode, ...]:
        return self._by_line.get((node.block_idx, node.line_idx), ())

    def nodes(self) -> list[tuple[str, Optional[BBox]]]:
        """(text, bbox) for every line followed by its elements."""
        out: list[tuple[str, Optional[BBox]]] = []
        for node in self._lines:
            out.append((node.line.text, node.line.bbox))
            out.extend((e.element.text, e.element.bbox) for e in self.elements_of(node))
        return out

    def __len__(self) -> int:
        return len(self._lines)
