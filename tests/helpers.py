"""Builders for synthetic OCR geometry used across the test modules.

Each character is ``CHAR_W`` pixels wide, so element boxes line up with
character offsets and expected rectangles can be computed by hand.
"""

from __future__ import annotations

from screenscrub.models.schemas import BBox, OcrDocument, TextBlock, TextElement, TextLine

CHAR_W = 10
LINE_H = 20


def make_line(text: str, x0: int = 10, y0: int = 10, with_boxes: bool = True) -> TextLine:
    """One OCR line whose elements are the space-separated words of *text*."""
    elements: list[TextElement] = []
    pos = 0
    for word in text.split(" "):
        if word:
            bbox = BBox(
                x0=x0 + pos * CHAR_W,
                y0=y0,
                x1=x0 + (pos + len(word)) * CHAR_W,
                y1=y0 + LINE_H,
            )
            elements.append(TextElement(text=word, bbox=bbox if with_boxes else None))
        pos += len(word) + 1
    return TextLine(
        text=text,
        bbox=BBox(x0=x0, y0=y0, x1=x0 + len(text) * CHAR_W, y1=y0 + LINE_H),
        elements=elements,
    )


def make_document(*lines: str, x0: int = 10, y0: int = 10, gap: int = 10) -> OcrDocument:
    """A single-block document, one line per argument, stacked vertically."""
    text_lines = [
        make_line(text, x0=x0, y0=y0 + i * (LINE_H + gap))
        for i, text in enumerate(lines)
    ]
    block = TextBlock(
        text="\n".join(lines),
        bbox=BBox.union([ln.bbox for ln in text_lines]),
        lines=text_lines,
    )
    return OcrDocument(text=block.text, blocks=[block])
