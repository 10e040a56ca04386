"""OCR engine — Tesseract integration producing the block/line/element tree."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any

from screenscrub.models.schemas import BBox, OcrDocument, TextBlock, TextElement, TextLine

logger = logging.getLogger(__name__)

_tesseract_available: bool | None = None


def _check_tesseract(cfg=None) -> bool:
    """Check if Tesseract is available on the system."""
    global _tesseract_available
    if _tesseract_available is not None:
        return _tesseract_available

    try:
        import pytesseract
        from screenscrub.core.config import config

        cfg = cfg or config
        if cfg.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = cfg.tesseract_cmd
        elif shutil.which("tesseract") is None:
            # Try common Windows install path
            common_paths = [
                r"C:\Program Files\Tesseract-OCR\tesseract.exe",
                r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",
            ]
            for p in common_paths:
                if Path(p).exists():
                    pytesseract.pytesseract.tesseract_cmd = p
                    break

        # Test it works
        pytesseract.get_tesseract_version()
        _tesseract_available = True
        logger.info("Tesseract OCR is available")
    except Exception as e:
        logger.warning(f"Tesseract OCR not available: {e}")
        _tesseract_available = False

    return _tesseract_available


def document_from_tesseract(data: dict[str, list[Any]], min_conf: int = 30) -> OcrDocument:
    """Build an :class:`OcrDocument` from ``image_to_data`` ``Output.DICT``.

    Words are grouped into lines by (block, paragraph, line) number and
    lines into blocks by block number, in Tesseract's reading order.  Line
    and block boxes are the union of their children's boxes.
    """
    lines: dict[tuple[int, int, int], list[TextElement]] = {}
    n_items = len(data.get("text", []))

    for i in range(n_items):
        text = str(data["text"][i]).strip()
        conf = int(float(data["conf"][i]))

        # Skip empty / low-confidence entries
        if not text or conf < min_conf:
            continue

        left = int(data["left"][i])
        top = int(data["top"][i])
        par_num = int(data["par_num"][i]) if "par_num" in data else 0
        key = (int(data["block_num"][i]), par_num, int(data["line_num"][i]))
        lines.setdefault(key, []).append(TextElement(
            text=text,
            bbox=BBox(
                x0=left,
                y0=top,
                x1=left + int(data["width"][i]),
                y1=top + int(data["height"][i]),
            ),
        ))

    blocks: dict[int, list[TextLine]] = {}
    for (block_num, _par, _line), elements in lines.items():
        blocks.setdefault(block_num, []).append(TextLine(
            text=" ".join(e.text for e in elements),
            bbox=BBox.union([e.bbox for e in elements]),
            elements=elements,
        ))

    text_blocks = [
        TextBlock(
            text="\n".join(line.text for line in block_lines),
            bbox=BBox.union([line.bbox for line in block_lines]),
            lines=block_lines,
        )
        for block_lines in blocks.values()
    ]
    return OcrDocument(
        text="\n".join(b.text for b in text_blocks),
        blocks=text_blocks,
    )


def ocr_image(image, cfg=None) -> OcrDocument:
    """Run Tesseract on a PIL image.

    Returns an empty document when Tesseract is not installed.
    """
    from screenscrub.core.config import config

    cfg = cfg or config
    if not _check_tesseract(cfg):
        logger.warning("Tesseract not available — skipping OCR")
        return OcrDocument()

    import pytesseract

    # Availability is cached, so a per-call binary path is applied here too.
    if cfg.tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = cfg.tesseract_cmd
    data = pytesseract.image_to_data(
        image,
        lang=cfg.ocr_language,
        output_type=pytesseract.Output.DICT,
    )
    document = document_from_tesseract(data, min_conf=cfg.ocr_min_confidence)

    n_words = sum(len(line.elements) for b in document.blocks for line in b.lines)
    logger.info(f"OCR extracted {n_words} words in {len(document.blocks)} blocks")
    return document
