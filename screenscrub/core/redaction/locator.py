"""Map accepted text matches back to pixel rectangles.

OCR geometry only reports boxes per line and per element (roughly a word),
while a match can cover part of an element ("ID:123456782"), several
elements ("050 123 4567"), or run across lines.  For every match the
locator:

  1. finds the match's character range inside each OCR line (literal,
     then digit projection for numeric categories, then "line is a
     fragment of the value");
  2. extends the range to the end of the value's run (phones and cards
     to the last digit, e-mails to the end of the domain) so a value the
     detector cut short is still fully covered;
  3. projects the range onto the line's elements, taking a proportional
     sub-rectangle of any element that is only partly covered;
  4. pads, clips to the image and de-duplicates the rectangles.

When no line yields a range, the elements are searched on their own.  A
phone whose digits were not all covered gets a last, looser pass over
short digit groups on the remaining lines.  A match that still has
no rectangle is logged as a location miss and reported to the caller.
"""

from __future__ import annotations

import logging
import re

from screenscrub.core.config import ScrubConfig, config as _default_config
from screenscrub.core.detection.masking import mask_value
from screenscrub.core.detection.regex_patterns import CATEGORY_SPECS
from screenscrub.core.detection.validators import digits_of
from screenscrub.core.ocr.geometry import ElementNode, GeometryIndex
from screenscrub.models.schemas import BBox, Category, RedactionRegion, SensitiveMatch

logger = logging.getLogger(__name__)

Span = tuple[int, int]

# Digits joined by the punctuation phones and cards are printed with.
_DIGIT_RUN = re.compile(r"\d(?:[ \-.()]*\d)*")
_RUN_FORMATTING = " -.()"
_EMAIL_TAIL = re.compile(r"[A-Za-z0-9.\-]*")


# ═══════════════════════════════════════════════════════════════════════════
# Character-range search
# ═══════════════════════════════════════════════════════════════════════════

def _literal_spans(value: str, text: str) -> list[Span]:
    """Every case-insensitive occurrence of *value* in *text*."""
    needle = value.lower()
    haystack = text.lower()
    spans: list[Span] = []
    pos = haystack.find(needle)
    while pos != -1:
        spans.append((pos, pos + len(needle)))
        pos = haystack.find(needle, pos + len(needle))
    return spans


def _digit_spans(value: str, text: str, min_digits: int) -> list[Span]:
    """Locate *value* in *text* by comparing digit-only projections.

    Tolerates any formatting between digits.  Tries the full value inside
    the text first, then digit runs of the text that are a fragment of the
    value; both sides need at least *min_digits* digits.
    """
    vd = digits_of(value)
    if len(vd) < min_digits:
        return []

    positions = [i for i, ch in enumerate(text) if ch.isdigit()]
    ld = "".join(text[i] for i in positions)

    spans: list[Span] = []
    k = ld.find(vd)
    while k != -1:
        spans.append((positions[k], positions[k + len(vd) - 1] + 1))
        k = ld.find(vd, k + len(vd))
    if spans:
        return spans

    for run in _DIGIT_RUN.finditer(text):
        rd = digits_of(run.group())
        if len(rd) >= min_digits and rd in vd:
            spans.append((run.start(), run.end()))
    return spans


def _fragment_span(value: str, text: str, min_chars: int) -> list[Span]:
    """The whole of *text* when it is a long enough piece of *value*."""
    stripped = text.strip()
    if len(stripped) < min_chars or stripped.lower() not in value.lower():
        return []
    start = text.index(stripped)
    return [(start, start + len(stripped))]


def _extend_end(text: str, span: Span, category: Category) -> Span:
    """Push the end of *span* to the end of the value's run in *text*."""
    start, end = span
    if category.is_phone or category is Category.CREDIT_CARD:
        j = end
        while j < len(text):
            ch = text[j]
            if ch.isdigit():
                end = j + 1
            elif ch not in _RUN_FORMATTING:
                break
            j += 1
    elif category is Category.EMAIL:
        tail = _EMAIL_TAIL.match(text, end).group().rstrip(".")
        end += len(tail)
    return start, end


# ═══════════════════════════════════════════════════════════════════════════
# Geometry projection
# ═══════════════════════════════════════════════════════════════════════════

def _sub_rect(bbox: BBox, text_len: int, start: int, end: int) -> BBox:
    """Horizontal slice of *bbox* for characters [start, end) of its text."""
    if text_len <= 0 or (start <= 0 and end >= text_len):
        return bbox
    width = bbox.width
    x0 = bbox.x0 + (width * max(start, 0)) // text_len
    x1 = bbox.x0 - (-width * min(end, text_len)) // text_len   # ceil
    return BBox(x0=x0, y0=bbox.y0, x1=x1, y1=bbox.y1)


def _element_offsets(line_text: str, elements: tuple[ElementNode, ...]) -> list[tuple[int, ElementNode]]:
    """Start offset of each element inside its line's text, in reading order.

    Elements whose text cannot be found after the previous element are
    skipped.
    """
    placed: list[tuple[int, ElementNode]] = []
    cursor = 0
    lowered = line_text.lower()
    for node in elements:
        token = node.element.text.lower()
        if not token:
            continue
        pos = lowered.find(token, cursor)
        if pos == -1:
            continue
        placed.append((pos, node))
        cursor = pos + len(token)
    return placed


class SpanLocator:
    """Translate :class:`SensitiveMatch` objects into redaction rectangles."""

    def __init__(self, index: GeometryIndex, image_size: tuple[int, int],
                 cfg: ScrubConfig | None = None):
        self.index = index
        self.width, self.height = image_size
        self.cfg = cfg or _default_config

    # -- search ---------------------------------------------------------------

    def _find_spans(self, value: str, category: Category, text: str) -> list[Span]:
        spans = _literal_spans(value, text)
        if not spans and category.is_numeric:
            spans = _digit_spans(value, text, self.cfg.min_digit_match)
        if not spans:
            spans = _fragment_span(value, text, self.cfg.min_fragment_chars)
        return [_extend_end(text, s, category) for s in spans]

    def _phone_fragment_spans(self, value: str, text: str) -> list[Span]:
        vd = digits_of(value)
        spans: list[Span] = []
        for run in _DIGIT_RUN.finditer(text):
            rd = digits_of(run.group())
            if len(rd) < self.cfg.min_phone_fragment_digits:
                continue
            if rd in vd or vd in rd:
                spans.append((run.start(), run.end()))
        return spans

    # -- projection -----------------------------------------------------------

    def _line_boxes(self, node, spans: list[Span], value: str) -> list[BBox]:
        line = node.line
        elements = self.index.elements_of(node)
        placed = _element_offsets(line.text, elements)

        boxes: list[BBox] = []
        for start, end in spans:
            for pos, elem in placed:
                bbox = elem.element.bbox
                if bbox is None:
                    continue
                elem_end = pos + len(elem.element.text)
                if elem_end <= start or pos >= end:
                    continue
                boxes.append(_sub_rect(
                    bbox, len(elem.element.text), start - pos, end - pos,
                ))
        if boxes:
            return boxes

        # Range known but not placeable on elements: whole elements that
        # share text with the value, else the whole line.
        lowered = value.lower()
        for elem in elements:
            token = elem.element.text.strip().lower()
            if elem.element.bbox is None or not token:
                continue
            if token in lowered or lowered in token:
                boxes.append(elem.element.bbox)
        if not boxes and line.bbox is not None:
            boxes.append(line.bbox)
        return boxes

    def _element_boxes(self, value: str, category: Category) -> list[BBox]:
        boxes: list[BBox] = []
        for node in self.index.elements():
            bbox = node.element.bbox
            if bbox is None:
                continue
            text = node.element.text
            for start, end in self._find_spans(value, category, text):
                boxes.append(_sub_rect(bbox, len(text), start, end))
        return boxes

    # -- public ---------------------------------------------------------------

    def _raw_boxes(self, match: SensitiveMatch) -> list[BBox]:
        value, category = match.text, match.category

        boxes: list[BBox] = []
        matched_lines: set[tuple[int, int]] = set()
        covered_digits = 0
        for node in self.index.lines():
            text = node.line.text
            spans = self._find_spans(value, category, text)
            if spans:
                matched_lines.add((node.block_idx, node.line_idx))
                covered_digits += sum(len(digits_of(text[s:e])) for s, e in spans)
                boxes.extend(self._line_boxes(node, spans, value))

        if not boxes:
            boxes = self._element_boxes(value, category)

        # A phone broken across lines leaves short digit groups that the
        # passes above do not accept on their own.
        if category.is_phone and covered_digits < len(digits_of(value)):
            for node in self.index.lines():
                if (node.block_idx, node.line_idx) in matched_lines:
                    continue
                spans = self._phone_fragment_spans(value, node.line.text)
                if spans:
                    boxes.extend(self._line_boxes(node, spans, value))
        return boxes

    def padding_for(self, category: Category) -> int:
        return self.cfg.padding.get(category, CATEGORY_SPECS[category].padding)

    def locate(self, match: SensitiveMatch) -> list[RedactionRegion]:
        """Padded, clipped, positive-area rectangles covering *match*."""
        padding = self.padding_for(match.category)
        regions: list[RedactionRegion] = []
        seen: set[BBox] = set()
        for raw in self._raw_boxes(match):
            bbox = raw.expand(padding).clip(self.width, self.height)
            if bbox.area <= 0 or bbox in seen:
                continue
            seen.add(bbox)
            regions.append(RedactionRegion(bbox=bbox, category=match.category))
        return regions

    def locate_all(
        self, matches: list[SensitiveMatch],
    ) -> tuple[list[RedactionRegion], list[SensitiveMatch]]:
        """Locate every match.

        Returns the de-duplicated regions and the matches that produced no
        region at all.
        """
        regions: list[RedactionRegion] = []
        seen: set[RedactionRegion] = set()
        unlocated: list[SensitiveMatch] = []
        for match in matches:
            found = self.locate(match)
            if not found:
                logger.warning(
                    f"LocationMiss: {match.category.value} "
                    f"'{mask_value(match.text, match.category)}' has no OCR geometry"
                )
                unlocated.append(match)
                continue
            for region in found:
                if region not in seen:
                    seen.add(region)
                    regions.append(region)
        logger.info(f"Located {len(matches) - len(unlocated)}/{len(matches)} matches, "
                    f"{len(regions)} regions")
        return regions, unlocated
