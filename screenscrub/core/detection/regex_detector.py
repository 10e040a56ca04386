"""Regex-based PII detector.

Scans OCR text category by category, validates each candidate, applies the
locale-overlap policy and hands the survivors to the arbitrator in
``merge.py``.

Design notes:
  - Israeli categories are scanned before the US ones that share their
    digit shape (ID vs SSN, phone vs phone).  A US candidate touching an
    accepted Israeli match of its shape is dropped before validation.
  - Validator rejections are ordinary negatives; they are logged at DEBUG
    level with the value masked and never raised.
  - E-mails are matched on a copy of the text with OCR dot gaps closed
    ("example .com"), then relocated in the original text so offsets stay
    valid for the caller's string.
"""

from __future__ import annotations

import logging
import re
import time
from collections import Counter
from typing import Iterator, NamedTuple, Optional

from screenscrub.core.config import ScrubConfig, config as _default_config
from screenscrub.core.detection.masking import mask_value
from screenscrub.core.detection.merge import resolve_overlaps
from screenscrub.core.detection.regex_patterns import (
    CATEGORY_SPECS,
    OCR_DOT_GAP,
    SCAN_ORDER,
    US_PHONE_BARE_PATTERN,
)
from screenscrub.core.detection.validators import is_valid_email
from screenscrub.models.schemas import Category, DetectionStats, SensitiveMatch

logger = logging.getLogger(__name__)


class Candidate(NamedTuple):
    """A raw regex hit, before validation."""
    start: int
    end: int
    text: str


# ═══════════════════════════════════════════════════════════════════════════
# Candidate extraction
# ═══════════════════════════════════════════════════════════════════════════

def scan_candidates(text: str, category: Category) -> list[Candidate]:
    """All non-overlapping raw hits of *category*'s pattern, left to right."""
    pattern = CATEGORY_SPECS[category].pattern
    return [Candidate(m.start(), m.end(), m.group()) for m in pattern.finditer(text)]


def _overlaps_any(start: int, end: int, accepted: list[SensitiveMatch],
                  category: Optional[Category] = None) -> bool:
    for m in accepted:
        if category is not None and m.category != category:
            continue
        if start < m.end and end > m.start:
            return True
    return False


def _accept(category: Category, cand: Candidate, cfg: ScrubConfig) -> Optional[SensitiveMatch]:
    spec = CATEGORY_SPECS[category]
    confidence = spec.score(cand.text, spec.confidence, cfg)
    if confidence is None:
        logger.debug(f"{category.value} rejected: {mask_value(cand.text, category)}")
        return None
    return SensitiveMatch(
        category=category,
        text=cand.text,
        start=cand.start,
        end=cand.end,
        confidence=confidence,
    )


# ═══════════════════════════════════════════════════════════════════════════
# E-mail: OCR dot-gap normalisation and relocation
# ═══════════════════════════════════════════════════════════════════════════

def _close_dot_gaps(text: str) -> tuple[str, list[int]]:
    """Remove OCR whitespace around the dots of e-mail domains.

    A gap is closed only when the token in front of it already contains an
    ``@``.  Returns the normalised text and, for every character in it, the
    index of the character it came from in *text*.
    """
    pieces: list[str] = []
    index_map: list[int] = []
    cursor = 0
    for m in OCR_DOT_GAP.finditer(text):
        token_start = max(text.rfind(ws, 0, m.start()) for ws in " \t\n") + 1
        if "@" not in text[token_start:m.start()]:
            continue
        pieces.append(text[cursor:m.start()])
        index_map.extend(range(cursor, m.start()))
        pieces.append(".")
        index_map.append(m.start() + m.group().index("."))
        cursor = m.end()
    pieces.append(text[cursor:])
    index_map.extend(range(cursor, len(text)))
    return "".join(pieces), index_map


def _relocate_email(text: str, value: str, at_pos: int) -> Optional[tuple[int, int]]:
    """Find *value* in the original text around the ``@`` at *at_pos*.

    Dots in *value* may be surrounded by OCR whitespace in *text*.
    """
    parts = [re.escape(p) for p in value.split(".")]
    tolerant = re.compile(r"[ \t]*\.[ \t]*".join(parts))
    window_start = max(0, at_pos - len(value) - 16)
    window_end = min(len(text), at_pos + 2 * len(value) + 16)
    for m in tolerant.finditer(text, window_start, window_end):
        if m.start() <= at_pos < m.end():
            return m.start(), m.end()
    return None


def _find_emails(text: str, cfg: ScrubConfig) -> Iterator[SensitiveMatch]:
    spec = CATEGORY_SPECS[Category.EMAIL]
    normalized, index_map = _close_dot_gaps(text)

    for m in spec.pattern.finditer(normalized):
        value = m.group()
        if not is_valid_email(value):
            continue
        at_pos = index_map[m.start() + value.index("@")]
        span = _relocate_email(text, value, at_pos)
        if span is None:
            # Fall back to the character map of the normalised text.
            span = (index_map[m.start()], index_map[m.end() - 1] + 1)
        start, end = span
        confidence = spec.score(text[start:end], spec.confidence, cfg)
        if confidence is None:
            continue
        yield SensitiveMatch(
            category=Category.EMAIL,
            text=text[start:end],
            start=start,
            end=end,
            confidence=confidence,
        )


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def detect_candidates(text: str, cfg: ScrubConfig | None = None) -> list[SensitiveMatch]:
    """Run every category in scan order and return validated matches.

    The result may still contain overlaps between categories of different
    shapes (e.g. a card number and a phone inside it); see
    :func:`detect_sensitive_data` for the arbitrated list.
    """
    cfg = cfg or _default_config
    accepted: list[SensitiveMatch] = []

    for category in SCAN_ORDER:
        if category is Category.EMAIL:
            accepted.extend(_find_emails(text, cfg))
            continue

        excluded_by = CATEGORY_SPECS[category].excluded_by
        for cand in scan_candidates(text, category):
            if excluded_by and _overlaps_any(cand.start, cand.end, accepted, excluded_by):
                logger.debug(f"{category.value} dropped: overlaps {excluded_by.value}")
                continue
            match = _accept(category, cand, cfg)
            if match is not None:
                accepted.append(match)

        if category is Category.US_PHONE:
            accepted.extend(_find_bare_us_phones(text, accepted, cfg))

    return accepted


def _find_bare_us_phones(text: str, accepted: list[SensitiveMatch],
                         cfg: ScrubConfig) -> list[SensitiveMatch]:
    """Unformatted 10-digit numbers the primary US pattern missed."""
    found: list[SensitiveMatch] = []
    for m in US_PHONE_BARE_PATTERN.finditer(text):
        if _overlaps_any(m.start(), m.end(), accepted, Category.US_PHONE):
            continue
        if _overlaps_any(m.start(), m.end(), accepted, Category.ISRAELI_PHONE):
            continue
        match = _accept(Category.US_PHONE, Candidate(m.start(), m.end(), m.group()), cfg)
        if match is not None:
            found.append(match)
    return found


def detect_sensitive_data(text: str, cfg: ScrubConfig | None = None) -> list[SensitiveMatch]:
    """Detect PII in *text*.

    Returns a non-overlapping list sorted by start offset.  Offsets index
    into *text* exactly as given.  Identical input always yields an
    identical result.
    """
    if not text or not text.strip():
        logger.debug("Empty text provided")
        return []

    candidates = detect_candidates(text, cfg)
    matches = resolve_overlaps(candidates)

    logger.debug(f"Detection: {len(candidates)} candidates, {len(matches)} final")
    for m in matches:
        logger.debug(
            f"Final {m.category.value} = '{mask_value(m.text, m.category)}' at {m.start}-{m.end}"
        )
    return matches


def get_detection_stats(text: str, cfg: ScrubConfig | None = None) -> DetectionStats:
    """Run detection and report timing and per-category counts."""
    started = time.perf_counter()
    matches = detect_sensitive_data(text, cfg)
    elapsed_ms = (time.perf_counter() - started) * 1000.0
    return build_stats(matches, len(text or ""), elapsed_ms)


def build_stats(matches: list[SensitiveMatch], text_length: int,
                elapsed_ms: float) -> DetectionStats:
    counts = Counter(m.category for m in matches)
    return DetectionStats(
        match_count=len(matches),
        processing_time_ms=elapsed_ms,
        text_length=text_length,
        by_category=dict(counts),
    )
