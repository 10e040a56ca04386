"""Declarative category catalog for PII detection.

Each category carries its recognition pattern, validator, default
confidence, redaction padding and locale-overlap rule as data.  The
detection logic lives in ``regex_detector.py``; the validators themselves
live in ``validators.py``.
"""

from __future__ import annotations

import re
from typing import Callable, NamedTuple, Optional

from screenscrub.core.config import ScrubConfig
from screenscrub.core.detection.validators import (
    is_plausible_card,
    is_valid_email,
    is_valid_israeli_bank_account,
    is_valid_israeli_id,
    is_valid_israeli_phone,
    is_valid_us_phone,
    is_valid_us_ssn,
    luhn_check,
)
from screenscrub.models.schemas import Category

# Returns the accepted confidence, or None to reject the candidate.
Scorer = Callable[[str, float, ScrubConfig], Optional[float]]


class CategorySpec(NamedTuple):
    pattern: re.Pattern
    score: Scorer
    confidence: float
    padding: int                           # pixels around each rectangle
    excluded_by: Optional[Category] = None  # same-shape category checked first


def _predicate(check: Callable[[str], bool]) -> Scorer:
    def score(text: str, confidence: float, _cfg: ScrubConfig) -> Optional[float]:
        return confidence if check(text) else None
    return score


LUHN_VERIFIED_CONFIDENCE = 0.95


def _score_credit_card(text: str, confidence: float, cfg: ScrubConfig) -> Optional[float]:
    if not is_plausible_card(text, cfg.max_repeat_digit_ratio):
        return None
    if luhn_check(text):
        return LUHN_VERIFIED_CONFIDENCE
    return None if cfg.strict_luhn else confidence


# ═══════════════════════════════════════════════════════════════════════════
# Patterns
# ═══════════════════════════════════════════════════════════════════════════
# Phone patterns open with a negative look-behind instead of \b so that a
# leading "+" or "(" is part of the match.

CREDIT_CARD_PATTERN = re.compile(
    r"\b(?:\d{4}[\s\-]?){3}\d{4}\b"            # 16 digits, optional separators
    r"|\b3[47]\d{2}[\s\-]?\d{6}[\s\-]?\d{5}\b"  # Amex 4-6-5
    r"|\b[3-6]\d{12,18}\b"                     # 13–19 contiguous digits
)

US_SSN_PATTERN = re.compile(r"\b\d{3}[\-\s]\d{2}[\-\s]\d{4}\b")

US_PHONE_PATTERN = re.compile(
    r"(?<![\w+(])(?:\+?1[\s.\-]?)?"
    r"(?:\([2-9]\d{2}\)|[2-9]\d{2})[\s.\-]?"
    r"[2-9]\d{2}[\s.\-]?\d{4}\b"
)

# Secondary scan: bare 10-digit numbers the formatted pattern misses.
US_PHONE_BARE_PATTERN = re.compile(r"(?<!\d)[2-9]\d{9}(?!\d)")

ISRAELI_ID_PATTERN = re.compile(r"\b\d{9}\b|\b\d{3}[\s\-]\d{3}[\s\-]\d{3}\b")

ISRAELI_PHONE_PATTERN = re.compile(
    r"(?<![\w+])(?:\+972[\s\-]?|0)?"
    r"(?:5\d|7[2-9]|[23489])[\s\-]?"
    r"\d{3}[\s\-]?\d{4}\b"
)

ISRAELI_BANK_ACCOUNT_PATTERN = re.compile(
    r"\b(?:0[1-9]|[1-9]\d)[\s\-]?\d{3}[\s\-]?\d{6}\b"
)

# Applied to text whose OCR dot gaps were already closed.
EMAIL_PATTERN = re.compile(
    r"\b[a-zA-Z0-9][a-zA-Z0-9._%+\-]*@[a-zA-Z0-9][a-zA-Z0-9.\-]*\.[a-zA-Z]{2,6}\b"
)

# "example .com" / "example. com" → "example.com".  Only gaps in front of a
# lower-case TLD-sized word qualify; the detector further requires an "@"
# earlier in the same token.
OCR_DOT_GAP = re.compile(r"(?<=\w)(?:[ \t]+\.[ \t]*|\.[ \t]+)(?=[a-z]{2,6}\b)")


# ═══════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════

CATEGORY_SPECS: dict[Category, CategorySpec] = {
    Category.ISRAELI_ID: CategorySpec(
        ISRAELI_ID_PATTERN, _predicate(is_valid_israeli_id), 0.95, 6,
    ),
    Category.ISRAELI_PHONE: CategorySpec(
        ISRAELI_PHONE_PATTERN, _predicate(is_valid_israeli_phone), 0.90, 10,
    ),
    Category.ISRAELI_BANK_ACCOUNT: CategorySpec(
        ISRAELI_BANK_ACCOUNT_PATTERN, _predicate(is_valid_israeli_bank_account), 0.85, 6,
    ),
    Category.CREDIT_CARD: CategorySpec(
        CREDIT_CARD_PATTERN, _score_credit_card, 0.90, 6,
    ),
    Category.US_SSN: CategorySpec(
        US_SSN_PATTERN, _predicate(is_valid_us_ssn), 0.90, 6,
        excluded_by=Category.ISRAELI_ID,
    ),
    Category.US_PHONE: CategorySpec(
        US_PHONE_PATTERN, _predicate(is_valid_us_phone), 0.80, 10,
        excluded_by=Category.ISRAELI_PHONE,
    ),
    Category.EMAIL: CategorySpec(
        EMAIL_PATTERN, _predicate(is_valid_email), 0.95, 6,
    ),
}

# Israeli categories run first so that same-shape US candidates can be
# discarded against them.
SCAN_ORDER: tuple[Category, ...] = (
    Category.ISRAELI_ID,
    Category.ISRAELI_PHONE,
    Category.ISRAELI_BANK_ACCOUNT,
    Category.CREDIT_CARD,
    Category.US_SSN,
    Category.US_PHONE,
    Category.EMAIL,
)
