"""Format and checksum validation for PII candidates.

Every function here is a pure predicate over the raw candidate text.  A
candidate that fails is dropped silently by the detector; nothing in this
module raises.

The whitelists below are built once at import and never mutated, so the
validators are safe to call from any number of workers.
"""

from __future__ import annotations

import re
from collections import Counter

# ═══════════════════════════════════════════════════════════════════════════
# Static tables
# ═══════════════════════════════════════════════════════════════════════════

ISRAELI_ID_BLACKLIST: frozenset[str] = frozenset({
    "000000000", "111111111", "123456789",
})

# National-format area codes.  Landlines are 0X + 7 digits, mobiles and
# VoIP ranges are 0XX + 7 digits (stored here without the trunk 0).
ISRAELI_LANDLINE_CODES: frozenset[str] = frozenset({"02", "03", "04", "08", "09"})
ISRAELI_MOBILE_CODES: frozenset[str] = frozenset(f"5{d}" for d in range(10))
ISRAELI_OTHER_CODES: frozenset[str] = frozenset(f"7{d}" for d in range(2, 10))
ISRAELI_AREA_CODES: frozenset[str] = (
    ISRAELI_LANDLINE_CODES | ISRAELI_MOBILE_CODES | ISRAELI_OTHER_CODES
)

# Registered bank codes (first two digits of an 11-digit account).
ISRAELI_BANK_CODES: frozenset[str] = frozenset({
    "04", "09", "10", "11", "12", "14", "17", "20",
    "22", "23", "26", "27", "31", "46", "52", "54",
})

CARD_LEADING_DIGITS: frozenset[str] = frozenset("3456")

_NON_DIGIT = re.compile(r"\D")
_PHONE_FORMATTING = re.compile(r"[\s\-().]")
_EMAIL_SHAPE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,6}$")


def digits_of(text: str) -> str:
    """Digit-only projection of *text*."""
    return _NON_DIGIT.sub("", text)


def _is_repeat_run(digits: str) -> bool:
    return len(digits) > 1 and len(set(digits)) == 1


# ═══════════════════════════════════════════════════════════════════════════
# Credit card
# ═══════════════════════════════════════════════════════════════════════════

def luhn_check(number_str: str) -> bool:
    """Luhn algorithm — validates credit card numbers."""
    digits = [int(d) for d in number_str if d.isdigit()]
    if not digits:
        return False
    checksum = 0
    for i, d in enumerate(reversed(digits)):
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        checksum += d
    return checksum % 10 == 0


def dominant_digit_ratio(digits: str) -> float:
    """Share of the most frequent digit in *digits* (0.0 for empty input)."""
    if not digits:
        return 0.0
    _digit, count = Counter(digits).most_common(1)[0]
    return count / len(digits)


def is_plausible_card(text: str, max_repeat_ratio: float = 0.70) -> bool:
    """Structural card check: length, issuer prefix, and OCR repeat guard.

    The Luhn checksum is applied separately because its failure is only
    fatal in strict mode.
    """
    digits = digits_of(text)
    if not 13 <= len(digits) <= 19:
        return False
    if digits[0] not in CARD_LEADING_DIGITS:
        return False
    return dominant_digit_ratio(digits) <= max_repeat_ratio


# ═══════════════════════════════════════════════════════════════════════════
# United States
# ═══════════════════════════════════════════════════════════════════════════

def is_valid_us_ssn(text: str) -> bool:
    digits = digits_of(text)
    if len(digits) != 9:
        return False
    return digits not in ("000000000", "111111111")


def is_israeli_phone_format(text: str) -> bool:
    """True when a phone-shaped string carries an Israeli prefix.

    Matches an explicit +972/972 country code, or a trunk 0 followed by an
    Israeli area code.
    """
    clean = _PHONE_FORMATTING.sub("", text)
    if clean.startswith("+972") or clean.startswith("972"):
        return True
    if clean.startswith("0") and len(clean) > 2:
        return clean[:2] in ISRAELI_LANDLINE_CODES or clean[1:3] in ISRAELI_AREA_CODES
    return False


def normalize_us_phone(text: str) -> str | None:
    """Return the 10-digit national number, or None if it cannot be one."""
    clean = _PHONE_FORMATTING.sub("", text)
    if clean.startswith("+1"):
        clean = clean[2:]
    elif clean.startswith("1") and len(clean) == 11:
        clean = clean[1:]
    if len(clean) != 10 or not clean.isdigit():
        return None
    return clean


def is_valid_us_phone(text: str) -> bool:
    if is_israeli_phone_format(text):
        return False
    number = normalize_us_phone(text)
    if number is None:
        return False
    if number[0] not in "23456789":
        return False
    return not _is_repeat_run(number)


# ═══════════════════════════════════════════════════════════════════════════
# Israel
# ═══════════════════════════════════════════════════════════════════════════

def israeli_id_checksum(digits: str) -> bool:
    """Teudat Zehut check digit.

    Odd positions (0-indexed) are doubled, two-digit products are folded
    by digit sum, and the total must be a multiple of 10.
    """
    if len(digits) != 9 or not digits.isdigit():
        return False
    total = 0
    for i, ch in enumerate(digits):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d = d // 10 + d % 10
        total += d
    return total % 10 == 0


def is_valid_israeli_id(text: str) -> bool:
    digits = digits_of(text)
    if len(digits) != 9:
        return False
    if digits in ISRAELI_ID_BLACKLIST:
        return False
    return israeli_id_checksum(digits)


def israeli_area_code(text: str) -> str | None:
    """Extract the national area code of an Israeli phone number.

    Strips an optional +972 country code or trunk 0; the remainder must be
    8 digits (landline, area code ``0X``) or 9 digits (mobile/VoIP, ``XX``).
    A landline-length number is only accepted with an explicit prefix,
    otherwise any 8-digit run would qualify.
    """
    clean = _PHONE_FORMATTING.sub("", text)
    has_prefix = False
    if clean.startswith("+972"):
        clean = clean[4:]
        has_prefix = True
    if clean.startswith("0"):
        clean = clean[1:]
        has_prefix = True
    if not clean.isdigit():
        return None
    if len(clean) == 8:
        return "0" + clean[0] if has_prefix else None
    if len(clean) == 9:
        return clean[:2]
    return None


def is_valid_israeli_phone(text: str) -> bool:
    area = israeli_area_code(text)
    if area is None or area not in ISRAELI_AREA_CODES:
        return False
    return not _is_repeat_run(digits_of(text)[-7:])


def is_valid_israeli_bank_account(text: str) -> bool:
    digits = digits_of(text)
    if len(digits) != 11:
        return False
    return digits[:2] in ISRAELI_BANK_CODES


# ═══════════════════════════════════════════════════════════════════════════
# E-mail
# ═══════════════════════════════════════════════════════════════════════════

def is_valid_email(text: str) -> bool:
    """Shape check on an e-mail with OCR whitespace already removed."""
    normalized = re.sub(r"\s+", "", text)
    if len(normalized) <= 5:
        return False
    return bool(_EMAIL_SHAPE.match(normalized))
