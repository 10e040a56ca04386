"""Audit-safe renderings of detected values.

Anything that leaves the detector (logs, the JSON sidecar, the CLI) goes
through :func:`mask_value`; raw values never do.
"""

from __future__ import annotations

import re

from screenscrub.core.detection.validators import digits_of
from screenscrub.models.schemas import Category, MaskedMatch, SensitiveMatch

_DIGIT = re.compile(r"\d")
_WHITESPACE = re.compile(r"\s+")


def mask_value(value: str, category: Category) -> str:
    """Mask *value* for display.

    Cards keep the first and last four digits, e-mails keep two local-part
    characters and the domain, every other category keeps its punctuation
    with all digits replaced by ``*``.
    """
    if not value or len(value) < 4:
        return "***"

    if category is Category.CREDIT_CARD:
        digits = digits_of(value)
        if len(digits) < 8:
            return "****"
        return f"{digits[:4]} **** **** {digits[-4:]}"

    if category is Category.EMAIL:
        compact = _WHITESPACE.sub("", value)
        at = compact.find("@")
        if at > 2:
            return compact[:2] + "***" + compact[at:]
        return "***@***"

    return _DIGIT.sub("*", value)


def to_masked(match: SensitiveMatch) -> MaskedMatch:
    return MaskedMatch(
        category=match.category,
        confidence=match.confidence,
        masked=mask_value(match.text, match.category),
        start=match.start,
        end=match.end,
    )
