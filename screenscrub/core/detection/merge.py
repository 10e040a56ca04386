"""Match arbitration: turn overlapping candidates into one final list.

Candidates from different categories can claim the same digits (a card
number also parses as two phone numbers, an Israeli ID as an SSN).  The
sweep below keeps at most one match per character range and produces the
same list for the same input every time.
"""

from __future__ import annotations

import logging

from screenscrub.models.schemas import Category, SensitiveMatch

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Specificity on tied confidence (higher wins)
# ---------------------------------------------------------------------------
# Credit cards outrank the phone/SSN shapes found inside them, and each
# Israeli category outranks its same-shape US counterpart.

CATEGORY_PRIORITY: dict[Category, int] = {
    Category.CREDIT_CARD: 70,
    Category.ISRAELI_BANK_ACCOUNT: 60,
    Category.ISRAELI_ID: 50,
    Category.ISRAELI_PHONE: 40,
    Category.US_SSN: 30,
    Category.US_PHONE: 20,
    Category.EMAIL: 10,
}


def _sort_key(m: SensitiveMatch) -> tuple:
    # Every component is total so that ties never depend on input order.
    return (m.start, -m.confidence, -CATEGORY_PRIORITY[m.category], m.end, m.category.value)


def _wins(challenger: SensitiveMatch, kept: SensitiveMatch) -> bool:
    if challenger.confidence != kept.confidence:
        return challenger.confidence > kept.confidence
    return CATEGORY_PRIORITY[challenger.category] > CATEGORY_PRIORITY[kept.category]


def resolve_overlaps(candidates: list[SensitiveMatch]) -> list[SensitiveMatch]:
    """Return a non-overlapping list sorted by start offset.

    Candidates are swept by ``(start, -confidence)``.  A candidate that
    intersects the last kept match replaces it only with strictly higher
    confidence, or equal confidence and a higher ``CATEGORY_PRIORITY``.
    """
    ordered = sorted(candidates, key=_sort_key)
    filtered: list[SensitiveMatch] = []

    for match in ordered:
        if not filtered:
            filtered.append(match)
            continue

        last = filtered[-1]
        if match.start < last.end:
            if _wins(match, last):
                logger.debug(
                    f"Overlap {match.start}-{match.end}: "
                    f"{match.category.value} replaces {last.category.value}"
                )
                filtered[-1] = match
            # Earlier kept matches end at or before last.start, so the
            # replacement cannot reach back into them.
        else:
            filtered.append(match)

    return filtered
