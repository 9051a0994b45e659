"""Smile-face rating derivation.

Inspections grade each criterion 0 (no breach) to 3 (serious breach), with 4
("not applicable") and 5 ("not assessed") reserved for criteria that must not
affect the public rating. The smile face shown to the public is the worst
graded criterion. Older rows only carry the aggregate ``total_karakter``.
"""

from __future__ import annotations

import math
from typing import Any, Iterable

from smilefjes.common.constants import UNKNOWN_RATING

MIN_RATING = 0
MAX_RATING = 3


def to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _in_range(number: float | None) -> bool:
    return number is not None and MIN_RATING <= number <= MAX_RATING


def _as_rating(number: float) -> int | float:
    return int(number) if number.is_integer() else number


def derive_rating(criteria: Iterable[Any], legacy: Any = None) -> int | float | None:
    """Return the smile-face rating, or None when it cannot be determined."""
    qualifying = [number for number in (to_number(value) for value in criteria) if _in_range(number)]
    if qualifying:
        return _as_rating(max(qualifying))

    fallback = to_number(legacy)
    if _in_range(fallback):
        return _as_rating(fallback)
    return None


def derive_record_rating(criteria: dict[str, Any], legacy: Any) -> int:
    """Derived rating encoded for output: non-integral or unknown becomes -1."""
    rating = derive_rating(criteria.values(), legacy)
    if isinstance(rating, int):
        return rating
    return UNKNOWN_RATING


def legacy_rating(value: Any) -> int:
    number = to_number(value)
    if number is None or not number.is_integer():
        return UNKNOWN_RATING
    return int(number)
