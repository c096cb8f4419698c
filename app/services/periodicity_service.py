"""
SGI Compliance Tracker - Periodicity Expander

Single source of truth for which months of a year are checkpoints
under a periodicity, and how the 12 months group into spans for the
calendar grid and the compliance aggregation.
"""

from typing import Any, List, Tuple

from app.models.compliance_enums import Periodicity

MONTHS_PER_YEAR = 12

MONTH_LABELS = [
    "Ene", "Feb", "Mar", "Abr", "May", "Jun",
    "Jul", "Ago", "Sep", "Oct", "Nov", "Dic",
]

# Months covered by one checkpoint span
SPAN_LENGTHS = {
    Periodicity.MONTHLY: 1,
    Periodicity.BIMONTHLY: 2,
    Periodicity.QUARTERLY: 3,
    Periodicity.SEMIANNUAL: 6,
    Periodicity.ANNUAL: 12,
}


def _is_scheduled(periodicity: Periodicity, month: int) -> bool:
    if periodicity is Periodicity.MONTHLY:
        return True
    if periodicity is Periodicity.BIMONTHLY:
        return month % 2 == 0
    if periodicity is Periodicity.QUARTERLY:
        return (month + 1) % 3 == 0
    if periodicity is Periodicity.SEMIANNUAL:
        return month == 5 or month == 11
    if periodicity is Periodicity.ANNUAL:
        return month == 11
    # Unreachable once parsed; kept so a new member cannot fall through to False
    raise AssertionError(f"Unhandled periodicity {periodicity!r}")


def expand(periodicity: Any, year: int) -> Tuple[bool, ...]:
    """
    Return the 12 scheduled-checkpoint flags (index = 0-based month).

    The pattern does not depend on the year; the argument is accepted
    so callers can project any year without special-casing.

    Raises:
        InvalidPeriodicityException: value outside the enumeration
    """
    parsed = Periodicity.parse(periodicity)
    return tuple(_is_scheduled(parsed, month) for month in range(MONTHS_PER_YEAR))


def scheduled_months(periodicity: Any, year: int) -> List[int]:
    """Month indices that are checkpoints."""
    return [i for i, planned in enumerate(expand(periodicity, year)) if planned]


def span_length(periodicity: Any) -> int:
    return SPAN_LENGTHS[Periodicity.parse(periodicity)]


def spans(periodicity: Any) -> List[Tuple[int, int]]:
    """
    Inclusive (start, end) month ranges, one per checkpoint span.

    A trailing span is clipped at December.
    """
    length = span_length(periodicity)
    result = []
    start = 0
    while start < MONTHS_PER_YEAR:
        end = min(start + length, MONTHS_PER_YEAR) - 1
        result.append((start, end))
        start = end + 1
    return result
