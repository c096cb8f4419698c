"""
SGI Compliance Tracker - Periodicity Expander Tests
"""

import pytest

from app.models.compliance_enums import Periodicity
from app.services.periodicity_service import (
    MONTHS_PER_YEAR,
    expand,
    scheduled_months,
    span_length,
    spans,
)
from app.utils.error_handling import ErrorCode, InvalidPeriodicityException


EXPECTED_COUNTS = {
    Periodicity.MONTHLY: 12,
    Periodicity.BIMONTHLY: 6,
    Periodicity.QUARTERLY: 4,
    Periodicity.SEMIANNUAL: 2,
    Periodicity.ANNUAL: 1,
}


class TestExpand:
    """Checkpoint flags per periodicity."""

    @pytest.mark.parametrize("periodicity,count", list(EXPECTED_COUNTS.items()))
    def test_planned_count(self, periodicity, count):
        """Each periodicity schedules its fixed number of checkpoints."""
        flags = expand(periodicity, 2025)
        assert len(flags) == MONTHS_PER_YEAR
        assert sum(flags) == count

    @pytest.mark.parametrize("periodicity", list(Periodicity))
    def test_year_invariance(self, periodicity):
        """The pattern is the same for any year."""
        assert expand(periodicity, 2024) == expand(periodicity, 2031)

    def test_quarterly_months(self):
        """Quarterly checkpoints close each quarter."""
        assert scheduled_months(Periodicity.QUARTERLY, 2025) == [2, 5, 8, 11]

    def test_semiannual_and_annual_months(self):
        """Semiannual in June and December, annual in December."""
        assert scheduled_months(Periodicity.SEMIANNUAL, 2025) == [5, 11]
        assert scheduled_months(Periodicity.ANNUAL, 2025) == [11]

    def test_accepts_stored_label_and_member_name(self):
        """Legacy labels and enum names both parse."""
        assert expand("Trimestral", 2025) == expand("QUARTERLY", 2025)

    @pytest.mark.parametrize("value", ["Weekly", "", None, 3])
    def test_unknown_periodicity_fails_fast(self, value):
        """An unknown value raises instead of yielding an empty schedule."""
        with pytest.raises(InvalidPeriodicityException) as exc_info:
            expand(value, 2025)
        assert exc_info.value.code == ErrorCode.INVALID_PERIODICITY
        assert exc_info.value.status_code == 422


class TestSpans:
    """Grouping of months into calendar spans."""

    @pytest.mark.parametrize("periodicity", list(Periodicity))
    def test_spans_cover_the_year(self, periodicity):
        """Spans are contiguous and cover all twelve months."""
        covered = []
        for start, end in spans(periodicity):
            covered.extend(range(start, end + 1))
        assert covered == list(range(MONTHS_PER_YEAR))

    @pytest.mark.parametrize("periodicity", list(Periodicity))
    def test_one_checkpoint_per_span(self, periodicity):
        """Every span holds exactly one scheduled month."""
        flags = expand(periodicity, 2025)
        for start, end in spans(periodicity):
            assert sum(flags[start:end + 1]) == 1

    def test_quarterly_spans(self):
        assert spans(Periodicity.QUARTERLY) == [(0, 2), (3, 5), (6, 8), (9, 11)]
        assert span_length(Periodicity.QUARTERLY) == 3
