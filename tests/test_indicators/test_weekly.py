"""Tests for weekly closing-price extraction.

Covers the Monday-carries-previous-week rule, the Sunday fallback for the
still-forming week, incomplete weeks, validation, and deduplication.
"""

import math
from datetime import date, timedelta

import pytest

from bmsb.exceptions import InvalidPriceData
from bmsb.indicators.models import DailyPricePoint, WeeklyClosingPoint
from bmsb.indicators.weekly import (
    deduplicate_daily_prices,
    extract_weekly_closes,
    week_start_of,
)

SUNDAY = date(2024, 1, 7)
MONDAY = date(2024, 1, 8)


def _points(*pairs: tuple[date, float]) -> list[DailyPricePoint]:
    return [DailyPricePoint(date=d, close=p) for d, p in pairs]


class TestWeekStartOf:
    """Tests for ISO week start computation."""

    def test_monday_is_its_own_week_start(self) -> None:
        assert week_start_of(MONDAY) == MONDAY

    def test_sunday_belongs_to_preceding_monday(self) -> None:
        assert week_start_of(SUNDAY) == date(2024, 1, 1)

    def test_midweek(self) -> None:
        assert week_start_of(date(2024, 1, 10)) == MONDAY


class TestSundayOnlySeries:
    """A series of Sunday points maps one-to-one onto weekly closes."""

    def test_weekly_series_equals_sunday_prices(self) -> None:
        prices = [10.0, 11.5, 9.25, 12.0, 13.75]
        daily = [
            DailyPricePoint(date=SUNDAY + timedelta(weeks=i), close=p)
            for i, p in enumerate(prices)
        ]

        weekly = extract_weekly_closes(daily)

        assert [w.price for w in weekly] == prices
        assert [w.week_start for w in weekly] == [
            SUNDAY - timedelta(days=6) + timedelta(weeks=i) for i in range(5)
        ]


class TestMondayOnlySeries:
    """Each Monday carries the close of the previous calendar week."""

    def test_monday_price_closes_prior_week(self) -> None:
        prices = [20.0, 21.0, 19.5]
        daily = [
            DailyPricePoint(date=MONDAY + timedelta(weeks=i), close=p)
            for i, p in enumerate(prices)
        ]

        weekly = extract_weekly_closes(daily)

        assert weekly == [
            WeeklyClosingPoint(week_start=MONDAY - timedelta(days=7) + timedelta(weeks=i), price=p)
            for i, p in enumerate(prices)
        ]


class TestContinuousDailySeries:
    """Full daily series: only Monday data closes weeks, except a trailing Sunday."""

    def test_incomplete_current_week_is_dropped(self, daily_series) -> None:  # type: ignore[no-untyped-def]
        # Mon 2024-01-01 .. Wed 2024-01-17
        daily = daily_series(17)

        weekly = extract_weekly_closes(daily)

        assert [w.week_start for w in weekly] == [
            date(2023, 12, 25),
            date(2024, 1, 1),
            date(2024, 1, 8),
        ]
        # Closes are the Monday (opening) prices of the following week
        assert [w.price for w in weekly] == [100.0, 107.0, 114.0]

    def test_trailing_sunday_closes_current_week(self, daily_series) -> None:  # type: ignore[no-untyped-def]
        # Mon 2024-01-01 .. Sun 2024-01-14
        daily = daily_series(14)

        weekly = extract_weekly_closes(daily)

        assert weekly[-1] == WeeklyClosingPoint(week_start=date(2024, 1, 8), price=113.0)
        assert len(weekly) == 3

    def test_earlier_sundays_do_not_override_monday(self, daily_series) -> None:  # type: ignore[no-untyped-def]
        daily = daily_series(14)

        weekly = extract_weekly_closes(daily)

        # Week of 2024-01-01 is closed by Monday 2024-01-08 (107), not Sunday 01-07 (106)
        week = next(w for w in weekly if w.week_start == date(2024, 1, 1))
        assert week.price == 107.0

    def test_monday_takes_precedence_over_sunday(self) -> None:
        daily = _points((SUNDAY, 50.0), (MONDAY, 60.0))

        weekly = extract_weekly_closes(daily)

        assert weekly == [WeeklyClosingPoint(week_start=date(2024, 1, 1), price=60.0)]

    def test_weekday_only_series_yields_nothing(self) -> None:
        daily = _points((date(2024, 1, 9), 1.0), (date(2024, 1, 10), 2.0))
        assert extract_weekly_closes(daily) == []

    def test_empty_input(self) -> None:
        assert extract_weekly_closes([]) == []

    def test_output_sorted_and_unique(self) -> None:
        daily = _points(
            (MONDAY + timedelta(weeks=2), 3.0),
            (MONDAY, 1.0),
            (MONDAY + timedelta(weeks=1), 2.0),
        )

        weekly = extract_weekly_closes(daily)

        starts = [w.week_start for w in weekly]
        assert starts == sorted(starts)
        assert len(set(starts)) == len(starts)
        assert [w.price for w in weekly] == [1.0, 2.0, 3.0]


class TestValidation:
    """Non-positive and non-finite prices are rejected."""

    @pytest.mark.parametrize("bad", [0.0, -1.0, math.nan, math.inf, -math.inf])
    def test_invalid_price_raises(self, bad: float) -> None:
        daily = _points((SUNDAY, 10.0), (MONDAY, bad))

        with pytest.raises(InvalidPriceData) as exc_info:
            extract_weekly_closes(daily)

        assert exc_info.value.date == MONDAY

    def test_invalid_weekday_price_also_rejected(self) -> None:
        """Validation covers every point, not just the ones that become closes."""
        daily = _points((date(2024, 1, 10), -5.0))

        with pytest.raises(InvalidPriceData):
            extract_weekly_closes(daily)


class TestDeduplicateDailyPrices:
    """Tests for keep-last deduplication."""

    def test_keeps_last_point_per_date(self) -> None:
        daily = _points((MONDAY, 1.0), (SUNDAY, 5.0), (MONDAY, 2.0))

        result = deduplicate_daily_prices(daily)

        assert result == _points((SUNDAY, 5.0), (MONDAY, 2.0))

    def test_empty(self) -> None:
        assert deduplicate_daily_prices([]) == []
