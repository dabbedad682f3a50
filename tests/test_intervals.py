#!/usr/bin/env python3
"""Tests for calendar-day interval helpers."""

from datetime import date, datetime

import pytest

from fleetcore import InvalidDateKind, as_date, check_window, normalize_day, overlaps


class TestAsDate:
    """Tests for as_date."""

    def test_date_unchanged(self):
        assert as_date(date(2024, 6, 3)) == date(2024, 6, 3)

    def test_datetime_drops_time(self):
        assert as_date(datetime(2024, 6, 3, 23, 59)) == date(2024, 6, 3)

    def test_iso_string(self):
        assert as_date("2024-06-03") == date(2024, 6, 3)

    def test_iso_timestamp_keeps_written_day(self):
        """Offsets are not converted: the day as written is the day."""
        assert as_date("2024-06-03T23:30:00-03:00") == date(2024, 6, 3)
        assert as_date("2024-06-03T00:30:00+09:00") == date(2024, 6, 3)

    def test_other_types_rejected(self):
        with pytest.raises(TypeError):
            as_date(20240603)


class TestNormalizeDay:
    """Tests for normalize_day."""

    def test_midday(self):
        assert normalize_day("2024-06-03") == datetime(2024, 6, 3, 12, 0)

    def test_same_day_any_time_is_equal(self):
        assert normalize_day(datetime(2024, 6, 3, 0, 5)) == normalize_day(
            datetime(2024, 6, 3, 23, 55)
        )


class TestCheckWindow:
    """Tests for check_window."""

    def test_single_day_ok(self):
        check_window("2024-06-03", "2024-06-03")

    def test_range_ok(self):
        check_window(date(2024, 6, 3), date(2024, 6, 7))

    def test_start_after_end_raises(self):
        with pytest.raises(InvalidDateKind) as exc:
            check_window("2024-06-07", "2024-06-03")
        assert "2024-06-07" in str(exc.value)


class TestOverlaps:
    """Tests for overlaps (closed day ranges)."""

    def test_adjacent_ranges_do_not_overlap(self):
        assert overlaps("2024-06-01", "2024-06-03", "2024-06-04", "2024-06-05") is False
        assert overlaps("2024-06-04", "2024-06-05", "2024-06-01", "2024-06-03") is False

    def test_shared_boundary_day_overlaps(self):
        assert overlaps("2024-06-01", "2024-06-03", "2024-06-03", "2024-06-05") is True

    def test_contained_range_overlaps(self):
        assert overlaps("2024-06-01", "2024-06-30", "2024-06-10", "2024-06-12") is True

    def test_same_single_day_overlaps(self):
        assert overlaps("2024-06-03", "2024-06-03", "2024-06-03", "2024-06-03") is True

    def test_different_single_days_do_not_overlap(self):
        assert overlaps("2024-06-03", "2024-06-03", "2024-06-04", "2024-06-04") is False

    def test_mixed_input_types(self):
        assert overlaps(
            datetime(2024, 6, 3, 8, 0), date(2024, 6, 3), "2024-06-03T18:00:00", "2024-06-04"
        ) is True

    def test_symmetric(self):
        a = ("2024-06-01", "2024-06-05")
        b = ("2024-06-05", "2024-06-09")
        assert overlaps(*a, *b) == overlaps(*b, *a)

    def test_invalid_window_raises(self):
        with pytest.raises(InvalidDateKind):
            overlaps("2024-06-05", "2024-06-01", "2024-06-01", "2024-06-02")
