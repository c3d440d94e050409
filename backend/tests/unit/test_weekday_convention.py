from datetime import date

import pytest

from availability_engine.core.exceptions import ValidationException
from availability_engine.utils.weekday import (
    WeekdayConvention,
    from_sunday_first,
    sunday_index,
    to_sunday_first,
    week_dates,
    week_start_sunday,
)


def test_sunday_index():
    assert sunday_index(date(2030, 1, 6)) == 0  # Sunday
    assert sunday_index(date(2030, 1, 7)) == 1  # Monday
    assert sunday_index(date(2030, 1, 12)) == 6  # Saturday


def test_monday_first_conversion():
    assert to_sunday_first(0, WeekdayConvention.MONDAY_FIRST) == 1
    assert to_sunday_first(6, WeekdayConvention.MONDAY_FIRST) == 0
    assert from_sunday_first(0, WeekdayConvention.MONDAY_FIRST) == 6
    for index in range(7):
        assert from_sunday_first(to_sunday_first(index, WeekdayConvention.MONDAY_FIRST), WeekdayConvention.MONDAY_FIRST) == index
        assert to_sunday_first(index, WeekdayConvention.SUNDAY_FIRST) == index


@pytest.mark.parametrize("bad", [-1, 7, True])
def test_conversion_rejects_invalid_index(bad):
    with pytest.raises(ValidationException):
        to_sunday_first(bad, WeekdayConvention.MONDAY_FIRST)


def test_week_helpers():
    assert week_start_sunday(date(2030, 1, 9)) == date(2030, 1, 6)
    assert week_start_sunday(date(2030, 1, 6)) == date(2030, 1, 6)
    dates = week_dates(date(2030, 1, 6))
    assert dates[0] == date(2030, 1, 6)
    assert dates[-1] == date(2030, 1, 12)
    assert len(dates) == 7
