from datetime import date

import pytest

from src.scheduling import Frequency, ValidationError, expand, generation_window, parse_frequency


def test_daily_covers_every_day():
    occurrences = expand(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 10))

    assert len(occurrences) == 10
    assert occurrences[0] == date(2024, 1, 1)
    assert occurrences[-1] == date(2024, 1, 10)


def test_twice_a_week_falls_on_tuesday_and_thursday():
    """2x_week: вторник и четверг."""
    occurrences = expand("2x_week", date(2024, 1, 1), date(2024, 1, 14))

    assert occurrences == [date(2024, 1, 2), date(2024, 1, 4), date(2024, 1, 9), date(2024, 1, 11)]


@pytest.mark.parametrize(
    ("frequency", "weekdays"),
    [
        (Frequency.THREE_TIMES_A_WEEK, {1, 3, 5}),
        (Frequency.FOUR_TIMES_A_WEEK, {2, 3, 4, 5}),
        (Frequency.FIVE_TIMES_A_WEEK, {1, 2, 3, 4, 5}),
        (Frequency.WEEKLY, {5}),
    ],
)
def test_weekday_frequencies(frequency: Frequency, weekdays: set[int]):
    occurrences = expand(frequency, date(2024, 1, 1), date(2024, 1, 28))

    assert {day.isoweekday() for day in occurrences} == weekdays
    assert len(occurrences) == 4 * len(weekdays)


def test_biweekly_is_anchored_to_mechanism_start():
    """Фаза biweekly считается от начала механизма, а не от начала диапазона."""
    occurrences = expand(Frequency.BIWEEKLY, date(2024, 1, 10), date(2024, 2, 10), anchor=date(2024, 1, 3))

    assert occurrences == [date(2024, 1, 17), date(2024, 1, 31)]


def test_monthly_skips_months_without_anchor_day():
    occurrences = expand(Frequency.MONTHLY, date(2024, 1, 31), date(2024, 5, 31))

    assert occurrences == [date(2024, 1, 31), date(2024, 3, 31), date(2024, 5, 31)]


def test_yearly_on_leap_day_only_in_leap_years():
    occurrences = expand(Frequency.YEARLY, date(2024, 2, 29), date(2029, 1, 1))

    assert occurrences == [date(2024, 2, 29), date(2028, 2, 29)]


def test_empty_range_gives_no_occurrences():
    assert expand(Frequency.DAILY, date(2024, 1, 10), date(2024, 1, 1)) == []


def test_expand_is_deterministic():
    first = expand(Frequency.THREE_TIMES_A_WEEK, date(2024, 1, 1), date(2024, 3, 1))
    second = expand(Frequency.THREE_TIMES_A_WEEK, date(2024, 1, 1), date(2024, 3, 1))

    assert first == second


def test_unknown_frequency_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        parse_frequency("every_other_full_moon")

    assert exc_info.value.error_type == "invalid_frequency"


def test_generation_window_offsets():
    window = generation_window(date(2024, 1, 1), date(2024, 3, 15))

    assert window.start == date(2024, 1, 10)
    assert window.end == date(2024, 3, 8)


def test_generation_window_rejects_inverted_dates():
    with pytest.raises(ValidationError) as exc_info:
        generation_window(date(2024, 3, 1), date(2024, 3, 5))

    assert exc_info.value.error_type == "invalid_generation_window"
