from datetime import date, timedelta
from uuid import uuid4

from src.scheduling import (
    CompletionRecord,
    DateRange,
    Frequency,
    GoalRecord,
    MechanismRecord,
    ScheduleExceptionRecord,
    calculate_goal_progress,
    calculate_mechanism_progress,
    calculate_percentage,
)

USER_ID = uuid4()
GOAL_ID = uuid4()


def make_mechanism(frequency: Frequency, start: date, end: date) -> MechanismRecord:
    return MechanismRecord(
        id=uuid4(),
        goal_id=GOAL_ID,
        user_id=USER_ID,
        description="Механизм",
        frequency=frequency,
        start_date=start,
        end_date=end,
    )


def completions_on(mechanism: MechanismRecord, *days: date) -> list[CompletionRecord]:
    return [CompletionRecord(mechanism_id=mechanism.id, user_id=USER_ID, completed_date=day) for day in days]


def test_daily_mechanism_with_six_of_ten_completions():
    mechanism = make_mechanism(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 10))
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))
    completions = completions_on(mechanism, *(date(2024, 1, day) for day in (1, 2, 3, 5, 8, 9)))

    progress = calculate_mechanism_progress(mechanism, window, completions=completions, today=date(2024, 1, 10))

    assert progress.total_expected == 10
    assert progress.total_completed == 6
    assert progress.percentage == 60
    assert progress.last_completion_date == date(2024, 1, 9)
    assert progress.expected_until_today == 10
    assert progress.progress_until_today == 60


def test_twice_a_week_expected_occurrences():
    mechanism = make_mechanism(Frequency.TWICE_A_WEEK, date(2024, 1, 1), date(2024, 1, 14))
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 14))

    progress = calculate_mechanism_progress(mechanism, window, today=date(2024, 1, 14))

    assert progress.total_expected == 4
    assert progress.total_completed == 0
    assert progress.percentage == 0


def test_completion_counts_only_on_effective_date():
    mechanism = make_mechanism(Frequency.TWICE_A_WEEK, date(2024, 1, 1), date(2024, 1, 14))
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 14))
    moves = [
        ScheduleExceptionRecord(
            mechanism_id=mechanism.id, user_id=USER_ID, original_date=date(2024, 1, 2), moved_to_date=date(2024, 1, 5)
        )
    ]

    on_new_date = calculate_mechanism_progress(
        mechanism, window, moves, completions_on(mechanism, date(2024, 1, 5)), today=date(2024, 1, 14)
    )
    on_stale_date = calculate_mechanism_progress(
        mechanism, window, moves, completions_on(mechanism, date(2024, 1, 2)), today=date(2024, 1, 14)
    )

    assert on_new_date.total_expected == 4
    assert on_new_date.total_completed == 1
    assert on_new_date.percentage == 25
    assert on_stale_date.total_completed == 0
    assert on_stale_date.percentage == 0


def test_nothing_expected_gives_zero_percent():
    # С понедельника по четверг пятниц нет
    mechanism = make_mechanism(Frequency.WEEKLY, date(2024, 1, 1), date(2024, 1, 4))
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 4))

    progress = calculate_mechanism_progress(mechanism, window, today=date(2024, 1, 4))

    assert progress.total_expected == 0
    assert progress.percentage == 0
    assert progress.progress_until_today == 0
    assert progress.completion_prediction_days is None
    assert calculate_percentage(5, 0) == 0


def test_completions_before_window_are_ignored():
    mechanism = make_mechanism(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 10))
    window = DateRange(start=date(2024, 1, 5), end=date(2024, 1, 10))

    progress = calculate_mechanism_progress(
        mechanism, window, completions=completions_on(mechanism, date(2024, 1, 2), date(2024, 1, 6)),
        today=date(2024, 1, 10),
    )

    assert progress.total_expected == 6
    assert progress.total_completed == 1


def test_streak_is_not_broken_by_open_occurrence_today():
    mechanism = make_mechanism(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 10))
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))
    completions = completions_on(mechanism, date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4))

    open_today = calculate_mechanism_progress(mechanism, window, completions=completions, today=date(2024, 1, 5))
    missed_yesterday = calculate_mechanism_progress(mechanism, window, completions=completions, today=date(2024, 1, 6))

    assert open_today.current_streak == 3
    assert missed_yesterday.current_streak == 0


def test_prediction_uses_recent_pace():
    mechanism = make_mechanism(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 10))
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))
    completions = completions_on(mechanism, *(date(2024, 1, 1) + timedelta(days=offset) for offset in range(4)))

    progress = calculate_mechanism_progress(mechanism, window, completions=completions, today=date(2024, 1, 4))

    # Темп 1 выполнение в день, осталось 6 вхождений
    assert progress.completion_prediction_days == 6


def test_prediction_needs_at_least_two_completions():
    mechanism = make_mechanism(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 10))
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))

    progress = calculate_mechanism_progress(
        mechanism, window, completions=completions_on(mechanism, date(2024, 1, 1)), today=date(2024, 1, 4)
    )

    assert progress.completion_prediction_days is None


def test_goal_progress_is_average_of_mechanisms():
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))
    full = make_mechanism(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 2))
    half = make_mechanism(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 4))
    completions = completions_on(full, date(2024, 1, 1), date(2024, 1, 2)) + completions_on(
        half, date(2024, 1, 1), date(2024, 1, 2)
    )
    goal = GoalRecord(id=GOAL_ID, user_id=USER_ID, description="Цель", category="Здоровье")

    mechanisms = [
        calculate_mechanism_progress(item, window, completions=completions, today=date(2024, 1, 10))
        for item in (full, half)
    ]
    progress = calculate_goal_progress(goal, mechanisms)

    assert [item.percentage for item in mechanisms] == [100, 50]
    assert progress.percentage == 75
    assert progress.live_percentage == 75
    assert progress.total_expected == 6
    assert progress.total_completed == 4
    assert progress.mechanisms_count == 2
    assert progress.last_completion_date == date(2024, 1, 2)


def test_completed_goal_always_shows_full_progress():
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 10))
    mechanism = make_mechanism(Frequency.DAILY, date(2024, 1, 1), date(2024, 1, 10))
    goal = GoalRecord(id=GOAL_ID, user_id=USER_ID, completed=True, completed_by_supervisor_id=uuid4())

    progress = calculate_goal_progress(
        goal, [calculate_mechanism_progress(mechanism, window, today=date(2024, 1, 10))]
    )

    assert progress.percentage == 100
    assert progress.live_percentage == 0
    assert progress.completion_prediction_days == 0


def test_goal_without_mechanisms_has_zero_progress():
    goal = GoalRecord(id=GOAL_ID, user_id=USER_ID)

    progress = calculate_goal_progress(goal, [])

    assert progress.percentage == 0
    assert progress.mechanisms_count == 0
    assert progress.completion_prediction_days is None
