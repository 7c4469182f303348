from datetime import date
from uuid import uuid4

import pytest

from src.scheduling import (
    CompletionRecord,
    DateRange,
    ExceptionIndex,
    Frequency,
    InstanceKey,
    MechanismRecord,
    ScheduleExceptionRecord,
    ValidationError,
    group_by_effective_date,
    index_by_key,
    project,
    project_all,
    resolve,
)

USER_ID = uuid4()


@pytest.fixture
def mechanism() -> MechanismRecord:
    return MechanismRecord(
        id=uuid4(),
        goal_id=uuid4(),
        user_id=USER_ID,
        description="Чтение 20 страниц",
        frequency=Frequency.TWICE_A_WEEK,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
    )


def make_move(mechanism: MechanismRecord, original: date, moved_to: date) -> ScheduleExceptionRecord:
    return ScheduleExceptionRecord(
        mechanism_id=mechanism.id, user_id=USER_ID, original_date=original, moved_to_date=moved_to
    )


def test_resolve_without_exception_keeps_date(mechanism: MechanismRecord):
    resolved = resolve(mechanism.id, date(2024, 1, 2), [])

    assert resolved.effective_date == date(2024, 1, 2)
    assert resolved.is_exception is False


def test_resolve_uses_latest_exception_for_key(mechanism: MechanismRecord):
    index = ExceptionIndex(
        [
            make_move(mechanism, date(2024, 1, 2), date(2024, 1, 3)),
            make_move(mechanism, date(2024, 1, 2), date(2024, 1, 5)),
        ]
    )

    resolved = resolve(mechanism.id, date(2024, 1, 2), index)

    assert resolved.effective_date == date(2024, 1, 5)
    assert resolved.is_exception is True
    assert len(index) == 1


def test_record_move_overwrites_previous_move_of_same_occurrence(mechanism: MechanismRecord):
    index = ExceptionIndex()

    index.record_move(mechanism.id, USER_ID, date(2024, 1, 2), date(2024, 1, 3))
    latest = index.record_move(mechanism.id, USER_ID, date(2024, 1, 2), date(2024, 1, 6))

    assert index.records() == [latest]
    assert index.resolve(mechanism.id, date(2024, 1, 2)).effective_date == date(2024, 1, 6)


def test_project_lists_occurrences_in_range(mechanism: MechanismRecord):
    instances = project(mechanism, DateRange(start=date(2024, 1, 1), end=date(2024, 1, 14)))

    assert [instance.effective_date for instance in instances] == [
        date(2024, 1, 2),
        date(2024, 1, 4),
        date(2024, 1, 9),
        date(2024, 1, 11),
    ]
    assert all(not instance.is_exception and not instance.is_completed for instance in instances)


def test_project_applies_move_and_completion_on_effective_date(mechanism: MechanismRecord):
    moves = [make_move(mechanism, date(2024, 1, 2), date(2024, 1, 5))]
    completions = [
        CompletionRecord(mechanism_id=mechanism.id, user_id=USER_ID, completed_date=date(2024, 1, 5)),
    ]

    instances = project(mechanism, DateRange(start=date(2024, 1, 1), end=date(2024, 1, 7)), moves, completions)

    moved = index_by_key(instances)[InstanceKey(mechanism.id, date(2024, 1, 2))]
    assert moved.effective_date == date(2024, 1, 5)
    assert moved.is_exception is True
    assert moved.is_completed is True

    # Сортировка по фактической дате: 4-е раньше перенесенного на 5-е
    assert [instance.effective_date for instance in instances] == [date(2024, 1, 4), date(2024, 1, 5)]


def test_completion_on_stale_original_date_does_not_mark_moved_instance(mechanism: MechanismRecord):
    moves = [make_move(mechanism, date(2024, 1, 2), date(2024, 1, 5))]
    completions = [
        CompletionRecord(mechanism_id=mechanism.id, user_id=USER_ID, completed_date=date(2024, 1, 2)),
    ]

    instances = project(mechanism, DateRange(start=date(2024, 1, 1), end=date(2024, 1, 7)), moves, completions)
    moved = index_by_key(instances)[InstanceKey(mechanism.id, date(2024, 1, 2))]

    assert moved.effective_date == date(2024, 1, 5)
    assert moved.is_completed is False


def test_project_includes_occurrence_moved_into_range(mechanism: MechanismRecord):
    moves = [make_move(mechanism, date(2024, 1, 2), date(2024, 1, 10))]

    instances = project(mechanism, DateRange(start=date(2024, 1, 8), end=date(2024, 1, 12)), moves)

    assert [(instance.original_date, instance.effective_date) for instance in instances] == [
        (date(2024, 1, 9), date(2024, 1, 9)),
        (date(2024, 1, 2), date(2024, 1, 10)),
        (date(2024, 1, 11), date(2024, 1, 11)),
    ]


def test_project_skips_occurrence_moved_out_of_range(mechanism: MechanismRecord):
    moves = [make_move(mechanism, date(2024, 1, 4), date(2024, 1, 10))]

    instances = project(mechanism, DateRange(start=date(2024, 1, 1), end=date(2024, 1, 7)), moves)

    # Перенесенное вхождение видно только в ячейке своей фактической даты
    assert [instance.effective_date for instance in instances] == [date(2024, 1, 2)]
    assert set(group_by_effective_date(instances)) == {date(2024, 1, 2)}


def test_project_respects_mechanism_period(mechanism: MechanismRecord):
    instances = project(mechanism, DateRange(start=date(2024, 1, 25), end=date(2024, 2, 15)))

    assert [instance.effective_date for instance in instances] == [date(2024, 1, 25), date(2024, 1, 30)]


def test_mechanism_without_dates_uses_window():
    mechanism = MechanismRecord(
        id=uuid4(), goal_id=uuid4(), user_id=USER_ID, description="Медитация", frequency=Frequency.WEEKLY
    )
    window = DateRange(start=date(2024, 1, 10), end=date(2024, 1, 31))

    instances = project(mechanism, DateRange(start=date(2024, 1, 1), end=date(2024, 2, 29)), window=window)

    assert [instance.effective_date for instance in instances] == [
        date(2024, 1, 12),
        date(2024, 1, 19),
        date(2024, 1, 26),
    ]


def test_biweekly_phase_does_not_depend_on_viewed_range():
    """Двухнедельный механизм без дат привязан к началу окна, а не к началу просматриваемой недели."""
    mechanism = MechanismRecord(
        id=uuid4(), goal_id=uuid4(), user_id=USER_ID, description="Отчет куратору", frequency=Frequency.BIWEEKLY
    )
    window = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))
    weeks = [DateRange(start=date(2024, 1, day), end=date(2024, 1, day + 6)) for day in (1, 8, 15, 22)]

    by_week = [[instance.original_date for instance in project(mechanism, week, window=window)] for week in weeks]

    assert by_week == [[date(2024, 1, 1)], [], [date(2024, 1, 15)], []]


def test_mechanism_without_dates_and_window_is_rejected():
    mechanism = MechanismRecord(
        id=uuid4(), goal_id=uuid4(), user_id=USER_ID, description="Отчет куратору", frequency=Frequency.MONTHLY
    )

    with pytest.raises(ValidationError) as exc_info:
        project(mechanism, DateRange(start=date(2024, 1, 8), end=date(2024, 1, 14)))

    assert exc_info.value.error_type == "evaluation_window_undefined"


def test_instance_id_is_display_only(mechanism: MechanismRecord):
    [instance, *_] = project(mechanism, DateRange(start=date(2024, 1, 1), end=date(2024, 1, 7)))

    assert instance.instance_id == f"{mechanism.id}-2024-01-02"
    assert instance.key == InstanceKey(mechanism.id, date(2024, 1, 2))


def test_project_all_groups_into_calendar_cells(mechanism: MechanismRecord):
    other = mechanism.model_copy(
        update={"id": uuid4(), "description": "Бег", "frequency": Frequency.DAILY}
    )

    instances = project_all([mechanism, other], DateRange(start=date(2024, 1, 1), end=date(2024, 1, 3)))
    cells = group_by_effective_date(instances)

    assert len(instances) == 4
    assert [instance.mechanism_description for instance in cells[date(2024, 1, 2)]] == ["Бег", "Чтение 20 страниц"]
    assert len(cells[date(2024, 1, 1)]) == 1
