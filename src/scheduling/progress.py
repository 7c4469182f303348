"""
Расчет прогресса механизмов и целей.

Выполнение засчитывается только на фактическую дату вхождения (с учетом переноса).
Отметки на устаревшую исходную дату и отметки до начала окна оценки не учитываются.
"""

import math
from datetime import date, timedelta
from typing import Iterable, Sequence
from uuid import UUID

from pydantic import Field

from .completion_tracker import CompletionIndex
from .exception_resolver import ExceptionIndex
from .frequency import expand
from .types import CompletionRecord, DateRange, GoalRecord, MechanismRecord, Record, ScheduleExceptionRecord

# Окно (в днях), по которому оценивается текущий темп выполнения
DEFAULT_PREDICTION_LOOKBACK_DAYS = 28


class MechanismProgress(Record):
    """Прогресс одного механизма."""

    mechanism_id: UUID
    goal_id: UUID
    total_expected: int = Field(..., ge=0)
    total_completed: int = Field(..., ge=0)
    percentage: int = Field(..., ge=0, description="Не ограничен сверху")
    current_streak: int = 0
    last_completion_date: date | None = None
    completion_prediction_days: int | None = Field(
        default=None, description="Прогноз дней до выполнения всех вхождений. None, если истории мало"
    )
    expected_until_today: int = 0
    progress_until_today: int = 0


class GoalProgress(Record):
    """Агрегированный прогресс цели."""

    goal_id: UUID
    percentage: int = Field(..., ge=0, description="Отображаемый процент (100 для завершенной цели)")
    live_percentage: int = Field(..., ge=0, description="Процент по механизмам")
    total_expected: int = 0
    total_completed: int = 0
    current_streak: int = 0
    last_completion_date: date | None = None
    completion_prediction_days: int | None = None
    progress_until_today: int = 0
    mechanisms_count: int = 0
    mechanisms_on_track: int = 0
    completed: bool = False
    completed_by_supervisor_id: UUID | None = None
    mechanisms: list[MechanismProgress] = Field(default_factory=list)


def round_half_up(value: float) -> int:
    """Округление до целого, где .5 всегда округляется вверх."""
    return int(math.floor(value + 0.5))


def calculate_percentage(completed: int, expected: int) -> int:
    """
    Процент выполнения.

    Возвращает 0, если ничего не ожидается. Значения больше 100 не обрезаются.
    """
    if expected <= 0:
        return 0
    return round_half_up(100 * completed / expected)


def _current_streak(occurrences: Sequence[date], completed: set[date], today: date) -> int:
    streak = 0
    for effective_date in sorted((day for day in occurrences if day <= today), reverse=True):
        if effective_date in completed:
            streak += 1
        elif effective_date == today:
            # Сегодняшнее вхождение еще можно выполнить, серию оно не прерывает
            continue
        else:
            break
    return streak


def _predict_days(counted: Sequence[date], remaining: int, today: date, lookback_days: int) -> int | None:
    if len(counted) < 2:
        return None

    if remaining <= 0:
        return 0

    recent = [day for day in counted if day >= today - timedelta(days=lookback_days)]
    if len(recent) < 2:
        recent = list(counted)

    span_days = (recent[-1] - recent[0]).days + 1
    velocity = len(recent) / span_days  # выполнений в день

    return math.ceil(remaining / velocity)


def calculate_mechanism_progress(
    mechanism: MechanismRecord,
    window: DateRange,
    exceptions: ExceptionIndex | Iterable[ScheduleExceptionRecord] = (),
    completions: CompletionIndex | Iterable[CompletionRecord] = (),
    today: date | None = None,
    lookback_days: int = DEFAULT_PREDICTION_LOOKBACK_DAYS,
) -> MechanismProgress:
    """
    Рассчитывает прогресс механизма в окне оценки.

    Args:
        mechanism (MechanismRecord): Механизм.
        window (DateRange): Окно оценки (например, период обучения потока).
        exceptions: Переносы вхождений.
        completions: Выполнения.
        today (date | None): Текущая дата. По умолчанию date.today().
        lookback_days (int): Сколько последних дней учитывать при оценке темпа.

    Returns:
        MechanismProgress: Прогресс механизма.
    """
    today = today or date.today()
    exception_index = exceptions if isinstance(exceptions, ExceptionIndex) else ExceptionIndex(exceptions)
    completion_index = completions if isinstance(completions, CompletionIndex) else CompletionIndex(completions)

    period = mechanism.effective_period(window)
    scope = period.intersect(window)

    original_dates = expand(mechanism.frequency, scope.start, scope.end, anchor=period.start)
    effective_dates = [exception_index.resolve(mechanism.id, day).effective_date for day in original_dates]

    effective_set = set(effective_dates)
    counted = [day for day in completion_index.dates_for(mechanism.id, since=window.start) if day in effective_set]
    counted_set = set(counted)

    total_expected = len(effective_dates)
    total_completed = len(counted)

    expected_until_today = sum(1 for day in effective_dates if day <= today)
    completed_until_today = sum(1 for day in counted if day <= today)

    if expected_until_today == 0 and completed_until_today > 0:
        # Пользователь опережает расписание
        progress_until_today = 100
    else:
        progress_until_today = calculate_percentage(completed_until_today, expected_until_today)

    return MechanismProgress(
        mechanism_id=mechanism.id,
        goal_id=mechanism.goal_id,
        total_expected=total_expected,
        total_completed=total_completed,
        percentage=calculate_percentage(total_completed, total_expected),
        current_streak=_current_streak(effective_dates, counted_set, today),
        last_completion_date=counted[-1] if counted else None,
        completion_prediction_days=_predict_days(counted, total_expected - total_completed, today, lookback_days),
        expected_until_today=expected_until_today,
        progress_until_today=progress_until_today,
    )


def calculate_goal_progress(goal: GoalRecord, mechanisms: Sequence[MechanismProgress]) -> GoalProgress:
    """
    Агрегирует прогресс механизмов цели.

    Процент цели равен среднему процентов механизмов. Если цель завершена
    руководителем (completed = True), отображаемый процент всегда 100.

    Args:
        goal (GoalRecord): Цель.
        mechanisms (Sequence[MechanismProgress]): Прогресс механизмов цели.

    Returns:
        GoalProgress: Прогресс цели.
    """
    count = len(mechanisms)

    if count:
        live_percentage = round_half_up(sum(item.percentage for item in mechanisms) / count)
        progress_until_today = round_half_up(sum(item.progress_until_today for item in mechanisms) / count)
        current_streak = min(item.current_streak for item in mechanisms)
    else:
        live_percentage = progress_until_today = current_streak = 0

    completion_dates = [item.last_completion_date for item in mechanisms if item.last_completion_date]
    predictions = [item.completion_prediction_days for item in mechanisms if item.completion_prediction_days is not None]

    if goal.completed:
        prediction = 0
    else:
        # Цель выполнена, когда выполнен самый медленный механизм
        prediction = max(predictions) if predictions else None

    return GoalProgress(
        goal_id=goal.id,
        percentage=100 if goal.completed else live_percentage,
        live_percentage=live_percentage,
        total_expected=sum(item.total_expected for item in mechanisms),
        total_completed=sum(item.total_completed for item in mechanisms),
        current_streak=current_streak,
        last_completion_date=max(completion_dates) if completion_dates else None,
        completion_prediction_days=prediction,
        progress_until_today=progress_until_today,
        mechanisms_count=count,
        mechanisms_on_track=round_half_up(progress_until_today / 100 * count),
        completed=goal.completed,
        completed_by_supervisor_id=goal.completed_by_supervisor_id,
        mechanisms=list(mechanisms),
    )
