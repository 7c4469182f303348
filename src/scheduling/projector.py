"""
Проекция механизмов в экземпляры активностей для календаря.

Экземпляры не хранятся: это чистая функция от (механизм, диапазон, переносы, выполнения).
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, NamedTuple
from uuid import UUID

from pydantic import Field

from .completion_tracker import CompletionIndex
from .errors import ValidationError
from .exception_resolver import ExceptionIndex
from .frequency import expand, matches
from .types import CompletionRecord, DateRange, MechanismRecord, Record, ScheduleExceptionRecord


class InstanceKey(NamedTuple):
    """Составной ключ экземпляра активности."""

    mechanism_id: UUID
    original_date: date

    @property
    def instance_id(self) -> str:
        """Непрозрачный идентификатор для отображения. Обратно не разбирается."""
        return f"{self.mechanism_id}-{self.original_date.isoformat()}"


class ActivityInstance(Record):
    """Одно вхождение механизма, каким его видит календарь."""

    instance_id: str = Field(..., description="Непрозрачный идентификатор для UI")
    mechanism_id: UUID
    mechanism_description: str
    goal_id: UUID
    goal_description: str
    original_date: date = Field(..., description="Дата по правилу повторения")
    effective_date: date = Field(..., description="Фактическая дата с учетом переноса")
    is_exception: bool
    is_completed: bool

    @property
    def key(self) -> InstanceKey:
        return InstanceKey(self.mechanism_id, self.original_date)


def _as_exception_index(exceptions: ExceptionIndex | Iterable[ScheduleExceptionRecord]) -> ExceptionIndex:
    return exceptions if isinstance(exceptions, ExceptionIndex) else ExceptionIndex(exceptions)


def _as_completion_index(completions: CompletionIndex | Iterable[CompletionRecord]) -> CompletionIndex:
    return completions if isinstance(completions, CompletionIndex) else CompletionIndex(completions)


def project(
    mechanism: MechanismRecord,
    date_range: DateRange,
    exceptions: ExceptionIndex | Iterable[ScheduleExceptionRecord] = (),
    completions: CompletionIndex | Iterable[CompletionRecord] = (),
    window: DateRange | None = None,
) -> list[ActivityInstance]:
    """
    Строит экземпляры активностей механизма в диапазоне дат.

    В результат попадают вхождения, фактическая дата которых лежит в диапазоне:
    собственные вхождения диапазона и вхождения, перенесенные в него извне.
    Вхождение, перенесенное за пределы диапазона, в результат не попадает.
    Выполнение определяется по фактической дате вхождения.

    Args:
        mechanism (MechanismRecord): Механизм.
        date_range (DateRange): Отображаемый диапазон.
        exceptions: Переносы вхождений.
        completions: Выполнения.
        window (DateRange | None): Окно оценки, задающее границы и якорь механизма без
                                   собственных дат. Не зависит от отображаемого диапазона.

    Returns:
        list[ActivityInstance]: Экземпляры, отсортированные по фактической дате.

    Raises:
        ValidationError: Окно не задано, а у механизма нет собственных дат.
    """
    exception_index = _as_exception_index(exceptions)
    completion_index = _as_completion_index(completions)

    if window is None:
        if mechanism.start_date is None or mechanism.end_date is None:
            raise ValidationError(
                f"Не удалось определить период механизма ID {mechanism.id}: нет ни окна оценки, ни дат механизма.",
                "evaluation_window_undefined",
            )
        window = DateRange(start=mechanism.start_date, end=mechanism.end_date)

    period = mechanism.effective_period(window)
    visible = date_range.intersect(period)

    original_dates = set(expand(mechanism.frequency, visible.start, visible.end, anchor=period.start))

    # Вхождения, перенесенные в диапазон из-за его пределов
    for exception in exception_index.records():
        if (
            exception.mechanism_id == mechanism.id
            and exception.moved_to_date in date_range
            and exception.original_date in period
            and matches(mechanism.frequency, exception.original_date, period.start)
        ):
            original_dates.add(exception.original_date)

    instances = []
    for original_date in original_dates:
        resolved = exception_index.resolve(mechanism.id, original_date)
        if resolved.effective_date not in date_range:
            continue

        key = InstanceKey(mechanism.id, original_date)
        instances.append(
            ActivityInstance(
                instance_id=key.instance_id,
                mechanism_id=mechanism.id,
                mechanism_description=mechanism.description,
                goal_id=mechanism.goal_id,
                goal_description=mechanism.goal_description,
                original_date=original_date,
                effective_date=resolved.effective_date,
                is_exception=resolved.is_exception,
                is_completed=completion_index.is_completed(mechanism.id, resolved.effective_date),
            )
        )

    instances.sort(key=lambda instance: (instance.effective_date, instance.original_date))
    return instances


def project_all(
    mechanisms: Iterable[MechanismRecord],
    date_range: DateRange,
    exceptions: ExceptionIndex | Iterable[ScheduleExceptionRecord] = (),
    completions: CompletionIndex | Iterable[CompletionRecord] = (),
    window: DateRange | None = None,
) -> list[ActivityInstance]:
    """Проекция сразу для нескольких механизмов."""
    exception_index = _as_exception_index(exceptions)
    completion_index = _as_completion_index(completions)

    instances = []
    for mechanism in mechanisms:
        instances.extend(project(mechanism, date_range, exception_index, completion_index, window))

    instances.sort(key=lambda instance: (instance.effective_date, instance.mechanism_description, instance.original_date))
    return instances


def group_by_effective_date(instances: Iterable[ActivityInstance]) -> dict[date, list[ActivityInstance]]:
    """Группирует экземпляры по ячейкам календаря (фактическим датам)."""
    cells: dict[date, list[ActivityInstance]] = defaultdict(list)
    for instance in instances:
        cells[instance.effective_date].append(instance)
    return dict(cells)


def index_by_key(instances: Iterable[ActivityInstance]) -> dict[InstanceKey, ActivityInstance]:
    """Таблица поиска экземпляров по составному ключу."""
    return {instance.key: instance for instance in instances}
