"""Определение фактической даты вхождения с учетом переносов."""

from datetime import date
from typing import Iterable, NamedTuple
from uuid import UUID

from .types import ScheduleExceptionRecord


class ResolvedOccurrence(NamedTuple):
    """Фактическая дата вхождения и признак переноса."""

    effective_date: date
    is_exception: bool


class ExceptionIndex:
    """
    Индекс переносов по ключу (mechanism_id, original_date).

    Для одного ключа хранится только один перенос: более поздняя запись
    во входной последовательности перезаписывает предыдущую.
    """

    def __init__(self, exceptions: Iterable[ScheduleExceptionRecord] = ()):
        self._moves: dict[tuple[UUID, date], ScheduleExceptionRecord] = {}
        for exception in exceptions:
            self.put(exception)

    def put(self, exception: ScheduleExceptionRecord) -> None:
        self._moves[(exception.mechanism_id, exception.original_date)] = exception

    def record_move(
        self, mechanism_id: UUID, user_id: UUID, original_date: date, new_date: date
    ) -> ScheduleExceptionRecord:
        """
        Записывает перенос вхождения.

        Это upsert по ключу (mechanism_id, original_date): повторный перенос
        того же вхождения заменяет новую дату, а не добавляет вторую запись.
        """
        record = ScheduleExceptionRecord(
            mechanism_id=mechanism_id, user_id=user_id, original_date=original_date, moved_to_date=new_date
        )
        self.put(record)
        return record

    def get(self, mechanism_id: UUID, original_date: date) -> ScheduleExceptionRecord | None:
        return self._moves.get((mechanism_id, original_date))

    def discard(self, mechanism_id: UUID, original_date: date) -> None:
        self._moves.pop((mechanism_id, original_date), None)

    def copy(self) -> "ExceptionIndex":
        return ExceptionIndex(self._moves.values())

    def resolve(self, mechanism_id: UUID, occurrence_date: date) -> ResolvedOccurrence:
        exception = self.get(mechanism_id, occurrence_date)
        if exception is None:
            return ResolvedOccurrence(effective_date=occurrence_date, is_exception=False)
        return ResolvedOccurrence(effective_date=exception.moved_to_date, is_exception=True)

    def records(self) -> list[ScheduleExceptionRecord]:
        return list(self._moves.values())

    def __len__(self) -> int:
        return len(self._moves)


def resolve(
    mechanism_id: UUID,
    occurrence_date: date,
    exceptions: ExceptionIndex | Iterable[ScheduleExceptionRecord],
) -> ResolvedOccurrence:
    """
    Возвращает фактическую дату вхождения.

    Если для (mechanism_id, occurrence_date) есть перенос, фактической датой
    становится moved_to_date и is_exception = True. Иначе дата не меняется.

    Args:
        mechanism_id (UUID): ID механизма.
        occurrence_date (date): Исходная (рассчитанная по правилу) дата вхождения.
        exceptions (ExceptionIndex | Iterable[ScheduleExceptionRecord]): Переносы.

    Returns:
        ResolvedOccurrence: Фактическая дата и признак переноса.
    """
    if not isinstance(exceptions, ExceptionIndex):
        exceptions = ExceptionIndex(exceptions)
    return exceptions.resolve(mechanism_id, occurrence_date)
