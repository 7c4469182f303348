"""Учет выполнений механизмов по фактическим датам."""

from datetime import date
from typing import Iterable
from uuid import UUID

from .types import CompletionRecord


class CompletionIndex:
    """
    Множество выполнений с ключом (mechanism_id, completed_date).

    Операции установки идемпотентны: повторная отметка не создает дубликатов,
    повторное снятие отметки не является ошибкой.
    """

    def __init__(self, completions: Iterable[CompletionRecord] = ()):
        self._records: dict[tuple[UUID, date], CompletionRecord] = {}
        for completion in completions:
            self._records[(completion.mechanism_id, completion.completed_date)] = completion

    def is_completed(self, mechanism_id: UUID, effective_date: date) -> bool:
        return (mechanism_id, effective_date) in self._records

    def set_completed(self, mechanism_id: UUID, user_id: UUID, effective_date: date, value: bool) -> bool:
        """
        Устанавливает состояние выполнения.

        Returns:
            bool: True, если состояние изменилось.
        """
        key = (mechanism_id, effective_date)

        if value:
            if key in self._records:
                return False
            self._records[key] = CompletionRecord(
                mechanism_id=mechanism_id, user_id=user_id, completed_date=effective_date
            )
            return True

        return self._records.pop(key, None) is not None

    def dates_for(self, mechanism_id: UUID, since: date | None = None) -> list[date]:
        """Возвращает отсортированные даты выполнений механизма, начиная с `since`."""
        return sorted(
            completed_date
            for record_mechanism_id, completed_date in self._records
            if record_mechanism_id == mechanism_id and (since is None or completed_date >= since)
        )

    def records(self) -> list[CompletionRecord]:
        return list(self._records.values())

    def copy(self) -> "CompletionIndex":
        return CompletionIndex(self._records.values())

    def __len__(self) -> int:
        return len(self._records)


def is_completed(
    mechanism_id: UUID,
    effective_date: date,
    completions: CompletionIndex | Iterable[CompletionRecord],
) -> bool:
    """Проверяет, отмечено ли выполнение механизма на фактическую дату вхождения."""
    if not isinstance(completions, CompletionIndex):
        completions = CompletionIndex(completions)
    return completions.is_completed(mechanism_id, effective_date)
