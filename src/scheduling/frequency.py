"""
Развертывание правила повторения механизма в конкретные даты.

Дни недели задаются по ISO: понедельник = 1, воскресенье = 7.
"""

from datetime import date, timedelta
from enum import Enum

from .errors import ValidationError


class Frequency(str, Enum):
    """Частота выполнения механизма."""

    DAILY = "daily"
    TWICE_A_WEEK = "2x_week"
    THREE_TIMES_A_WEEK = "3x_week"
    FOUR_TIMES_A_WEEK = "4x_week"
    FIVE_TIMES_A_WEEK = "5x_week"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# Частоты, привязанные к фиксированным дням недели
WEEKDAY_RULES: dict[Frequency, frozenset[int]] = {
    Frequency.DAILY: frozenset(range(1, 8)),
    Frequency.TWICE_A_WEEK: frozenset({2, 4}),  # Вт, Чт
    Frequency.THREE_TIMES_A_WEEK: frozenset({1, 3, 5}),  # Пн, Ср, Пт
    Frequency.FOUR_TIMES_A_WEEK: frozenset({2, 3, 4, 5}),  # Вт–Пт
    Frequency.FIVE_TIMES_A_WEEK: frozenset({1, 2, 3, 4, 5}),  # Пн–Пт
    Frequency.WEEKLY: frozenset({5}),  # Пт
}

BIWEEKLY_INTERVAL_DAYS = 14


def parse_frequency(value: "Frequency | str") -> Frequency:
    """
    Преобразует строковое значение из хранилища в Frequency.

    Raises:
        ValidationError: Если частота неизвестна.
    """
    if isinstance(value, Frequency):
        return value

    try:
        return Frequency(value)
    except ValueError:
        raise ValidationError(
            message=f"Неизвестная частота механизма: '{value}'.",
            error_type="invalid_frequency",
        ) from None


def matches(frequency: Frequency, day: date, anchor: date) -> bool:
    """
    Проверяет, приходится ли вхождение механизма на дату `day`.

    Args:
        frequency (Frequency): Частота механизма.
        day (date): Проверяемая дата.
        anchor (date): Опорная дата (эффективное начало механизма).

    Returns:
        bool: True, если на эту дату ожидается выполнение.
    """
    weekdays = WEEKDAY_RULES.get(frequency)
    if weekdays is not None:
        return day.isoweekday() in weekdays

    if frequency is Frequency.BIWEEKLY:
        days_since_anchor = (day - anchor).days
        return days_since_anchor >= 0 and days_since_anchor % BIWEEKLY_INTERVAL_DAYS == 0

    if frequency is Frequency.MONTHLY:
        # Месяцы без такого числа (например, 31-го) пропускаются
        return day.day == anchor.day

    if frequency is Frequency.YEARLY:
        # Якорь 29 февраля срабатывает только в високосные годы
        return day.month == anchor.month and day.day == anchor.day

    raise ValidationError(message=f"Неподдерживаемая частота: '{frequency}'.", error_type="invalid_frequency")


def expand(
    frequency: "Frequency | str",
    start_date: date,
    end_date: date,
    anchor: date | None = None,
) -> list[date]:
    """
    Разворачивает правило повторения в список дат.

    Чистая функция: при одинаковых аргументах возвращает одинаковый результат.

    Args:
        frequency (Frequency | str): Частота механизма.
        start_date (date): Начало диапазона (включительно).
        end_date (date): Конец диапазона (включительно).
        anchor (date | None): Собственная дата начала механизма. Для biweekly/monthly/yearly
                              фаза считается от нее, а не от начала диапазона.
                              По умолчанию равна `start_date`.

    Returns:
        list[date]: Даты вхождений по возрастанию. Пустой список, если end_date < start_date.

    Raises:
        ValidationError: Если частота неизвестна.
    """
    frequency = parse_frequency(frequency)

    if end_date < start_date:
        return []

    anchor = anchor or start_date

    occurrences = []
    current = start_date
    while current <= end_date:
        if matches(frequency, current, anchor):
            occurrences.append(current)
        current += timedelta(days=1)

    return occurrences
