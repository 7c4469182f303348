"""Окно оценки механизмов по датам обучения потока."""

from datetime import date, timedelta

from .errors import ValidationError
from .types import DateRange

# Механизмы начинаются через 9 дней после PL1 и заканчиваются за 7 дней до PL3
DEFAULT_START_OFFSET_DAYS = 9
DEFAULT_END_OFFSET_DAYS = 7


def generation_window(
    pl1_training_date: date,
    pl3_training_date: date,
    start_offset_days: int = DEFAULT_START_OFFSET_DAYS,
    end_offset_days: int = DEFAULT_END_OFFSET_DAYS,
) -> DateRange:
    """
    Рассчитывает период выполнения механизмов для потока.

    Args:
        pl1_training_date (date): Дата первого тренинга (PL1).
        pl3_training_date (date): Дата третьего тренинга (PL3).
        start_offset_days (int): Отступ от PL1 до начала механизмов.
        end_offset_days (int): Отступ от окончания механизмов до PL3.

    Returns:
        DateRange: Окно [PL1 + start_offset, PL3 - end_offset].

    Raises:
        ValidationError: Если окно получается пустым.
    """
    window = DateRange(
        start=pl1_training_date + timedelta(days=start_offset_days),
        end=pl3_training_date - timedelta(days=end_offset_days),
    )

    if window.is_empty:
        raise ValidationError(
            message=f"Некорректные даты тренингов потока: окно {window.start} - {window.end} пустое.",
            error_type="invalid_generation_window",
        )

    return window
