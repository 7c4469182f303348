"""Инициализация модуля сервисов."""

from .base_service import BaseService
from .goal_service import GoalService
from .profile_service import ProfileService
from .schedule_service import ScheduleService

__all__ = [
    "BaseService",
    "ProfileService",
    "ScheduleService",
    "GoalService",
]
