"""Инициализация модуля репозиториев."""

from .base_repository import BaseRepository
from .goal_repository import GoalRepository
from .mechanism_completion_repository import MechanismCompletionRepository
from .mechanism_repository import MechanismRepository
from .profile_repository import GenerationRepository, ProfileRepository
from .schedule_exception_repository import ScheduleExceptionRepository

__all__ = [
    "BaseRepository",
    "ProfileRepository",
    "GenerationRepository",
    "GoalRepository",
    "MechanismRepository",
    "ScheduleExceptionRepository",
    "MechanismCompletionRepository",
]
