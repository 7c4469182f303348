"""Инициализация модуля схем Pydantic."""

from .auth_schema import TokenPayload
from .base_schema import BaseSchema
from .goal_schema import GoalSchemaBase, GoalSchemaCreate, GoalSchemaRead, GoalSchemaUpdate
from .mechanism_schema import (
    CalendarSchemaRead,
    MechanismCompletionSchemaCreate,
    MechanismCompletionSchemaRead,
    MechanismCompletionSchemaStatus,
    MechanismSchemaBase,
    MechanismSchemaCreate,
    MechanismSchemaRead,
    MechanismSchemaUpdate,
    ScheduleExceptionSchemaCreate,
    ScheduleExceptionSchemaRead,
    ScheduleExceptionSchemaUpdate,
    ScheduleExceptionSchemaUpsert,
)
from .profile_schema import (
    GenerationSchemaCreate,
    GenerationSchemaUpdate,
    GenerationWindowSchemaRead,
    ProfileSchemaBase,
    ProfileSchemaCreate,
    ProfileSchemaRead,
    ProfileSchemaUpdate,
)

__all__ = [
    "BaseSchema",
    "TokenPayload",
    "ProfileSchemaBase",
    "ProfileSchemaCreate",
    "ProfileSchemaRead",
    "ProfileSchemaUpdate",
    "GenerationSchemaCreate",
    "GenerationSchemaUpdate",
    "GenerationWindowSchemaRead",
    "GoalSchemaBase",
    "GoalSchemaCreate",
    "GoalSchemaRead",
    "GoalSchemaUpdate",
    "MechanismSchemaBase",
    "MechanismSchemaCreate",
    "MechanismSchemaRead",
    "MechanismSchemaUpdate",
    "ScheduleExceptionSchemaCreate",
    "ScheduleExceptionSchemaRead",
    "ScheduleExceptionSchemaUpdate",
    "ScheduleExceptionSchemaUpsert",
    "MechanismCompletionSchemaCreate",
    "MechanismCompletionSchemaRead",
    "MechanismCompletionSchemaStatus",
    "CalendarSchemaRead",
]
