"""Движок расписания и прогресса механизмов (чистые функции без ввода-вывода)."""

from .completion_tracker import CompletionIndex, is_completed
from .errors import (
    ConflictError,
    PermissionDenied,
    PersistenceUnavailable,
    PreconditionNotMet,
    SchedulingError,
    ValidationError,
)
from .exception_resolver import ExceptionIndex, ResolvedOccurrence, resolve
from .frequency import Frequency, expand, matches, parse_frequency
from .goal_gate import GoalState, can_access, complete_goal, is_supervisor, reopen_goal
from .progress import (
    GoalProgress,
    MechanismProgress,
    calculate_goal_progress,
    calculate_mechanism_progress,
    calculate_percentage,
)
from .projector import ActivityInstance, InstanceKey, group_by_effective_date, index_by_key, project, project_all
from .types import (
    ActorRecord,
    CompletionRecord,
    DateRange,
    GoalRecord,
    MechanismRecord,
    Role,
    ScheduleExceptionRecord,
)
from .windows import generation_window

__all__ = [
    "Frequency",
    "expand",
    "matches",
    "parse_frequency",
    "ExceptionIndex",
    "ResolvedOccurrence",
    "resolve",
    "CompletionIndex",
    "is_completed",
    "ActivityInstance",
    "InstanceKey",
    "project",
    "project_all",
    "group_by_effective_date",
    "index_by_key",
    "MechanismProgress",
    "GoalProgress",
    "calculate_mechanism_progress",
    "calculate_goal_progress",
    "calculate_percentage",
    "GoalState",
    "complete_goal",
    "reopen_goal",
    "is_supervisor",
    "can_access",
    "generation_window",
    "DateRange",
    "MechanismRecord",
    "ScheduleExceptionRecord",
    "CompletionRecord",
    "GoalRecord",
    "ActorRecord",
    "Role",
    "SchedulingError",
    "ValidationError",
    "ConflictError",
    "PersistenceUnavailable",
    "PermissionDenied",
    "PreconditionNotMet",
]
