"""
Завершение цели руководителем.

Состояния: in_progress -> completed (и обратно при переоткрытии).
Завершить цель может только руководитель владельца и только при прогрессе 100%.
"""

from enum import Enum

from .errors import PermissionDenied, PreconditionNotMet
from .types import ActorRecord, GoalRecord, Role

# Роли, которые могут руководить лидерами
SUPERVISOR_ROLES = frozenset({Role.SENIOR, Role.MASTER_SENIOR})


class GoalState(str, Enum):
    """Состояние цели."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def goal_state(goal: GoalRecord) -> GoalState:
    return GoalState.COMPLETED if goal.completed else GoalState.IN_PROGRESS


def is_supervisor(actor: ActorRecord, owner: ActorRecord) -> bool:
    """
    Проверяет, руководит ли `actor` пользователем `owner`.

    Администратор руководит всеми. Senior и master_senior руководят
    пользователями, у которых они назначены руководителем.
    """
    if actor.role is Role.ADMIN:
        return True

    return actor.role in SUPERVISOR_ROLES and owner.supervisor_id == actor.id


def can_access(actor: ActorRecord, owner: ActorRecord) -> bool:
    """Доступ к данным пользователя: свои данные или данные подопечного."""
    return actor.id == owner.id or is_supervisor(actor, owner)


def complete_goal(goal: GoalRecord, live_percentage: int, actor: ActorRecord, owner: ActorRecord) -> GoalRecord:
    """
    Переводит цель в состояние completed.

    Сначала проверяется прогресс, затем права, поэтому цель ниже 100%
    всегда дает PreconditionNotMet, независимо от роли.

    Args:
        goal (GoalRecord): Цель.
        live_percentage (int): Текущий процент по механизмам.
        actor (ActorRecord): Кто завершает цель.
        owner (ActorRecord): Владелец цели.

    Returns:
        GoalRecord: Новое состояние цели.

    Raises:
        PreconditionNotMet: Цель уже завершена или прогресс ниже 100%.
        PermissionDenied: Пользователь не является руководителем владельца цели.
    """
    if goal_state(goal) is GoalState.COMPLETED:
        raise PreconditionNotMet(message="Цель уже завершена.", error_type="goal_already_completed")

    if live_percentage < 100:
        raise PreconditionNotMet(
            message=f"Цель еще не выполнена на 100% (текущий прогресс: {live_percentage}%).",
            error_type="goal_progress_incomplete",
        )

    if not is_supervisor(actor, owner):
        raise PermissionDenied(
            message="Только руководитель может отметить цель как выполненную.",
            error_type="goal_completion_forbidden",
        )

    return goal.model_copy(update={"completed": True, "completed_by_supervisor_id": actor.id})


def reopen_goal(goal: GoalRecord, actor: ActorRecord, owner: ActorRecord) -> GoalRecord:
    """
    Возвращает завершенную цель в работу.

    Снимает отметку руководителя, отображаемый процент снова считается по механизмам.

    Raises:
        PreconditionNotMet: Цель не завершена.
        PermissionDenied: Пользователь не является руководителем владельца цели.
    """
    if goal_state(goal) is GoalState.IN_PROGRESS:
        raise PreconditionNotMet(message="Цель не завершена.", error_type="goal_not_completed")

    if not is_supervisor(actor, owner):
        raise PermissionDenied(
            message="Только руководитель может вернуть цель в работу.",
            error_type="goal_reopen_forbidden",
        )

    return goal.model_copy(update={"completed": False, "completed_by_supervisor_id": None})
