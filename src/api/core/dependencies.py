"""Зависимости FastAPI: сессия БД, репозитории, сервисы и текущий пользователь."""

from typing import Annotated

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.models import Generation, Goal, Mechanism, MechanismCompletion, Profile, ScheduleException
from src.api.repositories import (
    GenerationRepository,
    GoalRepository,
    MechanismCompletionRepository,
    MechanismRepository,
    ProfileRepository,
    ScheduleExceptionRepository,
)
from src.api.services import GoalService, ProfileService, ScheduleService

from .database import get_db_session
from .exceptions import ForbiddenException, UnauthorizedException
from .logging import api_log as log
from .security import verify_and_decode_token

# --- Типизация для инъекции зависимостей ---

# Сессия базы данных
DBSession = Annotated[AsyncSession, Depends(get_db_session)]


# --- Фабрики Репозиториев ---


def get_profile_repository() -> ProfileRepository:
    return ProfileRepository(Profile)


def get_generation_repository() -> GenerationRepository:
    return GenerationRepository(Generation)


def get_goal_repository() -> GoalRepository:
    return GoalRepository(Goal)


def get_mechanism_repository() -> MechanismRepository:
    return MechanismRepository(Mechanism)


def get_schedule_exception_repository() -> ScheduleExceptionRepository:
    return ScheduleExceptionRepository(ScheduleException)


def get_mechanism_completion_repository() -> MechanismCompletionRepository:
    return MechanismCompletionRepository(MechanismCompletion)


# Типизация для репозиториев
ProfileRepo = Annotated[ProfileRepository, Depends(get_profile_repository)]
GenerationRepo = Annotated[GenerationRepository, Depends(get_generation_repository)]
GoalRepo = Annotated[GoalRepository, Depends(get_goal_repository)]
MechanismRepo = Annotated[MechanismRepository, Depends(get_mechanism_repository)]
ScheduleExceptionRepo = Annotated[ScheduleExceptionRepository, Depends(get_schedule_exception_repository)]
MechanismCompletionRepo = Annotated[MechanismCompletionRepository, Depends(get_mechanism_completion_repository)]


# --- Фабрики Сервисов ---


def get_profile_service(repository: ProfileRepo, generation_repository: GenerationRepo) -> ProfileService:
    return ProfileService(profile_repository=repository, generation_repository=generation_repository)


ProfileSvc = Annotated[ProfileService, Depends(get_profile_service)]


# ScheduleService зависит от трех репозиториев и сервиса участников
def get_schedule_service(
    repository: MechanismRepo,
    exception_repository: ScheduleExceptionRepo,
    completion_repository: MechanismCompletionRepo,
    profile_service: ProfileSvc,
) -> ScheduleService:
    return ScheduleService(
        mechanism_repository=repository,
        exception_repository=exception_repository,
        completion_repository=completion_repository,
        profile_service=profile_service,
    )


ScheduleSvc = Annotated[ScheduleService, Depends(get_schedule_service)]


def get_goal_service(repository: GoalRepo, schedule_service: ScheduleSvc) -> GoalService:
    return GoalService(goal_repository=repository, schedule_service=schedule_service)


GoalSvc = Annotated[GoalService, Depends(get_goal_service)]


# --- Зависимость для получения текущего пользователя ---

# Схема для JWT Bearer токена
bearer_schema = HTTPBearer(auto_error=False)


async def get_current_user(
    db_session: DBSession,
    profile_repo: ProfileRepo,
    token_credentials: HTTPAuthorizationCredentials | None = Security(bearer_schema),
) -> Profile:
    """
    Получает текущего аутентифицированного участника на основе JWT токена.

    Args:
        db_session (AsyncSession): Асинхронная сессия базы данных.
        profile_repo (ProfileRepo): Экземпляр репозитория участников.
        token_credentials (HTTPAuthorizationCredentials | None): Учетные данные из заголовка Authorization.

    Returns:
        Profile: Экземпляр модели текущего участника.

    Raises:
        UnauthorizedException: Если токен отсутствует, невалиден или участник не найден.
        ForbiddenException: Если участник неактивен.
    """
    if token_credentials is None or not token_credentials.credentials:
        log.debug("Отсутствует токен авторизации.")
        raise UnauthorizedException(message="Токен авторизации не предоставлен.")

    # UnauthorizedException будет выброшен из verify_and_decode_token в случае проблем
    token_payload = verify_and_decode_token(token_credentials.credentials)

    profile = await profile_repo.get_by_id(db_session, obj_id=token_payload.user_id)

    if profile is None:
        log.warning(f"Участник с ID {token_payload.user_id} из токена не найден в БД.")
        raise UnauthorizedException(message="Пользователь не найден.", error_type="token_user_not_found")

    if not profile.is_active:
        log.warning(f"Участник ID {profile.id} неактивен, доступ запрещен.")
        raise ForbiddenException(message="Пользователь неактивен.", error_type="user_inactive")

    log.debug(f"Аутентифицирован участник: ID {profile.id}, роль {profile.role.value}")
    return profile


# --- Типизация для инъекции текущего пользователя ---
CurrentUser = Annotated[Profile, Depends(get_current_user)]
