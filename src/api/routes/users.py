"""
Эндпоинты для данных участника: профиль, окно потока, механизмы, календарь,
переносы вхождений и отметки о выполнении.
"""

from datetime import date
from typing import Annotated, Sequence
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.api.core.dependencies import CurrentUser, DBSession, ProfileSvc, ScheduleSvc
from src.api.core.exceptions import BadRequestException
from src.api.models import Mechanism, Profile, ScheduleException
from src.api.schemas import (
    CalendarSchemaRead,
    GenerationWindowSchemaRead,
    MechanismCompletionSchemaStatus,
    MechanismSchemaRead,
    ProfileSchemaRead,
    ScheduleExceptionSchemaRead,
    ScheduleExceptionSchemaUpsert,
)
from src.scheduling import DateRange

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/me",
    response_model=ProfileSchemaRead,
    status_code=status.HTTP_200_OK,
    summary="Получение профиля текущего участника",
)
async def get_me(current_user: CurrentUser) -> Profile:
    return current_user


@router.get(
    "/me/leaders",
    response_model=Sequence[ProfileSchemaRead],
    status_code=status.HTTP_200_OK,
    summary="Получение подопечных текущего руководителя",
    description="Возвращает участников, для которых текущий пользователь назначен руководителем.",
)
async def get_my_leaders(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
) -> Sequence[Profile]:
    return await profile_service.get_supervised_profiles(db_session, supervisor=current_user)


@router.get(
    "/{user_id}/generation-window",
    response_model=GenerationWindowSchemaRead,
    status_code=status.HTTP_200_OK,
    summary="Получение окна выполнения механизмов",
    description="Окно [PL1 + 9 дней, PL3 - 7 дней] по датам потока участника.",
)
async def get_generation_window(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    user_id: UUID,
) -> GenerationWindowSchemaRead:
    """
    Возвращает окно выполнения механизмов участника.

    Args:
        db_session: Асинхронная сессия базы данных.
        current_user: Аутентифицированный пользователь.
        profile_service: Сервис участников.
        user_id: ID участника.

    Returns:
        GenerationWindowSchemaRead: Границы окна.

    Raises:
        ForbiddenException: Нет доступа к данным участника.
        NotFoundException: Даты потока участника не заданы.
    """
    owner = await profile_service.get_accessible_profile(db_session, actor=current_user, user_id=user_id)
    window = await profile_service.get_required_evaluation_window(db_session, profile=owner)

    return GenerationWindowSchemaRead(
        generation_id=owner.generation_id,
        mechanisms_start=window.start,
        mechanisms_end=window.end,
    )


@router.get(
    "/{user_id}/mechanisms",
    response_model=Sequence[MechanismSchemaRead],
    status_code=status.HTTP_200_OK,
    summary="Получение механизмов участника",
    description="Возвращает механизмы участника вместе с формулировкой и категорией их целей.",
)
async def get_mechanisms(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    participation_id: Annotated[UUID | None, Query(description="Фильтр по участию в потоке")] = None,
) -> Sequence[Mechanism]:
    owner = await profile_service.get_accessible_profile(db_session, actor=current_user, user_id=user_id)
    return await schedule_service.get_mechanisms_for_user(db_session, owner=owner, participation_id=participation_id)


@router.get(
    "/{user_id}/calendar",
    response_model=CalendarSchemaRead,
    status_code=status.HTTP_200_OK,
    summary="Получение календаря активностей",
    description=(
        "Строит экземпляры активностей участника в диапазоне дат с учетом переносов и отметок о выполнении. "
        "Перенесенные в диапазон извне вхождения также попадают в ответ."
    ),
)
async def get_calendar(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    start_date: Annotated[date, Query(description="Начало диапазона (включительно)")],
    end_date: Annotated[date, Query(description="Конец диапазона (включительно)")],
    participation_id: Annotated[UUID | None, Query(description="Фильтр по участию в потоке")] = None,
) -> CalendarSchemaRead:
    """
    Возвращает календарь активностей участника.

    Args:
        db_session: Асинхронная сессия базы данных.
        current_user: Аутентифицированный пользователь.
        profile_service: Сервис участников.
        schedule_service: Сервис расписания.
        user_id: ID участника.
        start_date: Начало диапазона.
        end_date: Конец диапазона.
        participation_id: Фильтр по участию.

    Returns:
        CalendarSchemaRead: Экземпляры активностей, отсортированные по фактической дате.

    Raises:
        BadRequestException: Конец диапазона раньше начала.
        ForbiddenException: Нет доступа к данным участника.
    """
    if end_date < start_date:
        raise BadRequestException(
            message="Конец диапазона не может быть раньше начала.",
            error_type="invalid_date_range",
            loc=["query", "end_date"],
        )

    owner = await profile_service.get_accessible_profile(db_session, actor=current_user, user_id=user_id)

    return await schedule_service.get_calendar(
        db_session,
        owner=owner,
        date_range=DateRange(start=start_date, end=end_date),
        participation_id=participation_id,
    )


# --- Переносы вхождений ---


@router.get(
    "/{user_id}/schedule-exceptions",
    response_model=Sequence[ScheduleExceptionSchemaRead],
    status_code=status.HTTP_200_OK,
    summary="Получение переносов вхождений",
    description="Возвращает переносы, у которых исходная или новая дата попадает в диапазон.",
)
async def get_schedule_exceptions(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    start_date: Annotated[date | None, Query(description="Начало диапазона")] = None,
    end_date: Annotated[date | None, Query(description="Конец диапазона")] = None,
) -> Sequence[ScheduleException]:
    owner = await profile_service.get_accessible_profile(db_session, actor=current_user, user_id=user_id)
    return await schedule_service.get_schedule_exceptions(
        db_session, owner=owner, start_date=start_date, end_date=end_date
    )


@router.post(
    "/{user_id}/schedule-exceptions",
    response_model=ScheduleExceptionSchemaRead,
    status_code=status.HTTP_201_CREATED,
    summary="Создание переноса вхождения",
    description="Создает перенос. Если перенос для этого вхождения уже есть, возвращает 409.",
)
async def create_schedule_exception(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    move_in: ScheduleExceptionSchemaUpsert,
) -> ScheduleException:
    """
    Создает перенос вхождения механизма на другую дату.

    Args:
        db_session: Асинхронная сессия базы данных.
        current_user: Аутентифицированный пользователь.
        profile_service: Сервис участников.
        schedule_service: Сервис расписания.
        user_id: ID участника.
        move_in: Механизм, исходная и новая даты.

    Returns:
        ScheduleException: Созданная запись о переносе.

    Raises:
        ConflictException: Перенос для этого вхождения уже существует.
        ValidationError: Новая дата вне периода механизма.
    """
    owner = await profile_service.get_accessible_profile(db_session, actor=current_user, user_id=user_id)
    return await schedule_service.create_schedule_exception(db_session, owner=owner, move_in=move_in)


@router.put(
    "/{user_id}/schedule-exceptions",
    response_model=ScheduleExceptionSchemaRead,
    status_code=status.HTTP_200_OK,
    summary="Запись переноса вхождения (upsert)",
    description="Создает перенос или обновляет новую дату существующего переноса того же вхождения.",
)
async def upsert_schedule_exception(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    move_in: ScheduleExceptionSchemaUpsert,
) -> ScheduleException:
    owner = await profile_service.get_accessible_profile(db_session, actor=current_user, user_id=user_id)
    return await schedule_service.upsert_schedule_exception(db_session, owner=owner, move_in=move_in)


# --- Отметки о выполнении ---


@router.get(
    "/{user_id}/mechanisms/{mechanism_id}/completions",
    response_model=list[date],
    status_code=status.HTTP_200_OK,
    summary="Получение дат выполнения механизма",
)
async def get_completions(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    mechanism_id: UUID,
    since: Annotated[date | None, Query(description="Нижняя граница дат (включительно)")] = None,
) -> list[date]:
    owner = await profile_service.get_accessible_profile(db_session, actor=current_user, user_id=user_id)
    mechanism = await schedule_service.get_user_mechanism(db_session, owner=owner, mechanism_id=mechanism_id)
    return await schedule_service.get_completion_dates(db_session, mechanism=mechanism, since_date=since)


async def _set_completion(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    mechanism_id: UUID,
    completed_date: date,
    value: bool,
) -> MechanismCompletionSchemaStatus:
    owner = await profile_service.get_accessible_profile(db_session, actor=current_user, user_id=user_id)
    mechanism = await schedule_service.get_user_mechanism(db_session, owner=owner, mechanism_id=mechanism_id)
    changed = await schedule_service.set_completion(
        db_session, mechanism=mechanism, completed_date=completed_date, value=value
    )

    return MechanismCompletionSchemaStatus(
        mechanism_id=mechanism_id,
        completed_date=completed_date,
        completed=value,
        changed=changed,
    )


@router.put(
    "/{user_id}/mechanisms/{mechanism_id}/completions/{completed_date}",
    response_model=MechanismCompletionSchemaStatus,
    status_code=status.HTTP_200_OK,
    summary="Отметка выполнения механизма",
    description="Идемпотентно отмечает выполнение на фактическую дату вхождения.",
)
async def create_completion(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    mechanism_id: UUID,
    completed_date: date,
) -> MechanismCompletionSchemaStatus:
    return await _set_completion(
        db_session, current_user, profile_service, schedule_service, user_id, mechanism_id, completed_date, True
    )


@router.delete(
    "/{user_id}/mechanisms/{mechanism_id}/completions/{completed_date}",
    response_model=MechanismCompletionSchemaStatus,
    status_code=status.HTTP_200_OK,
    summary="Снятие отметки о выполнении механизма",
    description="Идемпотентно снимает отметку; повторное снятие не является ошибкой.",
)
async def delete_completion(
    db_session: DBSession,
    current_user: CurrentUser,
    profile_service: ProfileSvc,
    schedule_service: ScheduleSvc,
    user_id: UUID,
    mechanism_id: UUID,
    completed_date: date,
) -> MechanismCompletionSchemaStatus:
    return await _set_completion(
        db_session, current_user, profile_service, schedule_service, user_id, mechanism_id, completed_date, False
    )
