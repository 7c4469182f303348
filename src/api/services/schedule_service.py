"""Сервис расписания механизмов: переносы, выполнения, календарь и прогресс."""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.config import settings
from src.api.core.exceptions import BadRequestException, ConflictException, NotFoundException
from src.api.core.logging import api_log as log
from src.api.models import Mechanism, Profile, ScheduleException
from src.api.repositories import MechanismCompletionRepository, MechanismRepository, ScheduleExceptionRepository
from src.api.schemas import (
    CalendarSchemaRead,
    MechanismCompletionSchemaCreate,
    MechanismSchemaCreate,
    MechanismSchemaUpdate,
    ScheduleExceptionSchemaCreate,
    ScheduleExceptionSchemaUpdate,
    ScheduleExceptionSchemaUpsert,
)
from src.scheduling import (
    CompletionIndex,
    CompletionRecord,
    DateRange,
    ExceptionIndex,
    MechanismProgress,
    MechanismRecord,
    ScheduleExceptionRecord,
    ValidationError,
    calculate_mechanism_progress,
    matches,
    project_all,
)

from .base_service import BaseService
from .profile_service import ProfileService


class ScheduleService(BaseService[Mechanism, MechanismRepository, MechanismSchemaCreate, MechanismSchemaUpdate]):
    """
    Сервис для работы с расписанием механизмов.

    Переносы вхождений записываются как upsert по ключу (mechanism_id, user_id, original_date),
    отметки о выполнении создаются и удаляются идемпотентно.
    """

    def __init__(
        self,
        mechanism_repository: MechanismRepository,
        exception_repository: ScheduleExceptionRepository,
        completion_repository: MechanismCompletionRepository,
        profile_service: ProfileService,
    ):
        """
        Инициализирует сервис расписания.

        Args:
            mechanism_repository (MechanismRepository): Репозиторий механизмов.
            exception_repository (ScheduleExceptionRepository): Репозиторий переносов.
            completion_repository (MechanismCompletionRepository): Репозиторий выполнений.
            profile_service (ProfileService): Сервис участников (доступ и окна потоков).
        """
        super().__init__(repository=mechanism_repository)
        self.exception_repository = exception_repository
        self.completion_repository = completion_repository
        self.profile_service = profile_service

    # --- Вспомогательные методы ---

    @staticmethod
    def _mechanism_window(mechanism: MechanismRecord, window: DateRange | None) -> DateRange:
        """
        Окно оценки для механизма.

        Если окно потока не определено, используется собственный период механизма.

        Raises:
            BadRequestException: Нет ни окна потока, ни дат механизма.
        """
        if window is not None:
            return window

        if mechanism.start_date and mechanism.end_date:
            return DateRange(start=mechanism.start_date, end=mechanism.end_date)

        raise BadRequestException(
            message="Не удалось определить период механизма: не заданы ни даты потока, ни даты механизма.",
            error_type="evaluation_window_undefined",
        )

    def _check_mechanism_owner(self, mechanism: Mechanism, owner: Profile) -> None:
        if mechanism.user_id != owner.id:
            log.warning(f"Механизм ID {mechanism.id} не принадлежит участнику ID {owner.id}.")
            raise BadRequestException(
                message="Механизм не принадлежит указанному участнику.",
                error_type="mechanism_owner_mismatch",
                loc=["body", "mechanism_id"],
            )

    async def _validate_move(
        self, db_session: AsyncSession, *, owner: Profile, move_in: ScheduleExceptionSchemaUpsert
    ) -> Mechanism:
        """
        Проверяет перенос до записи в БД.

        Raises:
            NotFoundException: Механизм не найден.
            BadRequestException: Механизм принадлежит другому участнику или его период не определен.
            ValidationError: Исходная дата не является вхождением механизма или новая дата вне его периода.
        """
        mechanism = await self.get_by_id(db_session, obj_id=move_in.mechanism_id)
        self._check_mechanism_owner(mechanism, owner)

        window = await self.profile_service.get_evaluation_window(db_session, profile=owner)
        record = MechanismRecord.model_validate(mechanism)

        period = record.effective_period(self._mechanism_window(record, window))
        original_date = move_in.original_date

        if original_date not in period or not matches(record.frequency, original_date, period.start):
            raise ValidationError(
                message=f"{original_date} не является датой вхождения механизма.",
                error_type="not_an_occurrence",
            )

        if move_in.moved_to_date not in period:
            raise ValidationError(
                message=f"Дата {move_in.moved_to_date} вне периода механизма ({period.start} - {period.end}).",
                error_type="move_out_of_period",
            )

        return mechanism

    # --- Механизмы ---

    async def get_accessible_mechanism(
        self, db_session: AsyncSession, *, actor: Profile, mechanism_id: UUID
    ) -> tuple[Mechanism, Profile]:
        """
        Получает механизм и его владельца с проверкой доступа.

        Returns:
            tuple[Mechanism, Profile]: Механизм и его владелец.

        Raises:
            NotFoundException: Механизм или владелец не найдены.
            ForbiddenException: Нет доступа к данным владельца.
        """
        mechanism = await self.get_by_id(db_session, obj_id=mechanism_id)
        owner = await self.profile_service.get_accessible_profile(db_session, actor=actor, user_id=mechanism.user_id)
        return mechanism, owner

    async def get_mechanisms_for_user(
        self, db_session: AsyncSession, *, owner: Profile, participation_id: UUID | None = None
    ) -> Sequence[Mechanism]:
        return await self.repository.get_mechanisms_for_user(
            db_session, user_id=owner.id, participation_id=participation_id
        )

    async def get_user_mechanism(self, db_session: AsyncSession, *, owner: Profile, mechanism_id: UUID) -> Mechanism:
        """
        Получает механизм участника.

        Raises:
            NotFoundException: Механизм не найден или принадлежит другому участнику.
        """
        mechanism = await self.get_by_id(db_session, obj_id=mechanism_id)

        if mechanism.user_id != owner.id:
            log.warning(f"Механизм ID {mechanism_id} не принадлежит участнику ID {owner.id}.")
            raise NotFoundException(
                message=f"Механизм с ID {mechanism_id} не найден у участника.",
                error_type="mechanism_not_found",
                loc=["path", "mechanism_id"],
            )

        return mechanism

    async def get_mechanism_progress(
        self, db_session: AsyncSession, *, actor: Profile, mechanism_id: UUID, today: date | None = None
    ) -> MechanismProgress:
        mechanism, owner = await self.get_accessible_mechanism(db_session, actor=actor, mechanism_id=mechanism_id)
        [progress] = await self.calculate_progress(db_session, owner=owner, mechanisms=[mechanism], today=today)
        return progress

    # --- Переносы вхождений ---

    async def get_schedule_exceptions(
        self, db_session: AsyncSession, *, owner: Profile, start_date: date | None = None, end_date: date | None = None
    ) -> Sequence[ScheduleException]:
        return await self.exception_repository.get_for_user_in_range(
            db_session, user_id=owner.id, start_date=start_date, end_date=end_date
        )

    async def create_schedule_exception(
        self, db_session: AsyncSession, *, owner: Profile, move_in: ScheduleExceptionSchemaUpsert
    ) -> ScheduleException:
        """
        Создает перенос вхождения.

        Raises:
            ConflictException: Перенос для этого вхождения уже существует.
        """
        await self._validate_move(db_session, owner=owner, move_in=move_in)
        obj_in = ScheduleExceptionSchemaCreate(user_id=owner.id, **move_in.model_dump())

        try:
            exception = await self.exception_repository.create(db_session, obj_in=obj_in)
            await db_session.commit()
            return exception

        except IntegrityError as exc:
            await db_session.rollback()
            log.info(f"Перенос для механизма ID {obj_in.mechanism_id} на {obj_in.original_date} уже существует.")
            raise ConflictException(
                message="Перенос для этого вхождения уже существует.",
                error_type="schedule_exception_exists",
            ) from exc

        except Exception as exc:
            await db_session.rollback()
            log.opt(exception=True).error(f"Ошибка при создании переноса: {exc}")
            raise exc

    async def upsert_schedule_exception(
        self, db_session: AsyncSession, *, owner: Profile, move_in: ScheduleExceptionSchemaUpsert
    ) -> ScheduleException:
        """
        Записывает перенос вхождения: создает запись или обновляет существующую.

        Если параллельный запрос успел создать запись (нарушение уникальности),
        вставка повторяется как обновление того же ключа.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            owner (Profile): Владелец механизма.
            move_in (ScheduleExceptionSchemaUpsert): Данные переноса.

        Returns:
            ScheduleException: Актуальная запись о переносе.
        """
        await self._validate_move(db_session, owner=owner, move_in=move_in)

        # Значения ключа сохраняем заранее: после rollback ORM-объекты сессии истекают
        key = {"mechanism_id": move_in.mechanism_id, "user_id": owner.id, "original_date": move_in.original_date}
        update_in = ScheduleExceptionSchemaUpdate(moved_to_date=move_in.moved_to_date)

        existing = await self.exception_repository.get_by_key(db_session, **key)

        if existing is None:
            try:
                exception = await self.exception_repository.create(
                    db_session, obj_in=ScheduleExceptionSchemaCreate(**key, moved_to_date=move_in.moved_to_date)
                )
                await db_session.commit()
                log.info(f"Создан перенос механизма ID {key['mechanism_id']}: {key['original_date']} -> "
                         f"{move_in.moved_to_date}")
                return exception

            except IntegrityError:
                await db_session.rollback()
                log.info(f"Конфликт при создании переноса {key}, повторяем как обновление.")
                existing = await self.exception_repository.get_by_key(db_session, **key)

                if existing is None:
                    raise

        try:
            exception = await self.exception_repository.update(db_session, db_obj=existing, obj_in=update_in)
            await db_session.commit()
            log.info(f"Обновлен перенос механизма ID {key['mechanism_id']}: {key['original_date']} -> "
                     f"{move_in.moved_to_date}")
            return exception

        except Exception as exc:
            await db_session.rollback()
            log.opt(exception=True).error(
                f"Ошибка при обновлении переноса механизма ID {key['mechanism_id']} на {key['original_date']}"
            )
            raise exc

    # --- Выполнения ---

    async def get_completion_dates(
        self, db_session: AsyncSession, *, mechanism: Mechanism, since_date: date | None = None
    ) -> list[date]:
        completions = await self.completion_repository.get_completions(
            db_session, mechanism_ids=[mechanism.id], user_id=mechanism.user_id, since_date=since_date
        )
        return [completion.completed_date for completion in completions]

    async def set_completion(
        self, db_session: AsyncSession, *, mechanism: Mechanism, completed_date: date, value: bool
    ) -> bool:
        """
        Устанавливает отметку о выполнении механизма на дату.

        Операция идемпотентна: повторная отметка или повторное снятие не меняют данные
        и не приводят к ошибке.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            mechanism (Mechanism): Механизм.
            completed_date (date): Фактическая дата вхождения.
            value (bool): True - отметить выполнение, False - снять отметку.

        Returns:
            bool: True, если данные изменились.
        """
        obj_in = MechanismCompletionSchemaCreate(
            mechanism_id=mechanism.id, user_id=mechanism.user_id, completed_date=completed_date
        )
        existing = await self.completion_repository.get_by_key(db_session, **obj_in.model_dump())

        if value and existing is not None:
            log.debug(f"Выполнение механизма ID {obj_in.mechanism_id} на {completed_date} уже отмечено.")
            return False

        if not value and existing is None:
            log.debug(f"Выполнение механизма ID {obj_in.mechanism_id} на {completed_date} и так не отмечено.")
            return False

        try:
            if value:
                await self.completion_repository.create(db_session, obj_in=obj_in)
            else:
                await self.completion_repository.delete(db_session, db_obj=existing)

            await db_session.commit()
            log.info(f"Выполнение механизма ID {obj_in.mechanism_id} на {completed_date}: {value}.")
            return True

        except IntegrityError:
            # Параллельный запрос уже создал отметку
            await db_session.rollback()
            log.debug(f"Отметка механизма ID {obj_in.mechanism_id} на {completed_date} уже создана параллельно.")
            return False

        except Exception as exc:
            await db_session.rollback()
            log.opt(exception=True).error(
                f"Ошибка при изменении отметки о выполнении механизма ID {obj_in.mechanism_id} на {completed_date}"
            )
            raise exc

    # --- Календарь и прогресс ---

    async def get_calendar(
        self,
        db_session: AsyncSession,
        *,
        owner: Profile,
        date_range: DateRange,
        participation_id: UUID | None = None,
    ) -> CalendarSchemaRead:
        """
        Строит экземпляры активностей участника в диапазоне дат.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            owner (Profile): Участник.
            date_range (DateRange): Диапазон календаря.
            participation_id (UUID | None): Фильтр по участию.

        Returns:
            CalendarSchemaRead: Экземпляры активностей.
        """
        window = await self.profile_service.get_evaluation_window(db_session, profile=owner)

        mechanisms = await self.get_mechanisms_for_user(db_session, owner=owner, participation_id=participation_id)
        records = [MechanismRecord.model_validate(mechanism) for mechanism in mechanisms]
        # Якорь механизма не зависит от запрошенного диапазона
        windows = [self._mechanism_window(record, window) for record in records]

        exceptions = await self.exception_repository.get_for_user_in_range(
            db_session, user_id=owner.id, start_date=date_range.start, end_date=date_range.end
        )
        completions = await self.completion_repository.get_completions(
            db_session,
            mechanism_ids=[record.id for record in records],
            user_id=owner.id,
            since_date=min([date_range.start, *(item.start for item in windows)]),
        )

        instances = project_all(
            records,
            date_range,
            [ScheduleExceptionRecord.model_validate(exception) for exception in exceptions],
            [CompletionRecord.model_validate(completion) for completion in completions],
            window,
        )
        log.debug(f"Календарь участника ID {owner.id} за {date_range.start} - {date_range.end}: "
                  f"{len(instances)} активностей.")

        return CalendarSchemaRead(date_range=date_range, window=window, instances=instances)

    async def calculate_progress(
        self,
        db_session: AsyncSession,
        *,
        owner: Profile,
        mechanisms: Sequence[Mechanism],
        today: date | None = None,
    ) -> list[MechanismProgress]:
        """
        Рассчитывает прогресс набора механизмов участника.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            owner (Profile): Владелец механизмов.
            mechanisms (Sequence[Mechanism]): Механизмы.
            today (date | None): Текущая дата (по умолчанию сегодня).

        Returns:
            list[MechanismProgress]: Прогресс в том же порядке, что и механизмы.
        """
        if not mechanisms:
            return []

        window = await self.profile_service.get_evaluation_window(db_session, profile=owner)
        records = [MechanismRecord.model_validate(mechanism) for mechanism in mechanisms]
        windows = [self._mechanism_window(record, window) for record in records]

        exceptions = await self.exception_repository.get_for_user_in_range(db_session, user_id=owner.id)
        completions = await self.completion_repository.get_completions(
            db_session,
            mechanism_ids=[record.id for record in records],
            user_id=owner.id,
            since_date=min(item.start for item in windows),
        )

        exception_index = ExceptionIndex(ScheduleExceptionRecord.model_validate(item) for item in exceptions)
        completion_index = CompletionIndex(CompletionRecord.model_validate(item) for item in completions)

        return [
            calculate_mechanism_progress(
                record,
                mechanism_window,
                exception_index,
                completion_index,
                today=today,
                lookback_days=settings.PREDICTION_LOOKBACK_DAYS,
            )
            for record, mechanism_window in zip(records, windows)
        ]
