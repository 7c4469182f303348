"""
Контроллер календаря механизмов.

Хранит сырые записи (механизмы, переносы, выполнения) в двух слоях: подтвержденном
хранилищем и отображаемом. Экземпляры активностей и прогресс всегда вычисляются
из отображаемого слоя, а оптимистичные изменения и откаты затрагивают только
сырые записи.

Каждая изменяющая операция получает монотонно растущий токен для своего ключа.
Ответ хранилища с устаревшим токеном не меняет отображаемое состояние.
"""

import asyncio
import itertools
from datetime import date
from enum import Enum
from functools import partial
from typing import Callable, Hashable, NamedTuple
from uuid import UUID

from src.scheduling import (
    ActivityInstance,
    CompletionIndex,
    DateRange,
    ExceptionIndex,
    GoalProgress,
    GoalRecord,
    InstanceKey,
    MechanismProgress,
    MechanismRecord,
    SchedulingError,
    ValidationError,
    calculate_goal_progress,
    calculate_mechanism_progress,
    matches,
    project,
    project_all,
)
from src.scheduling.progress import DEFAULT_PREDICTION_LOOKBACK_DAYS

from .logging import client_log as log
from .store import ScheduleStore, StoreResult


class OperationStatus(str, Enum):
    """Итог операции контроллера."""

    OK = "ok"
    FAILED = "failed"  # хранилище отклонило изменение, выполнен откат
    STALE = "stale"  # ответ устарел: для ключа уже запущена более новая операция
    LOCAL_ONLY = "local_only"  # хранилище недоступно, изменение сохранено только локально


class OperationResult(NamedTuple):
    """Результат операции контроллера."""

    status: OperationStatus
    instance: ActivityInstance | None = None
    progress: MechanismProgress | None = None
    error: SchedulingError | None = None

    @property
    def ok(self) -> bool:
        return self.status in (OperationStatus.OK, OperationStatus.LOCAL_ONLY)


# Экземпляр активности, его составной ключ или непрозрачный instance_id
InstanceRef = ActivityInstance | InstanceKey | str


class CalendarController:
    """
    Контроллер взаимодействия с календарем механизмов участника.

    Операции переноса и отметки выполнения применяются оптимистично до ответа
    хранилища. При ошибке отображаемое состояние откатывается к последнему
    подтвержденному хранилищем. Если хранилище недоступно, контроллер переходит
    в локальный режим (один раз пишет предупреждение) и продолжает работать без
    сохранения изменений.
    """

    def __init__(
        self,
        store: ScheduleStore,
        user_id: UUID,
        today: date | None = None,
        lookback_days: int = DEFAULT_PREDICTION_LOOKBACK_DAYS,
    ):
        """
        Инициализирует контроллер.

        Args:
            store (ScheduleStore): Хранилище расписания.
            user_id (UUID): ID участника, чей календарь отображается.
            today (date | None): Текущая дата для расчета прогресса (по умолчанию сегодня).
            lookback_days (int): Период оценки темпа выполнения для прогноза.
        """
        self.store = store
        self.user_id = user_id
        self.today = today
        self.lookback_days = lookback_days
        self.local_only = False

        self._mechanisms: dict[UUID, MechanismRecord] = {}
        self._window: DateRange | None = None
        self._loaded_range: DateRange | None = None

        # Слой, подтвержденный хранилищем, и отображаемый слой
        self._confirmed_exceptions = ExceptionIndex()
        self._confirmed_completions = CompletionIndex()
        self._exceptions = ExceptionIndex()
        self._completions = CompletionIndex()

        self._token_counter = itertools.count(1)
        self._latest_tokens: dict[Hashable, int] = {}
        self._confirmed_tokens: dict[Hashable, int] = {}
        self._failed_tokens: dict[Hashable, int] = {}

        self._version = 0
        self._projection_cache: dict[DateRange, tuple[int, list[ActivityInstance]]] = {}
        self._instance_lookup: dict[str, InstanceKey] = {}

    # --- Загрузка ---

    async def load(self, date_range: DateRange, participation_id: UUID | None = None) -> OperationResult:
        """
        Загружает механизмы, окно потока, переносы и выполнения участника.

        Записи читаются за объединение отображаемого диапазона и окна потока,
        чтобы прогресс считался по полному окну.

        Args:
            date_range (DateRange): Отображаемый диапазон календаря.
            participation_id (UUID | None): Фильтр механизмов по участию.

        Returns:
            OperationResult: OK, LOCAL_ONLY (хранилище недоступно) или FAILED.
        """
        if date_range.is_empty:
            raise ValidationError("Конец диапазона раньше начала.", "invalid_date_range")

        # Режим только локальных изменений действует до следующей загрузки
        self.local_only = False

        mechanisms_result = await self.store.read_mechanisms_for_user(self.user_id, participation_id)
        if not mechanisms_result.ok:
            return self._load_failed("механизмов", mechanisms_result)

        window_result = await self.store.read_generation_window(self.user_id)
        if not window_result.ok:
            if not window_result.unavailable:
                return self._load_failed("окна потока", window_result)
            self._enter_local_only(window_result.error)

        mechanisms: list[MechanismRecord] = mechanisms_result.value
        window: DateRange | None = window_result.value
        scope = date_range
        if window is not None:
            scope = DateRange(start=min(date_range.start, window.start), end=max(date_range.end, window.end))

        exceptions_result, *completion_results = await asyncio.gather(
            self.store.read_schedule_exceptions(self.user_id, scope.start, scope.end),
            *(self.store.read_completions(mechanism.id, self.user_id, scope.start) for mechanism in mechanisms),
        )

        exceptions = ExceptionIndex()
        completions = CompletionIndex()

        for result in (exceptions_result, *completion_results):
            if result.ok:
                continue
            if not result.unavailable:
                return self._load_failed("переносов и выполнений", result)
            self._enter_local_only(result.error)

        if exceptions_result.ok:
            exceptions = ExceptionIndex(exceptions_result.value)

        for result in completion_results:
            if result.ok:
                for record in result.value:
                    completions.set_completed(record.mechanism_id, record.user_id, record.completed_date, True)

        self._mechanisms = {mechanism.id: mechanism for mechanism in mechanisms}
        self._window = window
        self._loaded_range = date_range
        self._confirmed_exceptions = exceptions
        self._confirmed_completions = completions
        self._exceptions = exceptions.copy()
        self._completions = completions.copy()
        self._latest_tokens.clear()
        self._confirmed_tokens.clear()
        self._failed_tokens.clear()
        self._instance_lookup.clear()
        self._touch()

        log.info(
            f"Календарь участника ID {self.user_id} загружен: механизмов {len(mechanisms)}, "
            f"переносов {len(exceptions)}, выполнений {len(completions)}."
        )
        return OperationResult(OperationStatus.LOCAL_ONLY if self.local_only else OperationStatus.OK)

    def _load_failed(self, what: str, result: StoreResult) -> OperationResult:
        if result.unavailable:
            self._enter_local_only(result.error)
            return OperationResult(OperationStatus.LOCAL_ONLY, error=result.error)

        log.error(f"Не удалось загрузить данные {what} участника ID {self.user_id}: {result.error}")
        return OperationResult(OperationStatus.FAILED, error=result.error)

    # --- Проекции ---

    def get_activity_instances(self, date_range: DateRange | None = None) -> list[ActivityInstance]:
        """
        Возвращает экземпляры активностей в диапазоне (по умолчанию загруженном).

        Результат вычисляется из отображаемого слоя и кешируется до следующего
        изменения записей.

        Raises:
            ValidationError: Календарь еще не загружен.
        """
        date_range = date_range or self._loaded_range
        if date_range is None:
            raise ValidationError("Календарь не загружен.", "calendar_not_loaded")

        cached = self._projection_cache.get(date_range)
        if cached is not None and cached[0] == self._version:
            return list(cached[1])

        instances = project_all(
            self._mechanisms.values(), date_range, self._exceptions, self._completions, self._default_window()
        )
        self._projection_cache[date_range] = (self._version, instances)
        self._instance_lookup.update((instance.instance_id, instance.key) for instance in instances)

        return list(instances)

    def get_instance(self, instance: InstanceRef) -> ActivityInstance | None:
        """Возвращает актуальное состояние экземпляра активности."""
        key = self.resolve_instance(instance)
        mechanism = self._mechanisms[key.mechanism_id]
        effective_date = self._exceptions.resolve(key.mechanism_id, key.original_date).effective_date
        span = DateRange(start=min(key.original_date, effective_date), end=max(key.original_date, effective_date))

        for candidate in project(mechanism, span, self._exceptions, self._completions, self._default_window()):
            if candidate.key == key:
                return candidate
        return None

    def resolve_instance(self, instance: InstanceRef) -> InstanceKey:
        """
        Определяет составной ключ экземпляра активности.

        Строковый instance_id ищется в таблице экземпляров, построенных контроллером.

        Raises:
            ValidationError: Экземпляр неизвестен или его механизм не загружен.
        """
        if isinstance(instance, ActivityInstance):
            key = instance.key
        elif isinstance(instance, InstanceKey):
            key = instance
        elif isinstance(instance, str) and instance in self._instance_lookup:
            key = self._instance_lookup[instance]
        else:
            raise ValidationError(f"Неизвестный экземпляр активности: {instance!r}.", "unknown_instance")

        if key.mechanism_id not in self._mechanisms:
            raise ValidationError(f"Механизм ID {key.mechanism_id} не загружен.", "unknown_mechanism")

        return key

    def get_progress(self, target_id: UUID) -> MechanismProgress | GoalProgress:
        """
        Рассчитывает прогресс механизма или цели по отображаемому слою.

        Args:
            target_id (UUID): ID механизма или цели.

        Returns:
            MechanismProgress | GoalProgress: Прогресс механизма или цели.

        Raises:
            ValidationError: Нет загруженного механизма или цели с таким ID.
        """
        mechanism = self._mechanisms.get(target_id)
        if mechanism is not None:
            return self._mechanism_progress(mechanism)

        goal_mechanisms = [item for item in self._mechanisms.values() if item.goal_id == target_id]
        if not goal_mechanisms:
            raise ValidationError(f"Нет механизма или цели с ID {target_id}.", "unknown_progress_target")

        first = goal_mechanisms[0]
        goal = GoalRecord(
            id=target_id,
            user_id=first.user_id,
            description=first.goal_description,
            category=first.goal_category,
        )
        return calculate_goal_progress(goal, [self._mechanism_progress(item) for item in goal_mechanisms])

    def _default_window(self) -> DateRange | None:
        """Окно потока, а без него загруженный диапазон: один якорь для всех проекций до следующей загрузки."""
        return self._window or self._loaded_range

    def _mechanism_window(self, mechanism: MechanismRecord) -> DateRange:
        if self._window is not None:
            return self._window
        if mechanism.start_date and mechanism.end_date:
            return DateRange(start=mechanism.start_date, end=mechanism.end_date)
        return self._loaded_range

    def _mechanism_progress(self, mechanism: MechanismRecord) -> MechanismProgress:
        return calculate_mechanism_progress(
            mechanism,
            self._mechanism_window(mechanism),
            self._exceptions,
            self._completions,
            today=self.today,
            lookback_days=self.lookback_days,
        )

    # --- Изменения ---

    async def move_activity(self, instance: InstanceRef, new_date: date, original_date: date) -> OperationResult:
        """
        Переносит вхождение механизма на другую дату.

        Перенос обратно на исходную дату тоже записывается в хранилище.

        Args:
            instance (InstanceRef): Экземпляр активности, его ключ или instance_id.
            new_date (date): Новая дата вхождения.
            original_date (date): Исходная дата вхождения (по правилу частоты).

        Returns:
            OperationResult: Итог операции и актуальное состояние экземпляра.

        Raises:
            ValidationError: Экземпляр неизвестен, исходная дата не совпадает или новая дата
                             вне периода механизма. Проверка выполняется до любых изменений.
        """
        key = self.resolve_instance(instance)

        if original_date != key.original_date:
            raise ValidationError(
                f"Исходная дата {original_date} не совпадает с датой экземпляра {key.original_date}.",
                "original_date_mismatch",
            )

        mechanism = self._mechanisms[key.mechanism_id]
        period = mechanism.effective_period(self._default_window())

        if original_date not in period or not matches(mechanism.frequency, original_date, period.start):
            raise ValidationError(f"{original_date} не является датой вхождения механизма.", "not_an_occurrence")

        if new_date not in period:
            raise ValidationError(
                f"Дата {new_date} вне периода механизма ({period.start} - {period.end}).", "move_out_of_period"
            )

        token_key = ("move", key)
        token = self._issue_token(token_key)

        record = self._exceptions.record_move(key.mechanism_id, self.user_id, original_date, new_date)
        self._touch()

        confirm = partial(self._confirmed_exceptions.put, record)
        restore = partial(self._restore_move, key)

        if self.local_only:
            status = self._settle(token_key, token, None, confirm, restore)
        else:
            result = await self.store.upsert_schedule_exception(key.mechanism_id, self.user_id, original_date, new_date)
            status = self._settle(token_key, token, result, confirm, restore)

            if status is OperationStatus.FAILED:
                return OperationResult(status, instance=self.get_instance(key), error=result.error)

        return OperationResult(status, instance=self.get_instance(key))

    async def toggle_completion(self, instance: InstanceRef, completed_date: date) -> OperationResult:
        """
        Переключает отметку о выполнении экземпляра активности.

        Args:
            instance (InstanceRef): Экземпляр активности, его ключ или instance_id.
            completed_date (date): Фактическая дата экземпляра.

        Returns:
            OperationResult: Итог операции, состояние экземпляра и пересчитанный прогресс механизма.

        Raises:
            ValidationError: Экземпляр неизвестен или дата не совпадает с его фактической датой.
        """
        key = self.resolve_instance(instance)
        effective_date = self._exceptions.resolve(key.mechanism_id, key.original_date).effective_date

        if completed_date != effective_date:
            raise ValidationError(
                f"Дата {completed_date} не совпадает с фактической датой экземпляра {effective_date}.",
                "completion_date_mismatch",
            )

        value = not self._completions.is_completed(key.mechanism_id, effective_date)
        token_key = ("completion", key.mechanism_id, effective_date)
        token = self._issue_token(token_key)

        self._completions.set_completed(key.mechanism_id, self.user_id, effective_date, value)
        self._touch()

        confirm = partial(
            self._confirmed_completions.set_completed, key.mechanism_id, self.user_id, effective_date, value
        )
        restore = partial(self._restore_completion, key.mechanism_id, effective_date)

        error = None
        if self.local_only:
            status = self._settle(token_key, token, None, confirm, restore)
        else:
            if value:
                result = await self.store.create_completion(key.mechanism_id, self.user_id, effective_date)
            else:
                result = await self.store.delete_completion(key.mechanism_id, self.user_id, effective_date)
            status = self._settle(token_key, token, result, confirm, restore)
            error = result.error

        progress = None
        if status in (OperationStatus.OK, OperationStatus.LOCAL_ONLY):
            progress = self._mechanism_progress(self._mechanisms[key.mechanism_id])

        return OperationResult(status, instance=self.get_instance(key), progress=progress, error=error)

    # --- Токены, подтверждение и откат ---

    def _touch(self) -> None:
        self._version += 1

    def _issue_token(self, token_key: Hashable) -> int:
        token = next(self._token_counter)
        self._latest_tokens[token_key] = token
        return token

    def _enter_local_only(self, error: SchedulingError | None) -> None:
        if self.local_only:
            return

        self.local_only = True
        log.warning(f"Хранилище расписания недоступно, изменения сохраняются только локально: {error}")

    def _restore_move(self, key: InstanceKey) -> None:
        confirmed = self._confirmed_exceptions.get(key.mechanism_id, key.original_date)
        if confirmed is None:
            self._exceptions.discard(key.mechanism_id, key.original_date)
        else:
            self._exceptions.put(confirmed)

    def _restore_completion(self, mechanism_id: UUID, effective_date: date) -> None:
        value = self._confirmed_completions.is_completed(mechanism_id, effective_date)
        self._completions.set_completed(mechanism_id, self.user_id, effective_date, value)

    def _settle(
        self,
        token_key: Hashable,
        token: int,
        result: StoreResult | None,
        confirm: Callable[[], object],
        restore: Callable[[], None],
    ) -> OperationStatus:
        """
        Применяет ответ хранилища к слоям состояния.

        Args:
            token_key (Hashable): Ключ операции.
            token (int): Токен завершившейся операции.
            result (StoreResult | None): Ответ хранилища (None в локальном режиме).
            confirm (Callable): Записывает изменение операции в подтвержденный слой.
            restore (Callable): Возвращает отображаемый слой ключа к подтвержденному.

        Returns:
            OperationStatus: Итог операции.
        """
        is_latest = self._latest_tokens.get(token_key) == token

        if result is None or result.ok or result.unavailable:
            if result is not None and result.unavailable:
                self._enter_local_only(result.error)

            if token > self._confirmed_tokens.get(token_key, 0):
                self._confirmed_tokens[token_key] = token
                confirm()

            if is_latest:
                return OperationStatus.LOCAL_ONLY if self.local_only else OperationStatus.OK

            # Последняя операция по ключу уже откатилась: показываем подтвержденное состояние
            failed_token = self._failed_tokens.get(token_key)
            if failed_token is not None and failed_token == self._latest_tokens.get(token_key):
                restore()
                self._touch()

            log.debug(f"Ответ операции {token_key} (токен {token}) устарел.")
            return OperationStatus.STALE

        if not is_latest:
            log.debug(f"Ошибка устаревшей операции {token_key} (токен {token}) проигнорирована: {result.error}")
            return OperationStatus.STALE

        self._failed_tokens[token_key] = token
        restore()
        self._touch()

        log.warning(f"Операция {token_key} не сохранена, выполнен откат: {result.error}")
        return OperationStatus.FAILED
