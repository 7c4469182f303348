"""
Хранилище расписания для клиента календаря.

Модуль описывает абстрактный интерфейс хранилища (`ScheduleStore`) и его
реализацию поверх HTTP API (`ApiScheduleStore`). Методы хранилища не
выбрасывают исключения: результат и ошибка возвращаются в `StoreResult`.
"""

from datetime import date
from typing import Any, NamedTuple, Protocol
from uuid import UUID

import httpx

from src.scheduling import (
    CompletionRecord,
    ConflictError,
    DateRange,
    MechanismRecord,
    PersistenceUnavailable,
    SchedulingError,
    ScheduleExceptionRecord,
)

from .config import settings
from .logging import client_log as log


class StoreResult(NamedTuple):
    """Результат операции хранилища: успех со значением или ошибка."""

    ok: bool
    value: Any = None
    error: SchedulingError | None = None

    @classmethod
    def success(cls, value: Any = None) -> "StoreResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: SchedulingError) -> "StoreResult":
        return cls(ok=False, error=error)

    @property
    def unavailable(self) -> bool:
        """Хранилище недоступно (например, таблица еще не создана)."""
        return isinstance(self.error, PersistenceUnavailable)


class ScheduleStore(Protocol):
    """Операции хранилища, которые использует контроллер календаря."""

    async def read_mechanisms_for_user(self, user_id: UUID, participation_id: UUID | None = None) -> StoreResult:
        """value: list[MechanismRecord]"""

    async def read_generation_window(self, user_id: UUID) -> StoreResult:
        """value: DateRange | None"""

    async def read_schedule_exceptions(self, user_id: UUID, start_date: date, end_date: date) -> StoreResult:
        """value: list[ScheduleExceptionRecord]"""

    async def upsert_schedule_exception(
        self, mechanism_id: UUID, user_id: UUID, original_date: date, new_date: date
    ) -> StoreResult:
        """value: ScheduleExceptionRecord"""

    async def create_completion(self, mechanism_id: UUID, user_id: UUID, completed_date: date) -> StoreResult:
        """value: bool (изменились ли данные)"""

    async def delete_completion(self, mechanism_id: UUID, user_id: UUID, completed_date: date) -> StoreResult:
        """value: bool (изменились ли данные)"""

    async def read_completions(self, mechanism_id: UUID, user_id: UUID, since_date: date | None) -> StoreResult:
        """value: list[CompletionRecord]"""


class StoreRequestError(Exception):
    """
    Ошибка HTTP-запроса к API.

    Используется внутри ApiScheduleStore, чтобы не пробрасывать httpx exceptions
    в контроллер: наружу ошибка выходит уже как SchedulingError в StoreResult.
    """

    def __init__(self, error: SchedulingError, status_code: int | None = None):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code


class ApiScheduleStore:
    """
    Хранилище расписания поверх HTTP API.

    Обеспечивает:
    - Аутентификацию запросов JWT токеном участника.
    - Преобразование ответов API в записи движка расписания.
    - Повтор вставки переноса как обновления при конфликте (409).
    - Перевод ошибок API в SchedulingError.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Инициализирует хранилище.

        Args:
            access_token (str): JWT токен участника.
            base_url (str | None): URL API v1. По умолчанию из настроек.
            timeout (float | None): Таймаут запроса в секундах. По умолчанию из настроек.
            transport (httpx.AsyncBaseTransport | None): Транспорт httpx (для тестов).
        """
        # Один клиент на время жизни хранилища для connection pooling
        self.http_client = httpx.AsyncClient(
            base_url=base_url or settings.API_V1_URL,
            timeout=timeout or settings.REQUEST_TIMEOUT,
            headers={"Authorization": f"Bearer {access_token}"},
            transport=transport,
        )

    async def close(self) -> None:
        """Корректно закрывает сессию HTTP-клиента."""
        await self.http_client.aclose()

    @staticmethod
    def _error_from_response(response: httpx.Response) -> SchedulingError:
        """Строит SchedulingError по ответу API с ошибкой."""
        try:
            body = response.json()
        except ValueError:
            body = None

        detail = body.get("detail") if isinstance(body, dict) else None

        if isinstance(detail, dict):
            message = detail.get("message") or response.text
            error_type = detail.get("error_type")
        else:
            message = str(detail) if detail else response.text
            error_type = None

        if response.status_code == 503 and error_type == PersistenceUnavailable.default_error_type:
            return PersistenceUnavailable(message, error_type=error_type)

        if response.status_code == 409:
            return ConflictError(message, error_type=error_type)

        return SchedulingError(
            f"Ошибка запроса к API: {response.status_code} - {message}",
            error_type=error_type or f"http_{response.status_code}",
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Внутренний метод для выполнения запроса к API.

        Args:
            method (str): HTTP метод ("GET", "POST", etc).
            endpoint (str): Путь API (например, "/users/me").
            json (dict | None): Тело запроса.
            params (dict | None): Query параметры.

        Returns:
            Any: Данные ответа (обычно dict или list).

        Raises:
            StoreRequestError: Ошибка сети или ответ API с кодом 4xx/5xx.
        """
        try:
            log.debug(f"API Request: {method} {endpoint}")
            response = await self.http_client.request(method, endpoint, json=json, params=params)

        except httpx.RequestError as exc:
            log.error(f"Ошибка сети на {method} {endpoint}: {exc}")
            raise StoreRequestError(SchedulingError("Ошибка сети при обращении к API.", "network_error")) from exc

        if response.is_error:
            error = self._error_from_response(response)
            log.warning(f"API вернул ошибку {response.status_code} на {method} {endpoint}: {error.error_type}")
            raise StoreRequestError(error, status_code=response.status_code)

        # Если ответ пустой (204 No Content), возвращаем None
        if response.status_code == 204:
            return None

        return response.json()

    async def _run(self, operation: str, coroutine: Any) -> StoreResult:
        """Выполняет запрос и упаковывает результат или ошибку в StoreResult."""
        try:
            return StoreResult.success(await coroutine)
        except StoreRequestError as exc:
            return StoreResult.failure(exc.error)
        except (ValueError, KeyError) as exc:
            # Некорректный ответ API (не JSON или не та схема)
            log.error(f"Некорректный ответ API в операции {operation}: {exc}")
            return StoreResult.failure(SchedulingError("Некорректный ответ API.", "invalid_response"))

    # --- Операции хранилища ---

    async def read_mechanisms_for_user(self, user_id: UUID, participation_id: UUID | None = None) -> StoreResult:
        async def fetch() -> list[MechanismRecord]:
            params = {"participation_id": str(participation_id)} if participation_id else None
            data = await self._request("GET", f"/users/{user_id}/mechanisms", params=params)
            return [MechanismRecord.model_validate(item) for item in data]

        return await self._run("read_mechanisms_for_user", fetch())

    async def read_generation_window(self, user_id: UUID) -> StoreResult:
        """
        Получает окно выполнения механизмов участника.

        Отсутствие дат потока (404) не является ошибкой: value = None.
        """
        async def fetch() -> DateRange | None:
            try:
                data = await self._request("GET", f"/users/{user_id}/generation-window")
            except StoreRequestError as exc:
                if exc.status_code != 404:
                    raise
                log.info(f"Для участника ID {user_id} не определено окно потока.")
                return None

            return DateRange(start=data["mechanisms_start"], end=data["mechanisms_end"])

        return await self._run("read_generation_window", fetch())

    async def read_schedule_exceptions(self, user_id: UUID, start_date: date, end_date: date) -> StoreResult:
        async def fetch() -> list[ScheduleExceptionRecord]:
            params = {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
            data = await self._request("GET", f"/users/{user_id}/schedule-exceptions", params=params)
            return [ScheduleExceptionRecord.model_validate(item) for item in data]

        return await self._run("read_schedule_exceptions", fetch())

    async def upsert_schedule_exception(
        self, mechanism_id: UUID, user_id: UUID, original_date: date, new_date: date
    ) -> StoreResult:
        """
        Записывает перенос вхождения.

        Сначала выполняется вставка (POST). Если перенос для этого вхождения уже
        существует (409), запрос повторяется как обновление (PUT).

        Returns:
            StoreResult: value - ScheduleExceptionRecord.
        """
        endpoint = f"/users/{user_id}/schedule-exceptions"
        payload = {
            "mechanism_id": str(mechanism_id),
            "original_date": original_date.isoformat(),
            "moved_to_date": new_date.isoformat(),
        }

        async def send(method: str) -> ScheduleExceptionRecord:
            data = await self._request(method, endpoint, json=payload)
            return ScheduleExceptionRecord.model_validate(data)

        result = await self._run("upsert_schedule_exception", send("POST"))

        if isinstance(result.error, ConflictError):
            log.info(f"Перенос механизма ID {mechanism_id} на {original_date} уже существует, выполняем обновление.")
            result = await self._run("upsert_schedule_exception", send("PUT"))

        return result

    async def _set_completion(self, method: str, mechanism_id: UUID, user_id: UUID, completed_date: date) -> StoreResult:
        endpoint = f"/users/{user_id}/mechanisms/{mechanism_id}/completions/{completed_date.isoformat()}"

        async def send() -> bool:
            data = await self._request(method, endpoint)
            return bool(data["changed"])

        return await self._run(f"{method} completion", send())

    async def create_completion(self, mechanism_id: UUID, user_id: UUID, completed_date: date) -> StoreResult:
        return await self._set_completion("PUT", mechanism_id, user_id, completed_date)

    async def delete_completion(self, mechanism_id: UUID, user_id: UUID, completed_date: date) -> StoreResult:
        return await self._set_completion("DELETE", mechanism_id, user_id, completed_date)

    async def read_completions(self, mechanism_id: UUID, user_id: UUID, since_date: date | None) -> StoreResult:
        async def fetch() -> list[CompletionRecord]:
            params = {"since": since_date.isoformat()} if since_date else None
            data = await self._request("GET", f"/users/{user_id}/mechanisms/{mechanism_id}/completions", params=params)
            return [
                CompletionRecord(mechanism_id=mechanism_id, user_id=user_id, completed_date=item) for item in data
            ]

        return await self._run("read_completions", fetch())
