from datetime import date
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio

from src.calendar_client.store import ApiScheduleStore
from src.scheduling import ConflictError, DateRange, Frequency, PersistenceUnavailable

# Помечаем все тесты в модуле как асинхронные
pytestmark = pytest.mark.asyncio

BASE_URL = "http://test/api/v1"
USER_ID = uuid4()
MECHANISM_ID = uuid4()


class RecordingHandler:
    """Обработчик MockTransport: отвечает по таблице маршрутов и запоминает запросы."""

    def __init__(self, routes: dict[tuple[str, str], httpx.Response | Exception]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get((request.method, request.url.path))

        if response is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        if isinstance(response, Exception):
            raise response
        return response


@pytest_asyncio.fixture
async def make_store():
    """Фабрика хранилищ с подмененным транспортом. Закрывает созданные клиенты."""
    stores: list[ApiScheduleStore] = []

    def factory(handler: RecordingHandler) -> ApiScheduleStore:
        store = ApiScheduleStore("test-token", base_url=BASE_URL, transport=httpx.MockTransport(handler))
        stores.append(store)
        return store

    yield factory

    for store in stores:
        await store.close()


async def test_read_mechanisms_converts_records(make_store):
    handler = RecordingHandler(
        {
            ("GET", f"/api/v1/users/{USER_ID}/mechanisms"): httpx.Response(
                200,
                json=[
                    {
                        "id": str(MECHANISM_ID),
                        "goal_id": str(uuid4()),
                        "user_id": str(USER_ID),
                        "description": "Пробежка",
                        "frequency": "3x_week",
                        "start_date": "2024-01-15",
                        "end_date": None,
                        "goal_description": "Полумарафон",
                        "goal_category": "Здоровье",
                    }
                ],
            )
        }
    )
    store = make_store(handler)

    result = await store.read_mechanisms_for_user(USER_ID)

    assert result.ok is True
    [mechanism] = result.value
    assert mechanism.id == MECHANISM_ID
    assert mechanism.frequency is Frequency.THREE_TIMES_A_WEEK
    assert mechanism.start_date == date(2024, 1, 15)
    assert handler.requests[0].headers["Authorization"] == "Bearer test-token"


async def test_missing_generation_window_is_not_an_error(make_store):
    store = make_store(RecordingHandler({}))

    result = await store.read_generation_window(USER_ID)

    assert result.ok is True
    assert result.value is None


async def test_generation_window_is_parsed(make_store):
    handler = RecordingHandler(
        {
            ("GET", f"/api/v1/users/{USER_ID}/generation-window"): httpx.Response(
                200, json={"mechanisms_start": "2024-01-10", "mechanisms_end": "2024-03-08"}
            )
        }
    )
    store = make_store(handler)

    result = await store.read_generation_window(USER_ID)

    assert result.value == DateRange(start=date(2024, 1, 10), end=date(2024, 3, 8))


async def test_upsert_retries_as_update_on_conflict(make_store):
    endpoint = f"/api/v1/users/{USER_ID}/schedule-exceptions"
    record = {
        "mechanism_id": str(MECHANISM_ID),
        "user_id": str(USER_ID),
        "original_date": "2024-01-16",
        "moved_to_date": "2024-01-20",
    }
    handler = RecordingHandler(
        {
            ("POST", endpoint): httpx.Response(
                409,
                json={"detail": {"message": "Перенос уже существует.", "error_type": "schedule_exception_exists"}},
            ),
            ("PUT", endpoint): httpx.Response(200, json=record),
        }
    )
    store = make_store(handler)

    result = await store.upsert_schedule_exception(MECHANISM_ID, USER_ID, date(2024, 1, 16), date(2024, 1, 20))

    assert result.ok is True
    assert result.value.moved_to_date == date(2024, 1, 20)
    assert [request.method for request in handler.requests] == ["POST", "PUT"]


async def test_conflict_without_retry_path_is_reported(make_store):
    handler = RecordingHandler(
        {
            ("POST", f"/api/v1/users/{USER_ID}/schedule-exceptions"): httpx.Response(
                409, json={"detail": {"message": "Конфликт.", "error_type": "schedule_exception_exists"}}
            ),
            ("PUT", f"/api/v1/users/{USER_ID}/schedule-exceptions"): httpx.Response(
                409, json={"detail": {"message": "Конфликт.", "error_type": "schedule_exception_exists"}}
            ),
        }
    )
    store = make_store(handler)

    result = await store.upsert_schedule_exception(MECHANISM_ID, USER_ID, date(2024, 1, 16), date(2024, 1, 20))

    assert result.ok is False
    assert isinstance(result.error, ConflictError)
    assert result.error.error_type == "schedule_exception_exists"


async def test_missing_table_is_reported_as_unavailable(make_store):
    handler = RecordingHandler(
        {
            ("GET", f"/api/v1/users/{USER_ID}/schedule-exceptions"): httpx.Response(
                503,
                json={"detail": {"message": "Хранилище недоступно.", "error_type": "persistence_unavailable"}},
            )
        }
    )
    store = make_store(handler)

    result = await store.read_schedule_exceptions(USER_ID, date(2024, 1, 1), date(2024, 1, 31))

    assert result.ok is False
    assert result.unavailable is True
    assert isinstance(result.error, PersistenceUnavailable)


async def test_server_error_is_not_unavailable(make_store):
    handler = RecordingHandler(
        {
            ("GET", f"/api/v1/users/{USER_ID}/schedule-exceptions"): httpx.Response(
                500, json={"detail": {"message": "Ошибка базы данных.", "error_type": "database_error"}}
            )
        }
    )
    store = make_store(handler)

    result = await store.read_schedule_exceptions(USER_ID, date(2024, 1, 1), date(2024, 1, 31))

    assert result.unavailable is False
    assert result.error.error_type == "database_error"


async def test_completion_toggle_reports_change(make_store):
    endpoint = f"/api/v1/users/{USER_ID}/mechanisms/{MECHANISM_ID}/completions/2024-01-16"
    handler = RecordingHandler(
        {
            ("PUT", endpoint): httpx.Response(200, json={"changed": True}),
            ("DELETE", endpoint): httpx.Response(200, json={"changed": False}),
        }
    )
    store = make_store(handler)

    created = await store.create_completion(MECHANISM_ID, USER_ID, date(2024, 1, 16))
    deleted = await store.delete_completion(MECHANISM_ID, USER_ID, date(2024, 1, 16))

    assert created.value is True
    assert deleted.value is False


async def test_read_completions_passes_since(make_store):
    handler = RecordingHandler(
        {
            ("GET", f"/api/v1/users/{USER_ID}/mechanisms/{MECHANISM_ID}/completions"): httpx.Response(
                200, json=["2024-01-15", "2024-01-16"]
            )
        }
    )
    store = make_store(handler)

    result = await store.read_completions(MECHANISM_ID, USER_ID, date(2024, 1, 10))

    assert [record.completed_date for record in result.value] == [date(2024, 1, 15), date(2024, 1, 16)]
    assert handler.requests[0].url.params["since"] == "2024-01-10"


async def test_network_error_is_wrapped(make_store):
    handler = RecordingHandler(
        {
            ("GET", f"/api/v1/users/{USER_ID}/mechanisms"): httpx.ConnectError("Connection refused"),
        }
    )
    store = make_store(handler)

    result = await store.read_mechanisms_for_user(USER_ID)

    assert result.ok is False
    assert result.error.error_type == "network_error"


async def test_malformed_response_is_reported(make_store):
    handler = RecordingHandler(
        {
            ("GET", f"/api/v1/users/{USER_ID}/generation-window"): httpx.Response(200, json={"unexpected": True}),
        }
    )
    store = make_store(handler)

    result = await store.read_generation_window(USER_ID)

    assert result.ok is False
    assert result.error.error_type == "invalid_response"
