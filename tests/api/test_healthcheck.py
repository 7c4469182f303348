from httpx import AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status


async def test_health_check_returns_ok(test_client: AsyncClient):
    """Проверяет, что /healthcheck сообщает о доступности БД и таблиц расписания."""

    # Act
    response = await test_client.get("/healthcheck")

    # Assert
    assert response.status_code == status.HTTP_200_OK

    response_json = response.json()
    assert response_json["api_status"] == "ok"
    assert response_json["dependencies"] == {"database": "ok", "schedule_tables": "ok"}
    assert response_json["missing_tables"] == []


async def test_health_check_reports_missing_schedule_table(test_client: AsyncClient, db_session: AsyncSession):
    """Без таблицы отметок сервис остается доступным, но сообщает о деградации."""

    # Arrange
    await db_session.execute(text("DROP TABLE mechanism_completions"))
    await db_session.commit()

    # Act
    response = await test_client.get("/healthcheck")

    # Assert
    assert response.status_code == status.HTTP_200_OK

    response_json = response.json()
    assert response_json["api_status"] == "degraded"
    assert response_json["dependencies"]["schedule_tables"] == "missing"
    assert response_json["missing_tables"] == ["mechanism_completions"]
