from datetime import date
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.api.core.config import settings
from src.api.core.database import engine_options
from src.api.core.security import create_access_token
from src.api.models import Base, Generation, Goal, Mechanism, Profile
from src.scheduling import Frequency, Role

# URL тестовой базы данных (SQLite в памяти)
# Внимание: значение должно совпадать с DATABASE_URL_OVERRIDE в pyproject.toml
TEST_DATABASE_URL = "sqlite+aiosqlite://"


# --- ФИКСТУРА БЕЗОПАСНОСТИ ---


@pytest.fixture(scope="session", autouse=True)
def verify_test_environment():
    """
    Проверяет, что тесты запускаются с корректными настройками окружения.

    Эта фикстура выполняется автоматически перед началом тестовой сессии.
    """
    # Проверяем режим разработки
    assert settings.DEVELOPMENT is True, (
        "❌ ОШИБКА КОНФИГУРАЦИИ: Тесты должны запускаться в режиме разработки/тестирования (DEVELOPMENT=True). "
        "Проверьте настройки [tool.pytest.ini_options] в pyproject.toml"
    )

    # Проверяем, что подключение не к продакшен/основной базе данных
    assert settings.DATABASE_URL == TEST_DATABASE_URL, (
        f"❌ ОПАСНОСТЬ: Тесты пытаются использовать базу '{settings.DATABASE_URL}'. "
        "Тесты должны работать с SQLite в памяти."
    )


# --- ГЛОБАЛЬНЫЕ ФИКСТУРЫ ДЛЯ ВСЕГО ПРОЕКТА ---


@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Создает движок SQLAlchemy с чистой схемой для каждого теста."""
    engine = create_async_engine(TEST_DATABASE_URL, **engine_options(TEST_DATABASE_URL))

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def db_session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Создает фабрику асинхронных сессий."""
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(db_session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """
    Предоставляет сессию БД для каждого теста.
    Эта фикстура может быть использована тестами API, планировщика и т.д.
    """
    async with db_session_factory() as session:
        yield session


# --- ТЕСТОВЫЕ ДАННЫЕ ---


@pytest_asyncio.fixture(scope="function")
async def generation(db_session: AsyncSession) -> Generation:
    """Поток с окном механизмов 2024-01-10 - 2024-03-08."""
    generation = Generation(
        name="Поток 42",
        pl1_training_date=date(2024, 1, 1),
        pl3_training_date=date(2024, 3, 15),
    )
    db_session.add(generation)
    await db_session.commit()
    return generation


@pytest_asyncio.fixture(scope="function")
async def senior(db_session: AsyncSession, generation: Generation) -> Profile:
    profile = Profile(name="Анна", email="senior@example.com", role=Role.SENIOR, generation_id=generation.id)
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest_asyncio.fixture(scope="function")
async def lider(db_session: AsyncSession, generation: Generation, senior: Profile) -> Profile:
    profile = Profile(
        name="Борис",
        email="lider@example.com",
        role=Role.LIDER,
        generation_id=generation.id,
        supervisor_id=senior.id,
    )
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest_asyncio.fixture(scope="function")
async def outsider(db_session: AsyncSession, generation: Generation) -> Profile:
    """Лидер без руководителя, не связанный с остальными участниками."""
    profile = Profile(name="Вера", email="outsider@example.com", role=Role.LIDER, generation_id=generation.id)
    db_session.add(profile)
    await db_session.commit()
    return profile


@pytest_asyncio.fixture(scope="function")
async def goal(db_session: AsyncSession, lider: Profile) -> Goal:
    goal = Goal(user_id=lider.id, category="Здоровье", description="Пробежать полумарафон")
    db_session.add(goal)
    await db_session.commit()
    return goal


@pytest_asyncio.fixture(scope="function")
async def daily_mechanism(db_session: AsyncSession, lider: Profile, goal: Goal) -> Mechanism:
    """Ежедневный механизм с собственным периодом 2024-01-15 - 2024-01-21 (7 вхождений)."""
    mechanism = Mechanism(
        goal_id=goal.id,
        user_id=lider.id,
        description="Пробежка 5 км",
        frequency=Frequency.DAILY,
        start_date=date(2024, 1, 15),
        end_date=date(2024, 1, 21),
    )
    db_session.add(mechanism)
    await db_session.commit()
    return mechanism


@pytest_asyncio.fixture(scope="function")
async def weekly_mechanism(db_session: AsyncSession, lider: Profile, goal: Goal) -> Mechanism:
    """Еженедельный механизм без собственных дат: период равен окну потока (9 пятниц)."""
    mechanism = Mechanism(
        goal_id=goal.id,
        user_id=lider.id,
        description="Растяжка",
        frequency=Frequency.WEEKLY,
    )
    db_session.add(mechanism)
    await db_session.commit()
    return mechanism


# --- ТОКЕНЫ ---


def auth_headers_for(profile: Profile) -> dict[str, str]:
    token = create_access_token(profile.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def lider_auth_headers(lider: Profile) -> dict[str, str]:
    return auth_headers_for(lider)


@pytest.fixture
def senior_auth_headers(senior: Profile) -> dict[str, str]:
    return auth_headers_for(senior)


@pytest.fixture
def outsider_auth_headers(outsider: Profile) -> dict[str, str]:
    return auth_headers_for(outsider)
