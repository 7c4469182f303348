from datetime import date

import pytest
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.core.database import db
from src.api.models import Generation, Goal, Mechanism, MechanismCompletion, Profile
from src.scheduler import tasks
from src.scheduler.main import create_scheduler
from src.scheduling import Frequency, Role


@pytest.fixture
def scheduler_db(monkeypatch, db_session_factory: async_sessionmaker[AsyncSession]):
    """Подключает глобальный объект БД к тестовой базе."""
    monkeypatch.setattr(db, "session_factory", db_session_factory)


async def test_refresh_goal_progress_updates_snapshot(
    scheduler_db,
    db_session: AsyncSession,
    goal: Goal,
    daily_mechanism: Mechanism,
    weekly_mechanism: Mechanism,
):
    for completed_date in (date(2024, 1, 15), date(2024, 1, 16)):
        db_session.add(
            MechanismCompletion(
                mechanism_id=daily_mechanism.id, user_id=daily_mechanism.user_id, completed_date=completed_date
            )
        )
    await db_session.commit()

    updated = await tasks.refresh_goal_progress(today=date(2024, 3, 8))

    # Среднее 29% (2 из 7) и 0% (0 из 9)
    await db_session.refresh(goal)
    assert updated == 1
    assert goal.progress_percentage == 15

    # Повторный пересчет ничего не меняет
    assert await tasks.refresh_goal_progress(today=date(2024, 3, 8)) == 0


async def test_refresh_goal_progress_skips_completed_goals(
    scheduler_db, db_session: AsyncSession, goal: Goal, daily_mechanism: Mechanism
):
    goal.completed = True
    goal.progress_percentage = 100
    await db_session.commit()

    updated = await tasks.refresh_goal_progress(today=date(2024, 3, 8))

    await db_session.refresh(goal)
    assert updated == 0
    assert goal.progress_percentage == 100


async def test_refresh_goal_progress_continues_after_broken_generation(
    scheduler_db, db_session: AsyncSession, goal: Goal, daily_mechanism: Mechanism
):
    """Цель участника с перепутанными датами PL1/PL3 пропускается, остальные цели пересчитываются."""
    broken_generation = Generation(
        name="Поток с ошибкой", pl1_training_date=date(2024, 3, 15), pl3_training_date=date(2024, 1, 1)
    )
    db_session.add(broken_generation)
    await db_session.flush()

    broken_profile = Profile(
        name="Глеб", email="broken@example.com", role=Role.LIDER, generation_id=broken_generation.id
    )
    db_session.add(broken_profile)
    await db_session.flush()

    broken_goal = Goal(user_id=broken_profile.id, category="Финансы", description="Накопить подушку")
    db_session.add(broken_goal)
    await db_session.flush()

    db_session.add_all(
        [
            Mechanism(
                goal_id=broken_goal.id, user_id=broken_profile.id, description="Учет трат", frequency=Frequency.DAILY
            ),
            *(
                MechanismCompletion(
                    mechanism_id=daily_mechanism.id, user_id=daily_mechanism.user_id, completed_date=completed_date
                )
                for completed_date in (date(2024, 1, 15), date(2024, 1, 16))
            ),
        ]
    )
    await db_session.commit()

    updated = await tasks.refresh_goal_progress(today=date(2024, 3, 8))

    await db_session.refresh(goal)
    assert updated == 1
    assert goal.progress_percentage == 29


async def test_refresh_goal_progress_reports_failure(scheduler_db, monkeypatch):
    async def broken_refresh(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(tasks.GoalService, "refresh_progress_snapshots", broken_refresh)

    assert await tasks.refresh_goal_progress() == 0


def test_scheduler_registers_daily_progress_job():
    scheduler = create_scheduler()

    job = scheduler.get_job("refresh_goal_progress_job")

    assert job is not None
    assert isinstance(job.trigger, CronTrigger)
    assert job.func is tasks.refresh_goal_progress
