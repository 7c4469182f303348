"""
Сервис планировщика: ежедневный пересчет сохраненного прогресса целей.

Запуск: `python -m src.scheduler.main`. Останавливается по SIGINT/SIGTERM,
дожидаясь завершения выполняющейся задачи.
"""

import asyncio
import signal
from datetime import datetime, timezone

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.api.core.database import db
from src.core_shared.logging_setup import LogConfig, intercept_standard_logging, setup_logger
from src.core_shared.sentry_sdk_setup import setup_sentry
from src.scheduler.config import settings
from src.scheduler.tasks import refresh_goal_progress

log = setup_logger("SchedulerMain", LogConfig.from_settings(settings))

setup_sentry(settings, service_name="Scheduler")

# Логи apscheduler и SQLAlchemy пишем через Loguru
intercept_standard_logging(log)

REFRESH_JOB_ID = "refresh_goal_progress_job"


def log_job_problem(event: JobExecutionEvent) -> None:
    if event.code == EVENT_JOB_MISSED:
        log.warning(f"Задача {event.job_id} пропущена: планировщик не успел запустить ее в {event.scheduled_run_time}")
    else:
        log.opt(exception=event.exception).error(f"Задача {event.job_id} завершилась ошибкой")


def create_scheduler() -> AsyncIOScheduler:
    """
    Создает (но не запускает) планировщик с задачей пересчета прогресса целей.

    Задача выполняется раз в сутки в PROGRESS_REFRESH_HOUR:00 UTC. Пропущенные
    запуски (сервис был остановлен) схлопываются в один, если с момента запуска
    прошло не больше часа.
    """
    scheduler = AsyncIOScheduler(timezone="UTC")

    scheduler.add_job(
        refresh_goal_progress,
        trigger=CronTrigger(hour=settings.PROGRESS_REFRESH_HOUR, minute=0, timezone="UTC"),
        id=REFRESH_JOB_ID,
        name="Ежедневный пересчет прогресса целей",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=3600,
    )
    scheduler.add_listener(log_job_problem, EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    return scheduler


async def main() -> None:
    log.info("Запуск сервиса планировщика...")

    try:
        await db.connect()
    except RuntimeError as exc:
        log.critical(f"Планировщик не запущен, нет подключения к БД: {exc}")
        return

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    scheduler = create_scheduler()
    scheduler.start()

    if settings.PROGRESS_REFRESH_ON_STARTUP:
        scheduler.modify_job(REFRESH_JOB_ID, next_run_time=datetime.now(timezone.utc))

    next_run = scheduler.get_job(REFRESH_JOB_ID).next_run_time
    log.info(f"Планировщик запущен, следующий пересчет прогресса: {next_run}")

    try:
        await stop_event.wait()
        log.info("Получен сигнал остановки планировщика.")
    finally:
        # wait=True: выполняющийся пересчет успевает зафиксировать транзакцию
        scheduler.shutdown(wait=True)
        await db.disconnect()
        log.info("Планировщик остановлен.")


if __name__ == "__main__":
    asyncio.run(main())
