"""Настройка Sentry SDK для API и планировщика."""

from logging import ERROR, INFO

import sentry_sdk
from sentry_sdk.integrations import Integration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from .config import AppSettings
from .logging_setup import LogConfig, setup_logger


def _integrations(service_name: str) -> list[Integration]:
    integrations: list[Integration] = [
        SqlalchemyIntegration(),
        HttpxIntegration(),
        # INFO и выше попадают в breadcrumbs, ERROR и выше становятся событиями
        LoguruIntegration(level=INFO, event_level=ERROR),
    ]
    if service_name == "API":
        integrations += [
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ]
    return integrations


def setup_sentry(settings: AppSettings, service_name: str) -> bool:
    """
    Инициализирует Sentry SDK, если задан SENTRY_DSN.

    События помечаются тегом `service`, чтобы ошибки API и планировщика
    различались в одном проекте Sentry.

    Args:
        settings: Настройки сервиса.
        service_name: Имя сервиса ("API", "Scheduler").

    Returns:
        bool: True, если Sentry инициализирован.
    """
    sentry_log = setup_logger("SentrySetup", LogConfig.from_settings(settings))

    if not settings.SENTRY_DSN:
        sentry_log.info("SENTRY_DSN не задан, Sentry отключен.")
        return False

    environment = "production" if settings.PRODUCTION else "development"
    traces_sample_rate = settings.SENTRY_TRACES_SAMPLE_RATE
    if traces_sample_rate is None:
        traces_sample_rate = 0.1 if settings.PRODUCTION else 1.0

    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=_integrations(service_name),
            environment=environment,
            traces_sample_rate=traces_sample_rate,
            profiles_sample_rate=traces_sample_rate,
            release=f"{settings.PROJECT_NAME}@{settings.API_VERSION}",
        )
        sentry_sdk.set_tag("service", service_name)
    except Exception as exc:
        sentry_log.opt(exception=True).error(f"Ошибка инициализации Sentry SDK: {exc!r}")
        return False

    sentry_log.info(
        f"Sentry инициализирован для {service_name}: DSN ***{settings.SENTRY_DSN[-6:]}, "
        f"environment {environment}, traces {traces_sample_rate}"
    )
    return True
