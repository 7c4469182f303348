"""Логгер клиента календаря."""

from src.core_shared.logging_setup import LogConfig, setup_logger

from .config import settings

client_log = setup_logger("CalendarClient", LogConfig.from_settings(settings))
