"""Логгер API."""

from src.core_shared.logging_setup import LogConfig, setup_logger

from .config import settings

api_log = setup_logger("API", LogConfig.from_settings(settings))
