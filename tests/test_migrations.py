from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"


def table_names(url: str) -> set[str]:
    engine = create_engine(url)
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_migrations_create_and_drop_schedule_schema(tmp_path: Path):
    """Миграции создают таблицы расписания в чистой БД и полностью откатываются."""
    url = f"sqlite:///{tmp_path / 'migrations.db'}"
    config = Config(str(ALEMBIC_INI))
    config.set_main_option("sqlalchemy.url", url)

    command.upgrade(config, "head")

    assert {
        "generations",
        "profiles",
        "goals",
        "mechanisms",
        "mechanism_schedule_exceptions",
        "mechanism_completions",
    } <= table_names(url)

    command.downgrade(config, "base")

    assert table_names(url) <= {"alembic_version"}
