"""
Базовый класс для сервисов.

Сервис - единица работы: он вызывает репозитории, а затем фиксирует
или откатывает транзакцию целиком.
"""

from typing import Any, Generic, TypeVar, cast
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.exceptions import NotFoundException
from src.api.core.logging import api_log as log
from src.api.models import Base as SQLAlchemyBaseModel
from src.api.repositories import BaseRepository

ModelType = TypeVar("ModelType", bound=SQLAlchemyBaseModel)
RepositoryType = TypeVar("RepositoryType", bound=BaseRepository)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseService(Generic[ModelType, RepositoryType, CreateSchemaType, UpdateSchemaType]):
    """
    Базовый сервис: поиск с проверкой существования и управление транзакциями.

    Attributes:
        repository (RepositoryType): Основной репозиторий сервиса.
    """

    def __init__(self, repository: RepositoryType):
        self.repository = repository

    @property
    def model_name(self) -> str:
        return self.repository.model.__name__

    async def get_by_id(self, db_session: AsyncSession, *, obj_id: UUID) -> ModelType:
        """
        Получает объект по ID.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            obj_id (UUID): ID объекта.

        Returns:
            ModelType: Найденный объект.

        Raises:
            NotFoundException: Объект не найден (error_type вида "goal_not_found").
        """
        db_obj = await self.repository.get_by_id(db_session, obj_id=obj_id)

        if db_obj is None:
            raise NotFoundException(
                message=f"{self.model_name} с ID {obj_id} не найден.",
                error_type=f"{self.model_name.lower()}_not_found",
                loc=["path", f"{self.model_name.lower()}_id"],
            )

        return cast(ModelType, db_obj)

    async def commit(self, db_session: AsyncSession, *, action: str) -> None:
        """
        Фиксирует транзакцию. При ошибке откатывает ее и пробрасывает исключение дальше.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            action (str): Описание операции для лога.
        """
        try:
            await db_session.commit()
        except Exception as exc:
            await db_session.rollback()
            log.opt(exception=True).error(f"Ошибка при фиксации операции '{action}': {exc!r}")
            raise

    async def update(
        self,
        db_session: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | dict[str, Any],
    ) -> ModelType:
        """
        Обновляет объект и фиксирует транзакцию.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            db_obj (ModelType): Обновляемый объект.
            obj_in (UpdateSchemaType | dict[str, Any]): Новые значения.

        Returns:
            ModelType: Обновленный объект.
        """
        obj_id = db_obj.id

        try:
            updated_obj = await self.repository.update(db_session, db_obj=db_obj, obj_in=obj_in)
        except Exception as exc:
            await db_session.rollback()
            log.opt(exception=True).error(f"Ошибка при обновлении {self.model_name} (ID: {obj_id}): {exc!r}")
            raise

        await self.commit(db_session, action=f"обновление {self.model_name} ID {obj_id}")
        return cast(ModelType, updated_obj)
