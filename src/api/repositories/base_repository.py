"""Базовый репозиторий с общими операциями над записями расписания."""

from typing import Any, Generic, Iterable, Sequence, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import ColumnElement, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.logging import api_log as log
from src.api.models import Base as SQLAlchemyBaseModel

# Обобщенные типы: модель SQLAlchemy и схемы Pydantic для создания и обновления
ModelType = TypeVar("ModelType", bound=SQLAlchemyBaseModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Базовый класс репозитория.

    Репозиторий только готовит изменения в сессии (flush), фиксацию транзакции
    выполняет сервисный слой.

    Attributes:
        model: Класс модели SQLAlchemy, с которым работает репозиторий.
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    async def get_by_id(self, db_session: AsyncSession, *, obj_id: UUID) -> ModelType | None:
        """
        Получает запись по ID.

        Объект из identity map перечитывается из БД: после отката транзакции
        его атрибуты могли истечь.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            obj_id (UUID): Идентификатор записи.

        Returns:
            ModelType | None: Экземпляр модели или None.
        """
        statement = (
            select(self.model).where(self.model.id == obj_id).execution_options(populate_existing=True)
        )
        result = await db_session.execute(statement)
        instance = result.unique().scalar_one_or_none()

        if instance is None:
            log.debug(f"Запись {self.model.__name__} с ID {obj_id} не найдена.")

        return instance

    async def get_by_key(self, db_session: AsyncSession, **key: Any) -> ModelType | None:
        """
        Получает запись по составному ключу.

        Пример: get_by_key(session, mechanism_id=..., user_id=..., completed_date=...)

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            **key: Значения полей ключа (объединяются через AND).

        Returns:
            ModelType | None: Экземпляр модели или None.
        """
        statement = select(self.model).filter_by(**key).limit(1)
        result = await db_session.execute(statement)
        return result.unique().scalar_one_or_none()

    async def get_all(
        self,
        db_session: AsyncSession,
        *filters: ColumnElement[bool],
        order_by: Iterable[ColumnElement[Any]] = (),
    ) -> Sequence[ModelType]:
        """
        Получает все записи, удовлетворяющие фильтрам.

        Выборки расписания ограничены участником и окном потока, поэтому без пагинации.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            *filters (ColumnElement[bool]): Критерии фильтрации SQLAlchemy.
            order_by (Iterable[ColumnElement]): Поля сортировки.

        Returns:
            Sequence[ModelType]: Список экземпляров модели.
        """
        statement = select(self.model).where(*filters).order_by(*order_by)
        result = await db_session.execute(statement)
        return result.unique().scalars().all()

    async def create(self, db_session: AsyncSession, *, obj_in: CreateSchemaType) -> ModelType:
        """
        Добавляет новую запись в сессию.

        Нарушение уникального ключа (IntegrityError) проявляется здесь, на flush,
        и обрабатывается сервисом.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            obj_in (CreateSchemaType): Данные новой записи.

        Returns:
            ModelType: Созданный экземпляр модели (с ID и временными метками).
        """
        db_obj = self.model(**obj_in.model_dump())
        db_session.add(db_obj)

        await db_session.flush()
        await db_session.refresh(db_obj)

        log.debug(f"{self.model.__name__} ID {db_obj.id} добавлен в сессию.")
        return db_obj

    async def update(
        self,
        db_session: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: UpdateSchemaType | dict[str, Any],
    ) -> ModelType:
        """
        Обновляет поля записи.

        Из схемы берутся только явно переданные поля (exclude_unset), поэтому
        явный None сбрасывает значение, а пропущенное поле не меняется.

        Args:
            db_session (AsyncSession): Асинхронная сессия базы данных.
            db_obj (ModelType): Обновляемый экземпляр.
            obj_in (UpdateSchemaType | dict[str, Any]): Новые значения.

        Returns:
            ModelType: Обновленный экземпляр модели.

        Raises:
            ValueError: Поле отсутствует в модели.
        """
        update_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)

        unknown = [field for field in update_data if not hasattr(self.model, field)]
        if unknown:
            raise ValueError(f"У модели {self.model.__name__} нет полей: {', '.join(unknown)}")

        for field, value in update_data.items():
            setattr(db_obj, field, value)

        await db_session.flush()
        await db_session.refresh(db_obj)

        log.debug(f"{self.model.__name__} ID {db_obj.id} обновлен: {sorted(update_data)}")
        return db_obj

    async def delete(self, db_session: AsyncSession, *, db_obj: ModelType) -> None:
        """Удаляет запись в рамках текущей транзакции."""
        obj_id = db_obj.id

        await db_session.delete(db_obj)
        await db_session.flush()

        log.debug(f"{self.model.__name__} ID {obj_id} удален из сессии.")
