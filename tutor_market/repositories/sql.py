"""SQLAlchemy-backed repository. upsert commits so a write is durable before the caller's lock is released."""
from typing import TypeVar

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tutor_market.repositories.base import Repository

T = TypeVar("T")


class SqlRepository(Repository[T]):
    def __init__(self, db: AsyncSession, model: type[T]) -> None:
        self._db = db
        self._model = model
        self._pk = inspect(model).primary_key[0]

    async def get(self, key: str) -> T | None:
        # populate_existing: another writer (the sweep) may have committed since this session loaded the row
        result = await self._db.execute(
            select(self._model).where(self._pk == key).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert(self, entity: T) -> T:
        self._db.add(entity)
        try:
            await self._db.commit()
        except SQLAlchemyError:
            await self._db.rollback()
            raise
        return entity

    async def list_all(self) -> list[T]:
        result = await self._db.execute(
            select(self._model).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
