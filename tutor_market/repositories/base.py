"""Persistence interface the escrow, review and registry services depend on."""
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Keyed collection with load / upsert / load-all semantics."""

    @abstractmethod
    async def get(self, key: str) -> T | None:
        ...

    @abstractmethod
    async def upsert(self, entity: T) -> T:
        """Insert or replace the entity; durable once this returns."""

    @abstractmethod
    async def list_all(self) -> list[T]:
        ...
