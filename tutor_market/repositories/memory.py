"""Process-local repository (tests, local demos)."""
from typing import TypeVar

from tutor_market.repositories.base import Repository

T = TypeVar("T")


class InMemoryRepository(Repository[T]):
    def __init__(self, key_attr: str = "id") -> None:
        self._key_attr = key_attr
        self._items: dict[str, T] = {}

    async def get(self, key: str) -> T | None:
        return self._items.get(key)

    async def upsert(self, entity: T) -> T:
        self._items[getattr(entity, self._key_attr)] = entity
        return entity

    async def list_all(self) -> list[T]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)
