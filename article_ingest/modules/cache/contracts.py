from abc import ABC, abstractmethod


class CacheContract(ABC):
    """Key/value cache shared by in-flight articles.

    Values are JSON strings. ``get`` returns None on a miss; both operations
    raise ``CacheError`` when the backend fails.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...
