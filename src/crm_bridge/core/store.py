"""Key-value store interface for persisted sync state.

The score sync keeps its resumable cursor in a KeyValueStore injected by the
host. RedisKeyValueStore (core/redis.py) is the production backend;
InMemoryKeyValueStore serves tests and single-process local runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Minimal async string key-value interface."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value under key, replacing any previous one."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        ...


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. State lives only as long as the instance."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)
