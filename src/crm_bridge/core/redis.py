"""Deployment-scoped Redis key-value store with automatic key prefixing.

Every key is prefixed with d:{deployment_id}: so several bridge deployments
can share one Redis without seeing each other's cursor.
"""

from __future__ import annotations

import redis.asyncio as aioredis

from src.crm_bridge.config import get_settings
from src.crm_bridge.core.store import KeyValueStore

# ── Module-level Redis pool (lazy init) ─────────────────────────────────────

_redis_pool: aioredis.Redis | None = None


def get_redis_pool() -> aioredis.Redis:
    """Get or create the Redis connection pool singleton."""
    global _redis_pool
    if _redis_pool is None:
        settings = get_settings()
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None


# ── Deployment Redis Store ─────────────────────────────────────────────────


class RedisKeyValueStore(KeyValueStore):
    """KeyValueStore over redis.asyncio, scoped to one deployment."""

    def __init__(self, redis_client: aioredis.Redis, deployment_id: str) -> None:
        self._redis = redis_client
        self._deployment_id = deployment_id

    def _key(self, key: str) -> str:
        """Generate a deployment-prefixed key: d:{deployment_id}:{key}."""
        return f"d:{self._deployment_id}:{key}"

    async def get(self, key: str) -> str | None:
        return await self._redis.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self._redis.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))


def get_deployment_store() -> RedisKeyValueStore:
    """Get a RedisKeyValueStore using the global pool and configured deployment."""
    return RedisKeyValueStore(get_redis_pool(), get_settings().DEPLOYMENT_ID)
