"""
Keyed stores for drafts, document blobs and pricing overrides.

Values are text. Binary payloads are stored base64-encoded by their callers.
"""
import json
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Optional

import redis.asyncio as aioredis

from app.core.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal async key-value interface."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Create or replace a value."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys; returns how many existed."""

    @abstractmethod
    async def keys(self, prefix: str) -> list[str]:
        """All keys starting with ``prefix``."""

    async def get_json(self, key: str) -> Any:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable value at %s", key)
            return None

    async def put_json(self, key: str, value: Any) -> None:
        await self.put(key, json.dumps(value))


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store for tests and single-process development."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                removed += 1
        return removed

    async def keys(self, prefix: str) -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store shared by API processes and Celery workers."""

    def __init__(self, url: str) -> None:
        self._redis = aioredis.Redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(key)

    async def put(self, key: str, value: str) -> None:
        await self._redis.set(key, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._redis.delete(*keys)

    async def keys(self, prefix: str) -> list[str]:
        pattern = fnmatch_escape(prefix) + "*"
        return sorted([k async for k in self._redis.scan_iter(match=pattern)])

    async def close(self) -> None:
        await self._redis.aclose()


def fnmatch_escape(value: str) -> str:
    """Escape glob metacharacters for a Redis MATCH pattern."""
    return "".join(f"\\{c}" if c in "*?[]\\" else c for c in value)


@lru_cache()
def get_store() -> KeyValueStore:
    """Process-wide store selected by ``STORE_BACKEND``."""
    if settings.store_backend == "memory":
        return InMemoryKeyValueStore()
    return RedisKeyValueStore(settings.redis_url)
