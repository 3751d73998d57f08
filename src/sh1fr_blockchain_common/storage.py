"""
Durable key-value stores backing the result cache.

Provides an Apache Ignite store for deployments and an in-memory store
for development and tests. Both are async, so a write never blocks the
event loop.
"""

import logging
from typing import Optional, Dict, List

from pyignite import AioClient
from pyignite.exceptions import CacheError, SocketError, ReconnectError

from .types import CacheStorageError, StorageQuotaExceededError

logger = logging.getLogger(__name__)

# Default Ignite configuration
IGNITE_HOST = "localhost"
IGNITE_PORT = 10800
CACHE_NAME = "sh1fr_blockchain_cache"


class MemoryStore:
    """Dict-backed store with an optional entry quota"""

    def __init__(self, quota: Optional[int] = None):
        self.quota = quota
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        if (self.quota is not None and key not in self._data
                and len(self._data) >= self.quota):
            raise StorageQuotaExceededError(f"Storage quota of {self.quota} entries exceeded")
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._data if key.startswith(prefix)]

    async def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._data)


class IgniteStore:
    """Store backed by an Apache Ignite cache (async thin client)"""

    def __init__(self, host: str = IGNITE_HOST, port: int = IGNITE_PORT,
                 cache_name: str = CACHE_NAME):
        self.host = host
        self.port = port
        self.cache_name = cache_name
        self.client = None
        self.cache = None

    async def connect(self):
        """Connect to Ignite cluster"""
        if self.cache is not None:
            return
        try:
            self.client = AioClient()
            await self.client.connect(self.host, self.port)
            self.cache = await self.client.get_or_create_cache(self.cache_name)
            logger.info(f"Connected to Ignite async at {self.host}:{self.port}")
        except (SocketError, ReconnectError, CacheError) as e:
            self.client = None
            self.cache = None
            raise CacheStorageError(f"Failed to connect to Ignite: {e}") from e

    async def close(self):
        """Disconnect from Ignite"""
        if self.client:
            await self.client.close()
        self.client = None
        self.cache = None

    async def _ensure_cache(self):
        if self.cache is None:
            await self.connect()
        return self.cache

    async def get(self, key: str) -> Optional[str]:
        cache = await self._ensure_cache()
        try:
            return await cache.get(key)
        except CacheError as e:
            raise CacheStorageError(f"Ignite get failed for '{key}': {e}") from e

    async def set(self, key: str, value: str) -> None:
        cache = await self._ensure_cache()
        try:
            await cache.put(key, value)
        except CacheError as e:
            # Ignite reports a full data region as a generic cache error
            if "out of memory" in str(e).lower():
                raise StorageQuotaExceededError(f"Ignite data region full: {e}") from e
            raise CacheStorageError(f"Ignite put failed for '{key}': {e}") from e

    async def remove(self, key: str) -> None:
        cache = await self._ensure_cache()
        try:
            await cache.remove_key(key)
        except CacheError as e:
            raise CacheStorageError(f"Ignite remove failed for '{key}': {e}") from e

    async def keys(self, prefix: str = "") -> List[str]:
        cache = await self._ensure_cache()
        try:
            async with cache.scan() as cursor:
                return [k async for k, _ in cursor if isinstance(k, str) and k.startswith(prefix)]
        except CacheError as e:
            raise CacheStorageError(f"Ignite scan failed: {e}") from e
