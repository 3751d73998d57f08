"""
Result cache for contract and metadata lookups.

A bounded TTL cache with oldest-first eviction, deterministic key
generation and optional mirroring into a durable key-value store.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from .interfaces import KeyValueStore
from .types import BlockchainNetwork, StorageQuotaExceededError

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "sh1fr_blockchain_cache_"
DEFAULT_TTL = 5 * 60  # seconds
DEFAULT_MAX_SIZE = 100
CLEANUP_INTERVAL = 60  # seconds

# Marks an omitted ttl argument; ttl=None means "never expires"
_DEFAULT = object()
_MISSING = object()


@dataclass
class CacheEntry:
    """A cached value with its insertion and expiry timestamps"""
    value: Any
    timestamp: float
    expires_at: Optional[float] = None
    block_number: Optional[int] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def to_json(self) -> str:
        return json.dumps({
            "value": self.value,
            "timestamp": self.timestamp,
            "expires_at": self.expires_at,
            "block_number": self.block_number,
        })

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        data = json.loads(raw)
        expires_at = data.get("expires_at")
        return cls(
            value=data["value"],
            timestamp=float(data["timestamp"]),
            expires_at=float(expires_at) if expires_at is not None else None,
            block_number=data.get("block_number"),
        )


@dataclass(frozen=True)
class CacheKey:
    """Structured description of a cached query"""
    prefix: str
    address: Optional[str] = None
    chain_id: Optional[int] = None
    block_number: Optional[int] = None
    network: Optional[BlockchainNetwork] = None
    additional_params: Optional[Mapping[str, Any]] = None

    def render(self) -> str:
        """Flatten into the cache key string"""
        parts = [self.prefix]
        if self.address is not None:
            parts.append(f"addr:{self.address.lower()}")
        if self.chain_id is not None:
            parts.append(f"chain:{self.chain_id}")
        if self.block_number is not None:
            parts.append(f"block:{self.block_number}")
        if self.network is not None:
            network = self.network.value if isinstance(self.network, BlockchainNetwork) else self.network
            parts.append(f"net:{network}")
        if self.additional_params:
            for name in sorted(self.additional_params):
                parts.append(f"{name}:{self.additional_params[name]}")
        return "".join(f"{part}:" for part in parts)


def generate_key(prefix: str, address: Optional[str] = None, chain_id: Optional[int] = None,
                 block_number: Optional[int] = None, network: Optional[BlockchainNetwork] = None,
                 additional_params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Build a deterministic cache key.

    Components are emitted in a fixed order and additional parameters are
    sorted by name, so equal queries always map to the same key.
    """
    return CacheKey(
        prefix=prefix,
        address=address,
        chain_id=chain_id,
        block_number=block_number,
        network=network,
        additional_params=additional_params,
    ).render()


@dataclass
class CacheStats:
    """Current size and cumulative counters"""
    size: int
    hits: int
    misses: int
    evictions: int


class ResultCache:
    """
    TTL cache for blockchain lookups.

    Features:
    - Per-entry TTL with lazy expiry on read
    - Oldest-first eviction at a size bound
    - Optional persistence into a KeyValueStore, reloaded by initialize()
    - Periodic background sweep of expired entries
    """

    generate_key = staticmethod(generate_key)

    def __init__(self,
                 storage: Optional[KeyValueStore] = None,
                 *,
                 namespace: str = STORAGE_PREFIX,
                 default_ttl: Optional[float] = DEFAULT_TTL,
                 max_size: int = DEFAULT_MAX_SIZE,
                 persist_by_default: bool = True,
                 cleanup_interval: float = CLEANUP_INTERVAL,
                 clock: Callable[[], float] = time.time):
        self.storage = storage
        self.namespace = namespace
        self.default_ttl = default_ttl
        self.max_size = max_size
        self.persist_by_default = persist_by_default
        self.cleanup_interval = cleanup_interval
        self._clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._cleanup_task: Optional[asyncio.Task] = None
        self._storage_queue: Optional[asyncio.Queue] = None
        self._storage_worker: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings, storage: Optional[KeyValueStore] = None) -> "ResultCache":
        return cls(
            storage,
            namespace=settings.cache_namespace,
            default_ttl=settings.cache_default_ttl,
            max_size=settings.cache_max_size,
            persist_by_default=settings.cache_persist,
            cleanup_interval=settings.cache_cleanup_interval,
        )

    async def initialize(self):
        """Reload persisted entries and start the periodic expiry sweep (at most one per cache)"""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        await self.load()
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info(f"Result cache initialized (sweep every {self.cleanup_interval}s)")

    async def close(self):
        """Stop the background sweep and finish pending storage writes"""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        await self.flush()
        if self._storage_worker:
            self._storage_worker.cancel()
            try:
                await self._storage_worker
            except asyncio.CancelledError:
                pass
            self._storage_worker = None

    async def flush(self):
        """Wait until every queued storage write has been applied"""
        if self._storage_queue is not None:
            await self._storage_queue.join()

    def set(self, key: str, value: Any, *, ttl=_DEFAULT, max_size: Optional[int] = None,
            persist: Optional[bool] = None, block_number: Optional[int] = None) -> None:
        """
        Store a value.

        Args:
            key: Cache key, usually from generate_key()
            value: Value to cache; must be JSON-serializable to be persisted
            ttl: Seconds to live. Omitted uses the cache default, None never expires
            max_size: Size bound for this insertion, defaults to the cache's
            persist: Mirror into durable storage, defaults to the cache's setting
            block_number: Block the value was read at
        """
        if ttl is _DEFAULT:
            ttl = self.default_ttl
        now = self._clock()
        entry = CacheEntry(
            value=value,
            timestamp=now,
            expires_at=now + ttl if ttl is not None else None,
            block_number=block_number,
        )

        if key in self._entries:
            # Re-insert so the key moves to the newest position
            del self._entries[key]
        elif len(self._entries) >= (max_size or self.max_size):
            self._evict_oldest()

        self._entries[key] = entry

        should_persist = self.persist_by_default if persist is None else persist
        if should_persist and self.storage is not None:
            self._submit(partial(self._save_to_storage, key, entry))

    def get(self, key: str, default: Any = None) -> Any:
        """Get a live value, or default on a miss"""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return default

        if entry.is_expired(self._clock()):
            self._delete(key)
            self._misses += 1
            return default

        self._hits += 1
        return entry.value

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get the live entry without touching the hit/miss counters"""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired(self._clock()):
            self._delete(key)
            return False
        return True

    def invalidate(self, key_or_prefix: str) -> int:
        """Remove an exact key, or every key starting with the given prefix"""
        if key_or_prefix in self._entries:
            self._delete(key_or_prefix)
            return 1
        return self._delete_many(k for k in self._entries if k.startswith(key_or_prefix))

    def invalidate_for_address(self, address: str) -> int:
        """Remove every entry keyed on an address (case-insensitive)"""
        marker = f":addr:{address.lower()}:"
        return self._delete_many(k for k in self._entries if marker in k)

    def invalidate_for_chain(self, chain_id: int) -> int:
        """Remove every entry keyed on a chain id"""
        marker = f":chain:{chain_id}:"
        return self._delete_many(k for k in self._entries if marker in k)

    def clear(self) -> None:
        """Drop everything, in memory and in durable storage"""
        self._entries.clear()
        self._submit(self._clear_storage)

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
        )

    def cleanup_expired(self) -> int:
        """Remove expired entries regardless of access"""
        now = self._clock()
        return self._delete_many(k for k, e in self._entries.items() if e.is_expired(now))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    async def get_or_fetch(self, key: str, fetcher: Callable[[], Awaitable[Any]], **options) -> Any:
        """Return the cached value or fetch, store and return it"""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        value = await fetcher()
        if value is not None:
            self.set(key, value, **options)
        return value

    async def preload(self, keys: Iterable[str], fetcher: Callable[[str], Awaitable[Any]],
                      **options) -> int:
        """Fetch and cache every key not already present. Returns the number loaded."""
        async def load(key: str) -> bool:
            try:
                value = await fetcher(key)
            except Exception as e:
                logger.error(f"Error preloading cache key '{key}': {e}")
                return False
            if value is None:
                return False
            self.set(key, value, **options)
            return True

        missing = [key for key in keys if not self.has(key)]
        results = await asyncio.gather(*(load(key) for key in missing))
        return sum(1 for loaded in results if loaded)

    def _evict_oldest(self):
        if not self._entries:
            return
        # min() keeps the first of equal timestamps, i.e. the earliest inserted
        oldest_key = min(self._entries, key=lambda k: self._entries[k].timestamp)
        self._delete(oldest_key)
        self._evictions += 1
        logger.debug(f"Evicted cache entry '{oldest_key}'")

    def _delete(self, key: str) -> bool:
        removed = self._entries.pop(key, None) is not None
        if removed:
            self._submit(partial(self._remove_from_storage, key))
        return removed

    def _delete_many(self, keys: Iterable[str]) -> int:
        # Materialize first; deleting while iterating the dict is not allowed
        doomed: List[str] = list(keys)
        return sum(1 for key in doomed if self._delete(key))

    async def _cleanup_loop(self):
        """Periodic sweep of expired entries"""
        while True:
            try:
                await asyncio.sleep(self.cleanup_interval)
                removed = self.cleanup_expired()
                if removed:
                    logger.debug(f"Swept {removed} expired cache entries")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cache cleanup loop: {e}")

    def _submit(self, operation: Callable[[], Awaitable[None]]):
        """Queue a storage write; writes run one at a time, in submission order"""
        if self.storage is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, cache storage write skipped")
            return
        if self._storage_queue is None:
            self._storage_queue = asyncio.Queue()
        self._storage_queue.put_nowait(operation)
        if self._storage_worker is None or self._storage_worker.done():
            self._storage_worker = asyncio.create_task(self._storage_loop())

    async def _storage_loop(self):
        """Apply queued storage writes"""
        while True:
            operation = await self._storage_queue.get()
            try:
                await operation()
            except Exception as e:
                logger.error(f"Error in cache storage writer: {e}")
            finally:
                self._storage_queue.task_done()

    async def _save_to_storage(self, key: str, entry: CacheEntry):
        try:
            payload = entry.to_json()
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache entry '{key}' is not serializable, kept in memory only: {e}")
            return

        full_key = self.namespace + key
        try:
            await self.storage.set(full_key, payload)
        except StorageQuotaExceededError as e:
            logger.warning(f"Cache storage full, clearing and retrying: {e}")
            await self._clear_storage()
            try:
                await self.storage.set(full_key, payload)
            except Exception as retry_error:
                logger.error(f"Failed to persist cache entry '{key}' after clearing storage: {retry_error}")
        except Exception as e:
            logger.warning(f"Failed to persist cache entry '{key}': {e}")

    async def _remove_from_storage(self, key: str):
        try:
            await self.storage.remove(self.namespace + key)
        except Exception as e:
            logger.warning(f"Failed to remove cache entry '{key}' from storage: {e}")

    async def _clear_storage(self):
        try:
            for full_key in list(await self.storage.keys(self.namespace)):
                await self.storage.remove(full_key)
        except Exception as e:
            logger.warning(f"Failed to clear cache storage: {e}")

    async def load(self) -> int:
        """
        Reload persisted entries, dropping expired or corrupt ones.

        Keys already cached in memory keep their current value. Returns the
        number of entries restored.
        """
        if self.storage is None:
            return 0

        try:
            stored_keys = list(await self.storage.keys(self.namespace))
        except Exception as e:
            logger.warning(f"Failed to load cache from storage: {e}")
            return 0

        now = self._clock()
        loaded: List[tuple] = []
        for full_key in stored_keys:
            key = full_key[len(self.namespace):]
            try:
                raw = await self.storage.get(full_key)
                if raw is None:
                    continue
                entry = CacheEntry.from_json(raw)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Failed to parse cache entry for key '{key}': {e}")
                await self._remove_from_storage(key)
                continue
            except Exception as e:
                logger.warning(f"Failed to read cache entry for key '{key}': {e}")
                continue

            if entry.is_expired(now):
                await self._remove_from_storage(key)
            elif key not in self._entries:
                loaded.append((key, entry))

        for key, entry in sorted(loaded, key=lambda item: item[1].timestamp):
            self._entries[key] = entry

        if loaded:
            logger.info(f"Restored {len(loaded)} cache entries from storage")
        return len(loaded)
