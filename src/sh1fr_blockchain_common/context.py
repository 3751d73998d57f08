"""
Wiring for one explicit set of connection services.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .cache import ResultCache
from .config import ChainSettings, get_settings
from .contracts import ContractService
from .interfaces import InjectedWallet, KeyValueStore
from .provider import ConnectionManager
from .registry import ChainAdapterRegistry
from .storage import IgniteStore, MemoryStore

logger = logging.getLogger(__name__)


@dataclass
class BlockchainContext:
    """Registry, cache, connection manager and contract service sharing one configuration"""
    settings: ChainSettings
    registry: ChainAdapterRegistry
    cache: ResultCache
    manager: ConnectionManager
    contracts: ContractService

    @classmethod
    def create(cls, settings: Optional[ChainSettings] = None,
               storage: Optional[KeyValueStore] = None,
               wallet: Optional[InjectedWallet] = None) -> "BlockchainContext":
        settings = settings or get_settings()
        if storage is None:
            if settings.ignite_enabled:
                storage = IgniteStore(settings.ignite_host, settings.ignite_port,
                                      settings.ignite_cache_name)
            else:
                storage = MemoryStore()

        registry = ChainAdapterRegistry(transaction_timeout=settings.transaction_timeout)
        cache = ResultCache.from_settings(settings, storage)
        manager = ConnectionManager(registry, wallet=wallet, settings=settings)
        return cls(
            settings=settings,
            registry=registry,
            cache=cache,
            manager=manager,
            contracts=ContractService(manager, cache),
        )

    async def start(self):
        """Restore persisted cache entries and start the expiry sweep"""
        await self.cache.initialize()
        logger.info("Blockchain context started")

    async def close(self):
        """Disconnect, drop adapters, drain the cache and close its storage"""
        await self.manager.disconnect()
        await self.registry.clear_adapters()
        await self.cache.close()
        if self.cache.storage is not None:
            await self.cache.storage.close()
        logger.info("Blockchain context closed")
