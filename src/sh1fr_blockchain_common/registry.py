"""
Registry creating and reusing one chain adapter per network.
"""

import asyncio
import logging
from functools import partial
from typing import Dict, Optional, Set, Type

from web3 import AsyncWeb3

from .adapters import (
    BaseChainAdapter,
    EthereumAdapter,
    BscAdapter,
    PolygonAdapter,
    GenericEvmAdapter,
)
from .networks import NETWORK_CONFIGS, network_for_chain_id
from .types import BlockchainNetwork

logger = logging.getLogger(__name__)


class ChainAdapterRegistry:
    """
    Factory and lookup table for chain adapters.

    Usage:
        registry = ChainAdapterRegistry()
        adapter = registry.find_adapter_for_chain_id(56, transport)
        balance = await adapter.get_balance(address)

    Lookups never raise on a miss; they return None.
    """

    # Networks without an entry fall back to GenericEvmAdapter
    _default_adapter_classes: Dict[BlockchainNetwork, Type[BaseChainAdapter]] = {
        BlockchainNetwork.ETHEREUM_MAINNET: EthereumAdapter,
        BlockchainNetwork.ETHEREUM_SEPOLIA: EthereumAdapter,
        BlockchainNetwork.BSC: BscAdapter,
        BlockchainNetwork.POLYGON: PolygonAdapter,
    }

    def __init__(self, transaction_timeout: Optional[float] = None):
        self.transaction_timeout = transaction_timeout
        self._adapter_classes: Dict[BlockchainNetwork, Type[BaseChainAdapter]] = dict(
            self._default_adapter_classes
        )
        self._adapters: Dict[BlockchainNetwork, BaseChainAdapter] = {}
        self._pending: Set[asyncio.Task] = set()

    @property
    def adapters(self) -> Dict[BlockchainNetwork, BaseChainAdapter]:
        """Snapshot of the live adapters"""
        return dict(self._adapters)

    def register_adapter_class(self, network: BlockchainNetwork,
                               adapter_class: Type[BaseChainAdapter]):
        """Register a custom adapter implementation for a network"""
        self._adapter_classes[network] = adapter_class
        logger.info(f"Registered adapter {adapter_class.__name__} for {network.value}")

    def create_adapter(self, network: BlockchainNetwork, transport: AsyncWeb3) -> BaseChainAdapter:
        """
        Get or create the adapter for a network.

        A new adapter is returned immediately; its initialization runs in
        the background and a failure there is logged, not raised.

        Args:
            network: Network to serve
            transport: Transport the adapter should issue calls through

        Returns:
            The network's adapter, bound to the given transport
        """
        existing = self._adapters.get(network)
        if existing is not None:
            return self._reuse(existing, transport)

        adapter_class = self._adapter_classes.get(network)
        if adapter_class is None:
            adapter_class = GenericEvmAdapter
            logger.warning(
                f"Using generic EVM adapter for {network.value}. "
                f"Consider registering a dedicated adapter."
            )

        adapter = adapter_class(transport, network)
        if self.transaction_timeout is not None:
            adapter.transaction_timeout = self.transaction_timeout
        self._drop_conflicting(adapter)
        self._adapters[network] = adapter
        self._schedule_initialize(adapter)

        logger.info(f"Created {adapter_class.__name__} for {network.value}")
        return adapter

    def get_adapter(self, network: BlockchainNetwork,
                    transport: Optional[AsyncWeb3] = None) -> Optional[BaseChainAdapter]:
        """Get the adapter for a network, creating it when a transport is given"""
        adapter = self._adapters.get(network)
        if adapter is not None or transport is None:
            return adapter
        return self.create_adapter(network, transport)

    def find_adapter_for_chain_id(self, chain_id: int,
                                  transport: AsyncWeb3) -> Optional[BaseChainAdapter]:
        """Find a live adapter able to serve chain_id, or create one from the network table"""
        for adapter in self._adapters.values():
            if adapter.is_compatible(chain_id):
                return self._reuse(adapter, transport)

        network = network_for_chain_id(chain_id)
        if network is None:
            logger.warning(f"No adapter available for chain ID {chain_id}")
            return None
        return self.create_adapter(network, transport)

    async def remove_adapter(self, network: BlockchainNetwork) -> None:
        """Disconnect and drop the adapter for a network"""
        adapter = self._adapters.pop(network, None)
        if adapter is not None:
            await self._disconnect(adapter)

    async def release_adapter(self, adapter: BaseChainAdapter) -> None:
        """Drop an adapter if it is still the registered one for its network"""
        if self._adapters.get(adapter.network) is not adapter:
            return
        del self._adapters[adapter.network]
        await self._disconnect(adapter)

    async def clear_adapters(self) -> None:
        """Disconnect and drop every adapter"""
        for task in list(self._pending):
            task.cancel()
        adapters = list(self._adapters.values())
        self._adapters.clear()
        for adapter in adapters:
            await self._disconnect(adapter)

    async def wait_until_initialized(self) -> None:
        """Wait for background initializations started so far"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _reuse(self, adapter: BaseChainAdapter, transport: Optional[AsyncWeb3]) -> BaseChainAdapter:
        if transport is not None and transport is not adapter.transport:
            adapter.bind(transport)
            self._schedule_initialize(adapter)
        return adapter

    def _drop_conflicting(self, adapter: BaseChainAdapter):
        """Keep at most one live adapter claiming any configured chain id"""
        chain_ids = {config.chain_id for config in NETWORK_CONFIGS.values()}
        chain_ids.add(adapter.network_config.chain_id)
        claimed = {chain_id for chain_id in chain_ids if adapter.is_compatible(chain_id)}

        for network, other in list(self._adapters.items()):
            if any(other.is_compatible(chain_id) for chain_id in claimed):
                del self._adapters[network]
                logger.info(f"Replacing {network.value} adapter with {adapter.network.value} adapter")
                self._schedule(self._disconnect(other))

    def _schedule_initialize(self, adapter: BaseChainAdapter):
        task = self._schedule(adapter.initialize())
        if task is not None:
            task.add_done_callback(partial(self._on_initialized, adapter))

    def _schedule(self, coro) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.debug("No running event loop, background adapter work skipped")
            return None
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @staticmethod
    def _on_initialized(adapter: BaseChainAdapter, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Failed to initialize adapter for {adapter.network.value}: {error}")

    @staticmethod
    async def _disconnect(adapter: BaseChainAdapter):
        try:
            await adapter.disconnect()
        except Exception as e:
            logger.error(f"Error disconnecting {adapter.network.value} adapter: {e}")
