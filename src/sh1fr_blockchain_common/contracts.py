"""
Cached contract, account and ENS lookups over the active connection.
"""

import logging
from typing import Optional

from .adapters import BaseChainAdapter
from .cache import ResultCache
from .provider import ConnectionManager
from .types import UnsupportedNetworkError
from .utils import validate_address

logger = logging.getLogger(__name__)

CONTRACT_CODE_TTL = 30 * 60  # seconds; deployed code only changes on selfdestruct
BALANCE_TTL = 15  # seconds
ENS_TTL = 24 * 60 * 60  # seconds

ENS_CHAIN_ID = 1

_EMPTY_CODE = ("", "0x", "0x0")


class ContractService:
    """Reads contract code, balances and ENS records through the connection manager, cached"""

    def __init__(self, manager: ConnectionManager, cache: ResultCache):
        self.manager = manager
        self.cache = cache

    def _adapter_for(self, chain_id: int) -> BaseChainAdapter:
        """Active adapter, provided the live connection is on chain_id"""
        adapter = self.manager.get_adapter()
        if (adapter is None or self.manager.get_state().chain_id != chain_id
                or not adapter.is_compatible(chain_id)):
            raise UnsupportedNetworkError(
                f"No active connection serves chain ID {chain_id}",
                chain_id=chain_id,
            )
        return adapter

    @staticmethod
    def _checked(address: str) -> str:
        result = validate_address(address)
        if not result.is_valid:
            raise ValueError(f"Invalid address {address!r}: {result.reason}")
        return result.normalized_address

    async def get_contract_code(self, address: str, chain_id: int) -> str:
        """Deployed bytecode at an address ("0x" for accounts without code)"""
        address = self._checked(address)
        adapter = self._adapter_for(chain_id)
        key = self.cache.generate_key("contract_code", address=address, chain_id=chain_id)
        return await self.cache.get_or_fetch(
            key, lambda: adapter.get_code(address), ttl=CONTRACT_CODE_TTL
        )

    async def is_contract(self, address: str, chain_id: int) -> bool:
        code = await self.get_contract_code(address, chain_id)
        return code not in _EMPTY_CODE

    async def get_native_balance(self, address: str, chain_id: int) -> int:
        """Native balance in wei, cached per block"""
        address = self._checked(address)
        adapter = self._adapter_for(chain_id)
        block_number = await adapter.get_block_number()
        key = self.cache.generate_key(
            "native_balance", address=address, chain_id=chain_id, block_number=block_number
        )
        return await self.cache.get_or_fetch(
            key, lambda: adapter.get_balance(address), ttl=BALANCE_TTL, block_number=block_number
        )

    def _ens_transport(self):
        adapter = self.manager.get_adapter()
        if adapter is None or self.manager.get_state().chain_id != ENS_CHAIN_ID:
            return None
        return adapter.transport

    async def lookup_ens_name(self, address: str) -> Optional[str]:
        """
        Reverse-resolve an address to its primary ENS name.

        ENS is only read on Ethereum mainnet; on any other chain, without a
        connection, or when the lookup fails, None is returned. Only hits
        are cached.
        """
        address = self._checked(address)
        key = self.cache.generate_key("ens_resolve", address=address)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        transport = self._ens_transport()
        if transport is None:
            return None
        try:
            name = await transport.ens.name(address)
        except Exception as e:
            logger.error(f"Error resolving ENS name for {address}: {e}")
            return None

        if name:
            self.cache.set(key, name, ttl=ENS_TTL)
        return name or None

    async def resolve_ens_name(self, name: str) -> Optional[str]:
        """Resolve an ENS name to its checksummed address, or None (mainnet only)"""
        key = self.cache.generate_key("ens_lookup", additional_params={"name": name.lower()})
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        transport = self._ens_transport()
        if transport is None:
            return None
        try:
            address = await transport.ens.address(name)
        except Exception as e:
            logger.error(f"Error resolving address from ENS name {name}: {e}")
            return None

        if address:
            self.cache.set(key, address, ttl=ENS_TTL)
        return address or None
