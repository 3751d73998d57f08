"""
Interfaces (protocols) for adapters and external collaborators.
Using Python's Protocol for structural subtyping.
"""

from typing import Protocol, Dict, Any, Optional, List, Callable, Awaitable
from abc import abstractmethod

from web3 import AsyncWeb3

from .types import ChainType, BlockchainNetwork, NetworkConfig
from .models import ContractData, ChainOperationOptions, FeeData


WalletEventHandler = Callable[..., Awaitable[None]]


class IChainAdapter(Protocol):
    """Interface for per-network chain adapters"""

    @property
    @abstractmethod
    def chain_type(self) -> ChainType:
        """Chain family this adapter handles"""
        ...

    @property
    @abstractmethod
    def network(self) -> BlockchainNetwork:
        """Network this adapter was created for"""
        ...

    @property
    @abstractmethod
    def network_config(self) -> NetworkConfig:
        """Static configuration of the network"""
        ...

    @property
    @abstractmethod
    def transport(self) -> AsyncWeb3:
        """Transport the adapter issues calls through"""
        ...

    @property
    @abstractmethod
    def block_time(self) -> float:
        """Nominal block time in seconds"""
        ...

    @abstractmethod
    async def initialize(self) -> None:
        """Verify the transport responds"""
        ...

    @abstractmethod
    async def get_network(self) -> NetworkConfig:
        """Configuration of the network the transport is actually on"""
        ...

    @abstractmethod
    async def get_chain_id(self) -> int:
        """Chain id reported by the transport"""
        ...

    @abstractmethod
    def is_compatible(self, chain_id: int) -> bool:
        """Whether this adapter can serve the given chain id"""
        ...

    @abstractmethod
    async def get_block_number(self) -> int:
        ...

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Native balance in wei"""
        ...

    @abstractmethod
    async def get_code(self, address: str) -> str:
        ...

    @abstractmethod
    async def send_transaction(self, transaction: Dict[str, Any],
                               options: Optional[ChainOperationOptions] = None) -> str:
        """Submit a transaction and return its hash"""
        ...

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1,
                                   timeout: Optional[float] = None) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        ...

    @abstractmethod
    async def get_fee_data(self) -> FeeData:
        ...

    @abstractmethod
    async def get_gas_price(self) -> int:
        ...

    @abstractmethod
    async def get_max_fee_per_gas(self) -> int:
        ...

    @abstractmethod
    async def get_max_priority_fee_per_gas(self) -> int:
        ...

    @abstractmethod
    async def call_contract(self, contract: ContractData, method: str, args: List[Any]) -> Any:
        """Call a contract method (read-only)"""
        ...

    @abstractmethod
    async def get_contract_events(self, contract: ContractData, event_name: str,
                                  from_block: int = 0,
                                  to_block: Optional[int] = None) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def estimate_confirmation_time(self, gas_price_gwei: float) -> float:
        """Expected confirmation time in seconds for a fee level"""
        ...

    @abstractmethod
    async def requires_eip1559_fees(self) -> bool:
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release resources held by the adapter"""
        ...


class InjectedWallet(Protocol):
    """
    Browser-style injected wallet (EIP-1193).

    Event handlers are coroutine functions; the wallet awaits them when
    emitting accountsChanged, chainChanged or disconnect.
    """

    @abstractmethod
    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        ...

    @abstractmethod
    def on(self, event: str, handler: WalletEventHandler) -> None:
        ...

    @abstractmethod
    def remove_listener(self, event: str, handler: WalletEventHandler) -> None:
        ...


class KeyValueStore(Protocol):
    """Durable string key-value store used for cache persistence (async)"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        """Keys starting with prefix"""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
