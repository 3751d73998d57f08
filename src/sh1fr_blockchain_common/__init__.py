"""
Sh1fr Blockchain Common Library

Wallet and RPC connection management, per-network chain adapters and a
result cache for EVM networks.
"""

from .types import (
    ChainType,
    BlockchainNetwork,
    ConnectionStatus,
    ConnectionMode,
    NativeCurrency,
    NetworkConfig,
    BlockchainError,
    NoWalletError,
    UserRejectedError,
    ConnectionTimeoutError,
    UnsupportedNetworkError,
    AdapterInitializationError,
    RpcError,
    CacheStorageError,
    StorageQuotaExceededError,
    ProviderRpcError,
)

from .interfaces import (
    IChainAdapter,
    InjectedWallet,
    KeyValueStore,
)

from .models import (
    ContractData,
    ChainOperationOptions,
    FeeData,
    AddressValidationResult,
)

from .networks import (
    NETWORK_CONFIGS,
    get_network_config,
    network_for_chain_id,
    chain_id_to_hex,
    explorer_tx_url,
    explorer_address_url,
)

from .utils import (
    validate_address,
    normalize_address,
    format_address,
    format_wei,
    translate_error,
)

from .config import ChainSettings, get_settings, configure_logging
from .cache import ResultCache, CacheEntry, CacheKey, CacheStats, generate_key
from .storage import MemoryStore, IgniteStore
from .state import ConnectionState
from .registry import ChainAdapterRegistry
from .transport import build_rpc_transport, close_transport
from .provider import ConnectionManager
from .contracts import ContractService
from .context import BlockchainContext
from .adapters import (
    BaseChainAdapter,
    EthereumAdapter,
    BscAdapter,
    PolygonAdapter,
    GenericEvmAdapter,
)

__all__ = [
    # Types
    "ChainType",
    "BlockchainNetwork",
    "ConnectionStatus",
    "ConnectionMode",
    "NativeCurrency",
    "NetworkConfig",
    "BlockchainError",
    "NoWalletError",
    "UserRejectedError",
    "ConnectionTimeoutError",
    "UnsupportedNetworkError",
    "AdapterInitializationError",
    "RpcError",
    "CacheStorageError",
    "StorageQuotaExceededError",
    "ProviderRpcError",

    # Interfaces
    "IChainAdapter",
    "InjectedWallet",
    "KeyValueStore",

    # Models
    "ContractData",
    "ChainOperationOptions",
    "FeeData",
    "AddressValidationResult",

    # Networks
    "NETWORK_CONFIGS",
    "get_network_config",
    "network_for_chain_id",
    "chain_id_to_hex",
    "explorer_tx_url",
    "explorer_address_url",

    # Utils
    "validate_address",
    "normalize_address",
    "format_address",
    "format_wei",
    "translate_error",

    # Configuration
    "ChainSettings",
    "get_settings",
    "configure_logging",

    # Cache
    "ResultCache",
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "generate_key",
    "MemoryStore",
    "IgniteStore",

    # Connection
    "ConnectionState",
    "ChainAdapterRegistry",
    "ConnectionManager",
    "build_rpc_transport",
    "close_transport",
    "ContractService",
    "BlockchainContext",

    # Adapters
    "BaseChainAdapter",
    "EthereumAdapter",
    "BscAdapter",
    "PolygonAdapter",
    "GenericEvmAdapter",
]

__version__ = "1.0.0"
