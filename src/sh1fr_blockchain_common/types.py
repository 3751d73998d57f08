"""
Core types, enums and errors for blockchain connectivity.
"""

from enum import Enum
from typing import Optional
from dataclasses import dataclass


class ChainType(Enum):
    """Supported chain families"""
    EVM = "evm"


class BlockchainNetwork(Enum):
    """Supported blockchain networks"""
    ETHEREUM_MAINNET = "ethereum_mainnet"
    ETHEREUM_SEPOLIA = "ethereum_sepolia"
    POLYGON = "polygon"
    BSC = "bsc"
    ARBITRUM = "arbitrum"


class ConnectionStatus(Enum):
    """Connection status of the connection manager"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ConnectionMode(Enum):
    """How the active transport was obtained"""
    WALLET = "wallet"  # Injected wallet, can sign
    RPC = "rpc"  # Direct JSON-RPC endpoint, read-only


@dataclass(frozen=True)
class NativeCurrency:
    """Native currency descriptor of a network"""
    name: str
    symbol: str
    decimals: int = 18


@dataclass(frozen=True)
class NetworkConfig:
    """Static configuration for a blockchain network"""
    name: str
    chain_id: int
    rpc_url: str
    block_explorer_url: str
    native_currency: NativeCurrency


class BlockchainError(Exception):
    """Base exception for blockchain operations"""
    def __init__(self, message: str, chain_type: Optional[ChainType] = None,
                 error_code: Optional[str] = None):
        self.chain_type = chain_type
        self.error_code = error_code
        super().__init__(message)


class NoWalletError(BlockchainError):
    """No injected wallet is available"""
    def __init__(self, message: str = "No browser wallet detected. Please install a wallet extension."):
        super().__init__(message, error_code="NO_WALLET")


class UserRejectedError(BlockchainError):
    """The user refused a wallet request"""
    def __init__(self, message: str = "Connection rejected. Please approve the connection request in your wallet."):
        super().__init__(message, error_code="USER_REJECTED")


class ConnectionTimeoutError(BlockchainError):
    """Connection handshake did not finish in time"""
    def __init__(self, message: str, timeout: Optional[float] = None):
        self.timeout = timeout
        super().__init__(message, error_code="TIMEOUT")


class UnsupportedNetworkError(BlockchainError):
    """Network or chain id has no configuration"""
    def __init__(self, message: str, chain_id: Optional[int] = None):
        self.chain_id = chain_id
        super().__init__(message, error_code="UNSUPPORTED_NETWORK")


class AdapterInitializationError(BlockchainError):
    """Adapter could not verify its transport"""
    pass


class RpcError(BlockchainError):
    """Wraps a failure of the underlying transport"""
    pass


class CacheStorageError(BlockchainError):
    """Durable cache storage failed. Never fatal."""
    pass


class StorageQuotaExceededError(CacheStorageError):
    """Durable storage is full"""
    pass


class ProviderRpcError(Exception):
    """Error raised by an injected wallet, carrying an EIP-1193 code"""

    USER_REJECTED = 4001
    UNAUTHORIZED = 4100
    UNSUPPORTED_METHOD = 4200
    DISCONNECTED = 4900
    UNRECOGNIZED_CHAIN = 4902

    def __init__(self, code: int, message: str, data: Optional[dict] = None):
        self.code = code
        self.data = data
        super().__init__(message)
