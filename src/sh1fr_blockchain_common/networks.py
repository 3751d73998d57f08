"""
Static network configuration table and lookups.
"""

from types import MappingProxyType
from typing import Mapping, Optional

from .types import (
    BlockchainNetwork, NativeCurrency, NetworkConfig, UnsupportedNetworkError
)


NETWORK_CONFIGS: Mapping[BlockchainNetwork, NetworkConfig] = MappingProxyType({
    BlockchainNetwork.ETHEREUM_MAINNET: NetworkConfig(
        name="Ethereum Mainnet",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
        block_explorer_url="https://etherscan.io",
        native_currency=NativeCurrency(name="Ether", symbol="ETH", decimals=18),
    ),
    BlockchainNetwork.ETHEREUM_SEPOLIA: NetworkConfig(
        name="Sepolia Testnet",
        chain_id=11155111,
        rpc_url="https://rpc.sepolia.io",
        block_explorer_url="https://sepolia.etherscan.io",
        native_currency=NativeCurrency(name="Sepolia Ether", symbol="ETH", decimals=18),
    ),
    BlockchainNetwork.POLYGON: NetworkConfig(
        name="Polygon Mainnet",
        chain_id=137,
        rpc_url="https://polygon-rpc.com",
        block_explorer_url="https://polygonscan.com",
        native_currency=NativeCurrency(name="MATIC", symbol="MATIC", decimals=18),
    ),
    BlockchainNetwork.BSC: NetworkConfig(
        name="BNB Smart Chain",
        chain_id=56,
        rpc_url="https://bsc-dataseed.binance.org",
        block_explorer_url="https://bscscan.com",
        native_currency=NativeCurrency(name="BNB", symbol="BNB", decimals=18),
    ),
    BlockchainNetwork.ARBITRUM: NetworkConfig(
        name="Arbitrum One",
        chain_id=42161,
        rpc_url="https://arb1.arbitrum.io/rpc",
        block_explorer_url="https://arbiscan.io",
        native_currency=NativeCurrency(name="Ether", symbol="ETH", decimals=18),
    ),
})

# Explorers known for chains that may be reached through a wallet but
# have no entry in NETWORK_CONFIGS.
_EXTRA_EXPLORERS = {
    8453: "https://basescan.org",
}


def get_network_config(network: BlockchainNetwork) -> NetworkConfig:
    """Get the static configuration for a network"""
    try:
        return NETWORK_CONFIGS[network]
    except KeyError:
        raise UnsupportedNetworkError(f"No configuration for network: {network}") from None


def network_for_chain_id(chain_id: int) -> Optional[BlockchainNetwork]:
    """Find the configured network with the given chain id"""
    for network, config in NETWORK_CONFIGS.items():
        if config.chain_id == chain_id:
            return network
    return None


def chain_id_to_hex(chain_id: int) -> str:
    """Format a chain id the way wallets expect it (0x-prefixed hex)"""
    return hex(chain_id)


def _explorer_base(chain_id: int) -> Optional[str]:
    network = network_for_chain_id(chain_id)
    if network is not None:
        return NETWORK_CONFIGS[network].block_explorer_url
    return _EXTRA_EXPLORERS.get(chain_id)


def explorer_tx_url(tx_hash: str, chain_id: int) -> str:
    """Block explorer URL for a transaction, empty if the chain is unknown"""
    base = _explorer_base(chain_id)
    return f"{base}/tx/{tx_hash}" if base else ""


def explorer_address_url(address: str, chain_id: int) -> str:
    """Block explorer URL for an address, empty if the chain is unknown"""
    base = _explorer_base(chain_id)
    return f"{base}/address/{address}" if base else ""
