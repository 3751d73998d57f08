"""
Ethereum adapter (mainnet and Sepolia).
"""

from web3 import AsyncWeb3

from ..types import BlockchainNetwork
from .base import BaseChainAdapter

ETHEREUM_CHAIN_IDS = frozenset({1, 11155111})


class EthereumAdapter(BaseChainAdapter):
    """Adapter for Ethereum mainnet and its Sepolia testnet"""

    block_time = 12.0  # post-merge slot time
    supports_eip1559 = True

    def __init__(self, transport: AsyncWeb3,
                 network: BlockchainNetwork = BlockchainNetwork.ETHEREUM_MAINNET):
        if network not in (BlockchainNetwork.ETHEREUM_MAINNET, BlockchainNetwork.ETHEREUM_SEPOLIA):
            raise ValueError(f"{network.value} is not an Ethereum network")
        super().__init__(transport, network)

    def is_compatible(self, chain_id: int) -> bool:
        return chain_id in ETHEREUM_CHAIN_IDS

    def estimate_confirmation_time(self, gas_price_gwei: float) -> float:
        # <30 gwei slow, 30-60 standard, above that fast
        if gas_price_gwei < 30:
            return 240
        elif gas_price_gwei < 60:
            return 120
        return 30
