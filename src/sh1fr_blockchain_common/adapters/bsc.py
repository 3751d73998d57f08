"""
BNB Smart Chain adapter.
"""

from web3 import AsyncWeb3
from web3.middleware import ExtraDataToPOAMiddleware

from ..types import BlockchainNetwork
from .base import BaseChainAdapter

POA_MIDDLEWARE_NAME = "poa"


def inject_poa_middleware(transport: AsyncWeb3) -> None:
    """Accept the oversized extraData field of proof-of-authority blocks"""
    if POA_MIDDLEWARE_NAME not in transport.middleware_onion:
        transport.middleware_onion.inject(ExtraDataToPOAMiddleware, name=POA_MIDDLEWARE_NAME, layer=0)


class BscAdapter(BaseChainAdapter):
    """Adapter for BNB Smart Chain (legacy gas pricing)"""

    block_time = 3.0
    supports_eip1559 = False

    def __init__(self, transport: AsyncWeb3, network: BlockchainNetwork = BlockchainNetwork.BSC):
        super().__init__(transport, network)

    def _prepare_transport(self, transport: AsyncWeb3) -> None:
        inject_poa_middleware(transport)

    def is_compatible(self, chain_id: int) -> bool:
        return chain_id == 56

    def estimate_confirmation_time(self, gas_price_gwei: float) -> float:
        # Barely fee-sensitive: about five 3-second blocks
        return 15
