"""
Polygon PoS adapter.
"""

from web3 import AsyncWeb3

from ..types import BlockchainNetwork
from ..models import FeeData
from .base import BaseChainAdapter
from .bsc import inject_poa_middleware

MIN_PRIORITY_FEE = 30_000_000_000  # 30 gwei


class PolygonAdapter(BaseChainAdapter):
    """Adapter for Polygon mainnet"""

    block_time = 2.0
    supports_eip1559 = True

    def __init__(self, transport: AsyncWeb3, network: BlockchainNetwork = BlockchainNetwork.POLYGON):
        super().__init__(transport, network)

    def _prepare_transport(self, transport: AsyncWeb3) -> None:
        inject_poa_middleware(transport)

    def is_compatible(self, chain_id: int) -> bool:
        return chain_id == 137

    def estimate_confirmation_time(self, gas_price_gwei: float) -> float:
        if gas_price_gwei < 50:
            return 120
        elif gas_price_gwei < 100:
            return 60
        return 20

    async def get_recommended_gas(self) -> FeeData:
        """EIP-1559 fees with the priority fee raised to Polygon's practical minimum"""
        fee_data = await self.get_fee_data()
        priority_fee = max(fee_data.max_priority_fee_per_gas or 0, MIN_PRIORITY_FEE)
        max_fee = fee_data.max_fee_per_gas or (fee_data.gas_price or 0) + priority_fee
        # The cap must cover the base fee plus the raised tip
        max_fee = max(max_fee, (fee_data.base_fee_per_gas or 0) + priority_fee)
        return FeeData(
            gas_price=fee_data.gas_price,
            max_fee_per_gas=max_fee,
            max_priority_fee_per_gas=priority_fee,
            base_fee_per_gas=fee_data.base_fee_per_gas,
        )
