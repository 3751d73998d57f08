"""
Fallback adapter for configured networks without a dedicated variant.
"""

from .base import BaseChainAdapter


class GenericEvmAdapter(BaseChainAdapter):
    """Plain EVM adapter, compatible only with its own configured chain id"""

    block_time = 12.0
    supports_eip1559 = True
