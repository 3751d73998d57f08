"""
Chain adapter implementations.
"""

from .base import BaseChainAdapter
from .ethereum import EthereumAdapter
from .bsc import BscAdapter
from .polygon import PolygonAdapter
from .generic import GenericEvmAdapter

__all__ = [
    "BaseChainAdapter",
    "EthereumAdapter",
    "BscAdapter",
    "PolygonAdapter",
    "GenericEvmAdapter",
]
