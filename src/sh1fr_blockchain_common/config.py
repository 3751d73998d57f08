"""
Runtime settings for the blockchain connection layer.
"""

import logging
from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .networks import get_network_config
from .types import BlockchainNetwork


class ChainSettings(BaseSettings):
    """Connection, cache and storage settings"""

    model_config = SettingsConfigDict(
        env_prefix="SH1FR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Connection
    connect_timeout: float = Field(10.0, gt=0)
    transaction_timeout: float = Field(120.0, gt=0)  # receipt wait
    rpc_overrides: Dict[str, str] = {}

    # Result cache
    cache_namespace: str = "sh1fr_blockchain_cache_"
    cache_default_ttl: Optional[float] = 300.0  # 5 minutes
    cache_max_size: int = Field(100, gt=0)
    cache_persist: bool = True
    cache_cleanup_interval: float = Field(60.0, gt=0)

    # Durable storage (Apache Ignite)
    ignite_enabled: bool = False
    ignite_host: str = "localhost"
    ignite_port: int = 10800
    ignite_cache_name: str = "sh1fr_blockchain_cache"

    log_level: str = "INFO"

    def rpc_url_for(self, network: BlockchainNetwork) -> str:
        """RPC endpoint for a network, honouring overrides"""
        override = self.rpc_overrides.get(network.value)
        if override:
            return override
        return get_network_config(network).rpc_url


@lru_cache()
def get_settings() -> ChainSettings:
    """Get the process-wide settings (read from env once)"""
    return ChainSettings()


def configure_logging(level: Optional[str] = None):
    """Basic logging setup for applications embedding this library"""
    level = level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
