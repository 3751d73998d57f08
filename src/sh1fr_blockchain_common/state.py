"""
Connection state snapshots published by the connection manager.
"""

from dataclasses import dataclass, replace
from typing import Any, Optional

from .types import BlockchainNetwork, ConnectionMode, ConnectionStatus


@dataclass(frozen=True)
class ConnectionState:
    """
    Immutable snapshot of the connection.

    Use the constructors below; __post_init__ rejects field combinations
    that cannot occur (an account outside a wallet connection, an error
    outside the ERROR status, a transport while not connected).
    """
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    mode: Optional[ConnectionMode] = None
    account: Optional[str] = None
    chain_id: Optional[int] = None
    network: Optional[BlockchainNetwork] = None
    transport: Optional[Any] = None
    error: Optional[Exception] = None

    def __post_init__(self):
        connected = self.status is ConnectionStatus.CONNECTED
        if self.account is not None and not (connected and self.mode is ConnectionMode.WALLET):
            raise ValueError("account is only set on a connected wallet")
        if (self.error is not None) != (self.status is ConnectionStatus.ERROR):
            raise ValueError("error is set exactly when status is ERROR")
        if not connected and (self.chain_id is not None or self.transport is not None
                              or self.network is not None or self.mode is not None):
            raise ValueError("chain, network, transport and mode require a connection")
        if connected and (self.mode is None or self.chain_id is None or self.transport is None):
            raise ValueError("a connected state needs mode, chain id and transport")

    @classmethod
    def disconnected(cls) -> "ConnectionState":
        return cls()

    @classmethod
    def connecting(cls) -> "ConnectionState":
        return cls(status=ConnectionStatus.CONNECTING)

    @classmethod
    def connected(cls, mode: ConnectionMode, chain_id: int, transport: Any,
                  network: Optional[BlockchainNetwork] = None,
                  account: Optional[str] = None) -> "ConnectionState":
        return cls(
            status=ConnectionStatus.CONNECTED,
            mode=mode,
            account=account,
            chain_id=chain_id,
            network=network,
            transport=transport,
        )

    @classmethod
    def failed(cls, error: Exception) -> "ConnectionState":
        return cls(status=ConnectionStatus.ERROR, error=error)

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    def evolve(self, **changes) -> "ConnectionState":
        """Copy with changes applied (validated)"""
        return replace(self, **changes)
