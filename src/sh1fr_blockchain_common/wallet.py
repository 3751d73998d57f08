"""
Bridges between an injected wallet and web3.
"""

import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

from web3 import AsyncWeb3
from web3.providers import AsyncBaseProvider
from web3.types import RPCEndpoint, RPCResponse

from .interfaces import InjectedWallet, WalletEventHandler
from .types import ProviderRpcError

logger = logging.getLogger(__name__)

WALLET_EVENTS = ("accountsChanged", "chainChanged", "disconnect")


class WalletProvider(AsyncBaseProvider):
    """web3 provider forwarding JSON-RPC requests to an injected wallet"""

    def __init__(self, wallet: InjectedWallet, **kwargs):
        super().__init__(**kwargs)
        self.wallet = wallet
        self._request_ids = itertools.count(1)

    async def make_request(self, method: RPCEndpoint, params: Any) -> RPCResponse:
        request_id = next(self._request_ids)
        try:
            result = await self.wallet.request(method, list(params or []))
        except ProviderRpcError as e:
            error: Dict[str, Any] = {"code": e.code, "message": str(e)}
            if e.data is not None:
                error["data"] = e.data
            return {"jsonrpc": "2.0", "id": request_id, "error": error}
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def is_connected(self, show_traceback: bool = False) -> bool:
        try:
            await self.wallet.request("eth_chainId", [])
            return True
        except Exception:
            if show_traceback:
                raise
            return False

    async def disconnect(self) -> None:
        # The wallet owns its connection; nothing to close here
        pass


def build_wallet_transport(wallet: InjectedWallet) -> AsyncWeb3:
    """Wrap an injected wallet in an AsyncWeb3 transport"""
    return AsyncWeb3(WalletProvider(wallet))


def is_wallet_transport(transport: Optional[AsyncWeb3]) -> bool:
    return transport is not None and isinstance(getattr(transport, "provider", None), WalletProvider)


class WalletSubscription:
    """
    Wallet event listeners installed for one connection.

    Acquire on connect, release on every disconnect path; release is
    idempotent.
    """

    def __init__(self, wallet: InjectedWallet, handlers: Dict[str, WalletEventHandler]):
        self.wallet = wallet
        self._handlers: List[Tuple[str, WalletEventHandler]] = list(handlers.items())
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def acquire(self) -> "WalletSubscription":
        if self._active:
            return self
        for event, handler in self._handlers:
            self.wallet.on(event, handler)
        self._active = True
        return self

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        for event, handler in self._handlers:
            try:
                self.wallet.remove_listener(event, handler)
            except Exception as e:
                logger.warning(f"Could not remove wallet listener for '{event}': {e}")
