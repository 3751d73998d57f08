"""
Connection manager for wallet and direct RPC connections.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Callable, List, Optional, Tuple

from web3 import AsyncWeb3

from .adapters import BaseChainAdapter
from .config import ChainSettings, get_settings
from .interfaces import InjectedWallet
from .networks import chain_id_to_hex, get_network_config, network_for_chain_id
from .registry import ChainAdapterRegistry
from .state import ConnectionState
from .transport import build_rpc_transport, close_transport
from .types import (
    BlockchainError, BlockchainNetwork, ConnectionMode, ConnectionTimeoutError,
    NoWalletError, ProviderRpcError, RpcError, UserRejectedError,
)
from .utils import normalize_address
from .wallet import WalletSubscription, build_wallet_transport

logger = logging.getLogger(__name__)

StateListener = Callable[[ConnectionState], None]

_REJECTION_MARKERS = ("user rejected", "user denied")


def _is_rejection(error: Exception) -> bool:
    if isinstance(error, ProviderRpcError) and error.code == ProviderRpcError.USER_REJECTED:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _REJECTION_MARKERS)


def _is_unrecognized_chain(error: Exception) -> bool:
    if isinstance(error, ProviderRpcError) and error.code == ProviderRpcError.UNRECOGNIZED_CHAIN:
        return True
    return "unrecognized chain" in str(error).lower()


class ConnectionManager:
    """
    Owns the connection lifecycle and the active chain adapter.

    States move Disconnected -> Connecting -> Connected | Error, and back to
    Disconnected on disconnect. Connect operations never raise: failures
    are published as an ERROR state and returned. Listeners are called
    synchronously with every new state, and once on subscription.

    Every connect attempt takes a new request generation; a result that
    arrives after a newer attempt (or a disconnect) has started is dropped.
    """

    def __init__(self,
                 registry: ChainAdapterRegistry,
                 *,
                 wallet: Optional[InjectedWallet] = None,
                 settings: Optional[ChainSettings] = None,
                 rpc_transport_factory: Optional[Callable[[str, float], AsyncWeb3]] = None,
                 wallet_transport_factory: Optional[Callable[[InjectedWallet], AsyncWeb3]] = None):
        self.registry = registry
        self.wallet = wallet
        self.settings = settings or get_settings()
        self._rpc_transport_factory = rpc_transport_factory or build_rpc_transport
        self._wallet_transport_factory = wallet_transport_factory or build_wallet_transport

        self._state = ConnectionState.disconnected()
        self._listeners: List[StateListener] = []
        self._adapter: Optional[BaseChainAdapter] = None
        self._transport: Optional[AsyncWeb3] = None
        self._subscription: Optional[WalletSubscription] = None
        self._generation = 0

        if wallet is None:
            logger.info("No browser wallet detected")

    @property
    def connect_timeout(self) -> float:
        return self.settings.connect_timeout

    @property
    def has_wallet(self) -> bool:
        return self.wallet is not None

    def get_state(self) -> ConnectionState:
        """Current state snapshot (immutable)"""
        return self._state

    def get_adapter(self) -> Optional[BaseChainAdapter]:
        """Active chain adapter, None unless connected"""
        return self._adapter if self._state.is_connected else None

    def get_transport(self) -> Optional[AsyncWeb3]:
        return self._state.transport

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; it is called immediately with the current state"""
        if listener not in self._listeners:
            self._listeners.append(listener)
        self._notify(listener, self._state)
        return partial(self.unsubscribe, listener)

    def unsubscribe(self, listener: StateListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def connect_wallet(self) -> ConnectionState:
        """Connect through the injected wallet, requesting account access"""
        generation = self._begin_attempt()
        try:
            wallet = self.wallet
            if wallet is None:
                raise NoWalletError()

            account = await self._request_account(wallet)
            transport = self._wallet_transport_factory(wallet)
            try:
                chain_id = await transport.eth.chain_id
            except Exception as e:
                raise RpcError(f"Failed to read chain id from wallet: {e}") from e
        except BlockchainError as e:
            logger.error(f"Error connecting to browser wallet: {e}")
            return await self._fail(generation, e)

        if self._is_stale(generation):
            logger.info("Discarding superseded wallet connection result")
            await close_transport(transport)
            return self._state

        adapter = self.registry.find_adapter_for_chain_id(chain_id, transport)
        if adapter is None:
            logger.warning(f"No adapter available for chain ID {chain_id}. Using direct transport.")

        subscription = WalletSubscription(wallet, {
            "accountsChanged": self._on_accounts_changed,
            "chainChanged": self._on_chain_changed,
            "disconnect": self._on_wallet_disconnect,
        })
        state = ConnectionState.connected(
            ConnectionMode.WALLET,
            chain_id,
            transport,
            network=network_for_chain_id(chain_id),
            account=account,
        )
        await self._install(adapter, subscription, state)
        logger.info(f"Connected to browser wallet {account} on chain {chain_id}")
        return self._state

    async def connect_rpc(self, network: BlockchainNetwork) -> ConnectionState:
        """Open a read-only connection to a network's configured RPC endpoint"""
        generation = self._begin_attempt()
        try:
            transport, chain_id = await self._open_rpc(network)
        except BlockchainError as e:
            logger.error(f"Error connecting to {network.value} via RPC: {e}")
            return await self._fail(generation, e)

        if self._is_stale(generation):
            logger.info(f"Discarding superseded RPC connection result for {network.value}")
            await close_transport(transport)
            return self._state

        await self._install_rpc(network, transport, chain_id)
        return self._state

    async def switch_network(self, network: BlockchainNetwork) -> bool:
        """
        Move the connection to another network.

        Returns whether the switch succeeded. Never raises; a failed switch
        leaves a connected state untouched.
        """
        try:
            if not self._state.is_connected:
                state = await self.connect_rpc(network)
                return state.is_connected

            if self._state.mode is ConnectionMode.WALLET:
                return await self._switch_wallet_chain(network)

            return await self._switch_rpc(network)
        except Exception as e:
            logger.error(f"Error switching to network {network.value}: {e}")
            return False

    async def disconnect(self) -> None:
        """Tear down the connection and reset to DISCONNECTED"""
        self._generation += 1
        adapter, transport = self._detach()
        self._publish(ConnectionState.disconnected())
        await self._release(adapter, transport)
        logger.info("Disconnected")

    async def _request_account(self, wallet: InjectedWallet) -> str:
        try:
            accounts = await wallet.request("eth_requestAccounts", [])
        except Exception as e:
            if _is_rejection(e):
                raise UserRejectedError() from e
            raise RpcError(f"Wallet account request failed: {e}") from e

        if not accounts:
            raise BlockchainError(
                "No accounts found. Please unlock your wallet and try again.",
                error_code="NO_ACCOUNTS",
            )
        try:
            return normalize_address(accounts[0])
        except (TypeError, ValueError) as e:
            raise RpcError(f"Wallet returned an invalid account: {accounts[0]!r}") from e

    async def _open_rpc(self, network: BlockchainNetwork):
        config = get_network_config(network)
        transport = self._rpc_transport_factory(self.settings.rpc_url_for(network), self.connect_timeout)
        try:
            chain_id = await asyncio.wait_for(transport.eth.chain_id, timeout=self.connect_timeout)
        except asyncio.TimeoutError:
            await close_transport(transport)
            raise ConnectionTimeoutError(
                f"Failed to connect to {config.name}: Network connection timeout",
                timeout=self.connect_timeout,
            ) from None
        except Exception as e:
            await close_transport(transport)
            raise RpcError(f"Failed to connect to {config.name}: {e}") from e

        if chain_id != config.chain_id:
            logger.warning(f"Chain ID mismatch for {config.name}: expected {config.chain_id}, got {chain_id}")
        return transport, chain_id

    async def _install_rpc(self, network: BlockchainNetwork, transport: AsyncWeb3, chain_id: int):
        adapter = self.registry.create_adapter(network, transport)
        state = ConnectionState.connected(ConnectionMode.RPC, chain_id, transport, network=network)
        await self._install(adapter, None, state)
        logger.info(f"Connected to {network.value} via RPC (chain {chain_id})")

    async def _switch_wallet_chain(self, network: BlockchainNetwork) -> bool:
        config = get_network_config(network)
        chain_hex = chain_id_to_hex(config.chain_id)
        switch_params = [{"chainId": chain_hex}]

        try:
            await self.wallet.request("wallet_switchEthereumChain", switch_params)
            # The wallet emits chainChanged, which updates the state
            return True
        except Exception as e:
            if not _is_unrecognized_chain(e):
                logger.error(f"Wallet refused to switch to {config.name}: {e}")
                return False

        try:
            await self.wallet.request("wallet_addEthereumChain", [{
                "chainId": chain_hex,
                "chainName": config.name,
                "nativeCurrency": {
                    "name": config.native_currency.name,
                    "symbol": config.native_currency.symbol,
                    "decimals": config.native_currency.decimals,
                },
                "rpcUrls": [self.settings.rpc_url_for(network)],
                "blockExplorerUrls": [config.block_explorer_url],
            }])
            await self.wallet.request("wallet_switchEthereumChain", switch_params)
        except Exception as e:
            logger.error(f"Failed to add network {config.name}: {e}")
            return False
        return True

    async def _switch_rpc(self, network: BlockchainNetwork) -> bool:
        self._generation += 1
        generation = self._generation
        try:
            transport, chain_id = await self._open_rpc(network)
        except BlockchainError as e:
            logger.error(f"Error switching RPC connection to {network.value}: {e}")
            return False

        if self._is_stale(generation):
            await close_transport(transport)
            return False
        await self._install_rpc(network, transport, chain_id)
        return True

    def _is_wallet_connected(self) -> bool:
        return self._state.is_connected and self._state.mode is ConnectionMode.WALLET

    async def _on_accounts_changed(self, accounts: List[str]):
        if not self._is_wallet_connected():
            return
        if not accounts:
            logger.info("Wallet reported no accounts, disconnecting")
            await self.disconnect()
            return
        try:
            account = normalize_address(accounts[0])
        except (TypeError, ValueError) as e:
            logger.error(f"Error updating account: {e}")
            return
        self._publish(self._state.evolve(account=account))

    async def _on_chain_changed(self, chain_id_hex: Any):
        if not self._is_wallet_connected():
            return
        try:
            chain_id = int(chain_id_hex, 16) if isinstance(chain_id_hex, str) else int(chain_id_hex)
        except (TypeError, ValueError) as e:
            logger.error(f"Error updating chain: {e}")
            return

        adapter = self._adapter
        if adapter is None or not adapter.is_compatible(chain_id):
            adapter = self.registry.find_adapter_for_chain_id(chain_id, self._state.transport)
            if adapter is None:
                logger.warning(f"No adapter available for chain ID {chain_id}")
        self._adapter = adapter
        self._publish(self._state.evolve(chain_id=chain_id, network=network_for_chain_id(chain_id)))

    async def _on_wallet_disconnect(self, *args):
        if self._is_wallet_connected():
            logger.info("Wallet disconnected")
            await self.disconnect()

    def _begin_attempt(self) -> int:
        self._generation += 1
        self._publish(ConnectionState.connecting())
        return self._generation

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    async def _fail(self, generation: int, error: BlockchainError) -> ConnectionState:
        if self._is_stale(generation):
            return self._state
        adapter, transport = self._detach()
        self._publish(ConnectionState.failed(error))
        await self._release(adapter, transport)
        return self._state

    async def _install(self, adapter: Optional[BaseChainAdapter],
                       subscription: Optional[WalletSubscription], state: ConnectionState):
        previous_adapter, previous_transport = self._detach()
        self._adapter = adapter
        self._transport = state.transport
        if subscription is not None:
            self._subscription = subscription.acquire()
        self._publish(state)
        await self._release(
            None if previous_adapter is adapter else previous_adapter,
            None if previous_transport is state.transport else previous_transport,
        )

    def _detach(self) -> Tuple[Optional[BaseChainAdapter], Optional[AsyncWeb3]]:
        """Drop wallet listeners, the active adapter and transport; return both"""
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None
        adapter, self._adapter = self._adapter, None
        transport, self._transport = self._transport, None
        return adapter, transport

    async def _release(self, adapter: Optional[BaseChainAdapter], transport: Optional[AsyncWeb3]):
        if adapter is not None:
            await self.registry.release_adapter(adapter)
        if transport is not None:
            await close_transport(transport)

    def _publish(self, state: ConnectionState):
        self._state = state
        for listener in list(self._listeners):
            self._notify(listener, state)

    @staticmethod
    def _notify(listener: StateListener, state: ConnectionState):
        try:
            listener(state)
        except Exception:
            logger.exception("Error in connection listener")
