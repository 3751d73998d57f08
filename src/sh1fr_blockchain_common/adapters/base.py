"""
Base adapter implementation shared by all EVM-compatible networks.
"""

import asyncio
import logging
from typing import Optional, Dict, Any, List

from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from ..types import (
    ChainType, BlockchainNetwork, NetworkConfig, AdapterInitializationError, RpcError
)
from ..models import ContractData, ChainOperationOptions, FeeData
from ..networks import get_network_config, network_for_chain_id
from ..utils import normalize_address
from ..transport import close_transport
from ..wallet import is_wallet_transport

logger = logging.getLogger(__name__)


class BaseChainAdapter:
    """
    Generic blockchain operations over a bound AsyncWeb3 transport.

    Network variants override the compatibility predicate, block time,
    fee model and confirmation-time heuristic.
    """

    chain_type: ChainType = ChainType.EVM
    block_time: float = 12.0  # seconds
    supports_eip1559: bool = True
    transaction_timeout: float = 120.0  # seconds to wait for a receipt
    native_token_symbol: Optional[str] = None

    def __init__(self, transport: AsyncWeb3, network: BlockchainNetwork):
        self._network = network
        self._network_config = get_network_config(network)
        self._transport = transport
        self._initialized = False
        if self.native_token_symbol is None:
            self.native_token_symbol = self._network_config.native_currency.symbol
        self._prepare_transport(transport)

    @property
    def network(self) -> BlockchainNetwork:
        return self._network

    @property
    def network_config(self) -> NetworkConfig:
        return self._network_config

    @property
    def transport(self) -> AsyncWeb3:
        return self._transport

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def bind(self, transport: AsyncWeb3) -> None:
        """Rebind the adapter to a new transport"""
        if transport is self._transport:
            return
        self._prepare_transport(transport)
        self._transport = transport
        self._initialized = False
        logger.debug(f"Rebound {self.network.value} adapter to a new transport")

    def _prepare_transport(self, transport: AsyncWeb3) -> None:
        """Hook for variants that need transport middleware"""
        pass

    def _error(self, operation: str, error: Exception) -> RpcError:
        return RpcError(
            f"{operation} failed on {self.network_config.name}: {error}",
            chain_type=self.chain_type,
            error_code="RPC_ERROR",
        )

    async def initialize(self) -> None:
        """Verify the transport answers before first use"""
        if self._initialized:
            return
        try:
            chain_id = await self._transport.eth.chain_id
        except Exception as e:
            self._initialized = False
            raise AdapterInitializationError(
                f"Failed to initialize chain adapter for {self.network.value}: {e}",
                chain_type=self.chain_type,
            ) from e

        if not self.is_compatible(chain_id):
            logger.warning(
                f"{self.network_config.name} adapter bound to transport on chain {chain_id}"
            )
        self._initialized = True
        logger.info(f"Initialized {self.network.value} adapter (chain {chain_id})")

    async def get_chain_id(self) -> int:
        try:
            return await self._transport.eth.chain_id
        except Exception as e:
            raise self._error("get_chain_id", e) from e

    async def get_network(self) -> NetworkConfig:
        """Configuration of the network the transport currently reports"""
        chain_id = await self.get_chain_id()
        network = network_for_chain_id(chain_id)
        if network is None:
            return NetworkConfig(
                name=f"chain-{chain_id}",
                chain_id=chain_id,
                rpc_url="",
                block_explorer_url="",
                native_currency=self.network_config.native_currency,
            )
        return get_network_config(network)

    def is_compatible(self, chain_id: int) -> bool:
        return self.network_config.chain_id == chain_id

    async def get_block_number(self) -> int:
        try:
            return await self._transport.eth.block_number
        except Exception as e:
            raise self._error("get_block_number", e) from e

    async def get_balance(self, address: str) -> int:
        """Native token balance in wei"""
        try:
            return await self._transport.eth.get_balance(normalize_address(address))
        except Exception as e:
            raise self._error("get_balance", e) from e

    async def get_code(self, address: str) -> str:
        try:
            code = await self._transport.eth.get_code(normalize_address(address))
        except Exception as e:
            raise self._error("get_code", e) from e
        return Web3.to_hex(code)

    async def send_transaction(self, transaction: Dict[str, Any],
                               options: Optional[ChainOperationOptions] = None) -> str:
        """Submit a transaction through the wallet and return its hash"""
        if not is_wallet_transport(self._transport):
            raise RpcError(
                "Cannot send transactions with a read-only provider. Use a browser wallet provider.",
                chain_type=self.chain_type,
                error_code="READ_ONLY",
            )

        tx = options.apply(transaction) if options else dict(transaction)
        try:
            tx_hash = await self._transport.eth.send_transaction(tx)
        except Exception as e:
            raise self._error("send_transaction", e) from e
        return Web3.to_hex(tx_hash)

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        try:
            return dict(await self._transport.eth.get_transaction(tx_hash))
        except TransactionNotFound:
            return None
        except Exception as e:
            raise self._error("get_transaction", e) from e

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1,
                                   timeout: Optional[float] = None) -> Dict[str, Any]:
        """Wait for a receipt, then for the requested number of confirmations"""
        timeout = timeout or self.transaction_timeout
        try:
            receipt = await self._transport.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
            if confirmations > 1:
                target = receipt["blockNumber"] + confirmations - 1
                while await self._transport.eth.block_number < target:
                    await self._sleep_block()
        except Exception as e:
            raise self._error("wait_for_transaction", e) from e
        return dict(receipt)

    async def _sleep_block(self):
        await asyncio.sleep(self.block_time)

    async def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        try:
            return await self._transport.eth.estimate_gas(transaction)
        except Exception as e:
            raise self._error("estimate_gas", e) from e

    async def get_fee_data(self) -> FeeData:
        """Current gas price, plus EIP-1559 fields where the network uses them"""
        try:
            gas_price = await self._transport.eth.gas_price
            if not self.supports_eip1559:
                return FeeData(gas_price=gas_price)

            latest = await self._transport.eth.get_block("latest")
            base_fee = latest.get("baseFeePerGas")
            if base_fee is None:
                return FeeData(gas_price=gas_price)

            priority_fee = await self._transport.eth.max_priority_fee
        except Exception as e:
            raise self._error("get_fee_data", e) from e

        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=base_fee * 2 + priority_fee,
            max_priority_fee_per_gas=priority_fee,
            base_fee_per_gas=base_fee,
        )

    async def get_gas_price(self) -> int:
        fee_data = await self.get_fee_data()
        return fee_data.gas_price or 0

    async def get_max_fee_per_gas(self) -> int:
        fee_data = await self.get_fee_data()
        return fee_data.max_fee_per_gas or 0

    async def get_max_priority_fee_per_gas(self) -> int:
        fee_data = await self.get_fee_data()
        return fee_data.max_priority_fee_per_gas or 0

    async def call_contract(self, contract: ContractData, method: str, args: List[Any]) -> Any:
        """Call a smart contract method (read-only)"""
        try:
            instance = self._transport.eth.contract(
                address=normalize_address(contract.address),
                abi=contract.abi,
            )
            method_fn = getattr(instance.functions, method)
            return await method_fn(*args).call()
        except Exception as e:
            raise self._error(f"call {method}", e) from e

    async def get_contract_events(self, contract: ContractData, event_name: str,
                                  from_block: int = 0,
                                  to_block: Optional[int] = None) -> List[Dict[str, Any]]:
        """Query past events; to_block defaults to the latest block"""
        if to_block is None:
            to_block = await self.get_block_number()
        try:
            instance = self._transport.eth.contract(
                address=normalize_address(contract.address),
                abi=contract.abi,
            )
            event = getattr(instance.events, event_name)()
            logs = await event.get_logs(from_block=from_block, to_block=to_block)
        except Exception as e:
            raise self._error(f"get_logs {event_name}", e) from e
        return [dict(log) for log in logs]

    def estimate_confirmation_time(self, gas_price_gwei: float) -> float:
        """Expected confirmation time in seconds at the given gas price"""
        return self.block_time * 5

    async def requires_eip1559_fees(self) -> bool:
        return self.supports_eip1559

    async def disconnect(self) -> None:
        """Release the adapter and close its transport's HTTP sessions"""
        self._initialized = False
        await close_transport(self._transport)
        logger.info(f"Disconnected {self.network.value} adapter")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(network={self.network.value})"
