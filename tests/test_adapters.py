"""
Tests for chain adapters
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sh1fr_blockchain_common.adapters import (
    BaseChainAdapter, EthereumAdapter, BscAdapter, PolygonAdapter, GenericEvmAdapter,
)
from sh1fr_blockchain_common.adapters.polygon import MIN_PRIORITY_FEE
from sh1fr_blockchain_common.models import ChainOperationOptions, ContractData
from sh1fr_blockchain_common.types import (
    AdapterInitializationError, BlockchainNetwork, RpcError,
)
from sh1fr_blockchain_common.wallet import WalletProvider

from conftest import ACCOUNT, CONTRACT, FakeEth, FakeHttpProvider, FakeTransport, FakeWallet

GWEI = 10 ** 9


class TestCompatibility:
    """Test chain id predicates"""

    def test_ethereum_accepts_mainnet_and_sepolia(self):
        """Test Ethereum adapter serves both Ethereum chains"""
        adapter = EthereumAdapter(FakeTransport())
        assert adapter.is_compatible(1)
        assert adapter.is_compatible(11155111)
        assert not adapter.is_compatible(56)

    def test_ethereum_rejects_other_networks(self):
        """Test Ethereum adapter refuses non-Ethereum configs"""
        with pytest.raises(ValueError):
            EthereumAdapter(FakeTransport(), BlockchainNetwork.BSC)

    def test_bsc_and_polygon(self):
        """Test single-chain variants"""
        assert BscAdapter(FakeTransport()).is_compatible(56)
        assert not BscAdapter(FakeTransport()).is_compatible(1)
        assert PolygonAdapter(FakeTransport()).is_compatible(137)
        assert not PolygonAdapter(FakeTransport()).is_compatible(80001)

    def test_generic_uses_configured_chain(self):
        """Test generic adapter matches only its network's chain id"""
        adapter = GenericEvmAdapter(FakeTransport(), BlockchainNetwork.ARBITRUM)
        assert adapter.is_compatible(42161)
        assert not adapter.is_compatible(1)
        assert adapter.native_token_symbol == "ETH"


class TestConfirmationTime:
    """Test confirmation time heuristics"""

    @pytest.mark.parametrize("gwei,expected", [(10, 240), (29.9, 240), (30, 120), (59, 120), (60, 30), (500, 30)])
    def test_ethereum(self, gwei, expected):
        """Test Ethereum fee bands"""
        assert EthereumAdapter(FakeTransport()).estimate_confirmation_time(gwei) == expected

    @pytest.mark.parametrize("gwei,expected", [(10, 120), (50, 60), (99, 60), (100, 20)])
    def test_polygon(self, gwei, expected):
        """Test Polygon fee bands"""
        assert PolygonAdapter(FakeTransport()).estimate_confirmation_time(gwei) == expected

    def test_bsc_is_flat(self):
        """Test BSC ignores the fee"""
        adapter = BscAdapter(FakeTransport())
        assert adapter.estimate_confirmation_time(1) == 15
        assert adapter.estimate_confirmation_time(1000) == 15

    def test_generic_uses_block_time(self):
        """Test default is five blocks"""
        adapter = GenericEvmAdapter(FakeTransport(), BlockchainNetwork.ARBITRUM)
        assert adapter.estimate_confirmation_time(10) == adapter.block_time * 5


class TestMiddleware:
    """Test proof-of-authority middleware injection"""

    def test_poa_injected_once_for_bsc(self):
        """Test BSC installs the middleware without duplicates"""
        transport = FakeTransport()
        adapter = BscAdapter(transport)
        adapter.bind(transport)
        assert transport.middleware_onion.names == ["poa"]

    def test_poa_injected_on_rebind(self):
        """Test a new transport gets the middleware too"""
        adapter = PolygonAdapter(FakeTransport())
        replacement = FakeTransport()
        adapter.bind(replacement)
        assert "poa" in replacement.middleware_onion
        assert adapter.transport is replacement

    def test_ethereum_has_no_poa(self):
        """Test Ethereum leaves the transport untouched"""
        transport = FakeTransport()
        EthereumAdapter(transport)
        assert transport.middleware_onion.names == []


class TestInitialization:
    """Test adapter initialization"""

    @pytest.mark.asyncio
    async def test_initialize(self):
        """Test initialization verifies the transport"""
        adapter = EthereumAdapter(FakeTransport(FakeEth(chain_id=1)))
        await adapter.initialize()
        assert adapter.is_initialized

    @pytest.mark.asyncio
    async def test_initialize_failure(self):
        """Test transport failure raises initialization error"""
        eth = FakeEth()
        eth.chain_id_error = ConnectionError("refused")
        adapter = EthereumAdapter(FakeTransport(eth))
        with pytest.raises(AdapterInitializationError):
            await adapter.initialize()
        assert not adapter.is_initialized

    @pytest.mark.asyncio
    async def test_rebind_resets_initialization(self):
        """Test bind marks the adapter uninitialized"""
        adapter = EthereumAdapter(FakeTransport())
        await adapter.initialize()
        adapter.bind(FakeTransport())
        assert not adapter.is_initialized

    @pytest.mark.asyncio
    async def test_disconnect(self):
        """Test disconnect resets state"""
        adapter = BscAdapter(FakeTransport(FakeEth(chain_id=56)))
        await adapter.initialize()
        await adapter.disconnect()
        assert not adapter.is_initialized

    @pytest.mark.asyncio
    async def test_disconnect_closes_http_sessions(self):
        """Test disconnect closes the provider behind the transport"""
        provider = FakeHttpProvider()
        adapter = BscAdapter(FakeTransport(FakeEth(chain_id=56), provider=provider))
        await adapter.disconnect()
        provider.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disconnect_close_failure_is_logged(self):
        """Test a failing provider close does not escape disconnect"""
        provider = FakeHttpProvider()
        provider.disconnect.side_effect = RuntimeError("socket gone")
        adapter = BscAdapter(FakeTransport(FakeEth(chain_id=56), provider=provider))
        await adapter.disconnect()
        assert not adapter.is_initialized

    @pytest.mark.asyncio
    async def test_disconnect_leaves_wallet_open(self):
        """Test wallet transports survive adapter disconnect"""
        wallet = FakeWallet()
        adapter = EthereumAdapter(FakeTransport(provider=WalletProvider(wallet)))
        await adapter.disconnect()
        assert wallet.requests == []


class TestReads:
    """Test read operations"""

    @pytest.mark.asyncio
    async def test_chain_and_block(self):
        """Test chain id and block number"""
        adapter = EthereumAdapter(FakeTransport(FakeEth(chain_id=11155111, block_number=77)))
        assert await adapter.get_chain_id() == 11155111
        assert await adapter.get_block_number() == 77

    @pytest.mark.asyncio
    async def test_get_network_reports_transport_chain(self):
        """Test network lookup follows the transport"""
        adapter = EthereumAdapter(FakeTransport(FakeEth(chain_id=11155111)))
        config = await adapter.get_network()
        assert config.chain_id == 11155111
        assert config.name == "Sepolia Testnet"

    @pytest.mark.asyncio
    async def test_get_network_unknown_chain(self):
        """Test unknown chains get a placeholder config"""
        adapter = EthereumAdapter(FakeTransport(FakeEth(chain_id=999)))
        config = await adapter.get_network()
        assert config.chain_id == 999

    @pytest.mark.asyncio
    async def test_balance_and_code(self):
        """Test balance and code reads with address normalization"""
        eth = FakeEth()
        eth.balances[ACCOUNT] = 5 * 10 ** 18
        eth.codes[CONTRACT] = b"\x60\x80"
        adapter = EthereumAdapter(FakeTransport(eth))

        assert await adapter.get_balance(ACCOUNT.lower()) == 5 * 10 ** 18
        assert await adapter.get_code(CONTRACT) == "0x6080"
        assert await adapter.get_code(ACCOUNT) == "0x"

    @pytest.mark.asyncio
    async def test_transport_failure_is_rpc_error(self):
        """Test failures are wrapped"""
        eth = FakeEth()
        eth.get_balance = AsyncMock(side_effect=ConnectionError("reset"))
        adapter = EthereumAdapter(FakeTransport(eth))
        with pytest.raises(RpcError) as exc_info:
            await adapter.get_balance(ACCOUNT)
        assert "Ethereum Mainnet" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_get_transaction_not_found(self):
        """Test missing transactions return None"""
        eth = FakeEth()
        eth.transactions["0x01"] = {"hash": "0x01", "value": 1}
        adapter = EthereumAdapter(FakeTransport(eth))
        assert await adapter.get_transaction("0x02") is None
        assert (await adapter.get_transaction("0x01"))["value"] == 1

    @pytest.mark.asyncio
    async def test_estimate_gas(self):
        """Test gas estimation passthrough"""
        adapter = EthereumAdapter(FakeTransport())
        assert await adapter.estimate_gas({"to": ACCOUNT, "value": 1}) == 21000

    @pytest.mark.asyncio
    async def test_call_contract(self):
        """Test contract method call through the transport"""
        eth = FakeEth()
        call = AsyncMock(return_value=42)
        instance = MagicMock()
        instance.functions.balanceOf.return_value.call = call
        eth.contract = MagicMock(return_value=instance)
        adapter = EthereumAdapter(FakeTransport(eth))

        result = await adapter.call_contract(ContractData(address=CONTRACT, abi=[]), "balanceOf", [ACCOUNT])
        assert result == 42
        instance.functions.balanceOf.assert_called_once_with(ACCOUNT)

    @pytest.mark.asyncio
    async def test_get_contract_events_defaults_to_latest(self):
        """Test event query range"""
        eth = FakeEth(block_number=500)
        get_logs = AsyncMock(return_value=[{"event": "Transfer"}])
        instance = MagicMock()
        instance.events.Transfer.return_value.get_logs = get_logs
        eth.contract = MagicMock(return_value=instance)
        adapter = EthereumAdapter(FakeTransport(eth))

        events = await adapter.get_contract_events(ContractData(address=CONTRACT, abi=[]), "Transfer", 10)
        assert events == [{"event": "Transfer"}]
        get_logs.assert_awaited_once_with(from_block=10, to_block=500)


class TestFees:
    """Test fee data per variant"""

    @pytest.mark.asyncio
    async def test_eip1559_fee_data(self):
        """Test max fee is twice base fee plus tip"""
        eth = FakeEth(gas_price=20 * GWEI, max_priority_fee=2 * GWEI, base_fee=10 * GWEI)
        adapter = EthereumAdapter(FakeTransport(eth))
        fee_data = await adapter.get_fee_data()
        assert fee_data.base_fee_per_gas == 10 * GWEI
        assert fee_data.max_priority_fee_per_gas == 2 * GWEI
        assert fee_data.max_fee_per_gas == 22 * GWEI
        assert await adapter.get_max_fee_per_gas() == 22 * GWEI
        assert await adapter.requires_eip1559_fees()

    @pytest.mark.asyncio
    async def test_legacy_fee_data_on_bsc(self):
        """Test BSC reports only a gas price"""
        adapter = BscAdapter(FakeTransport(FakeEth(chain_id=56, gas_price=3 * GWEI)))
        fee_data = await adapter.get_fee_data()
        assert fee_data.gas_price == 3 * GWEI
        assert fee_data.max_fee_per_gas is None
        assert await adapter.get_max_priority_fee_per_gas() == 0
        assert not await adapter.requires_eip1559_fees()

    @pytest.mark.asyncio
    async def test_missing_base_fee_falls_back_to_legacy(self):
        """Test pre-London blocks give legacy data"""
        adapter = EthereumAdapter(FakeTransport(FakeEth(base_fee=None)))
        fee_data = await adapter.get_fee_data()
        assert fee_data.max_fee_per_gas is None
        assert await adapter.get_gas_price() == 20 * GWEI

    @pytest.mark.asyncio
    async def test_polygon_priority_fee_below_floor(self):
        """Test Polygon raises a low tip to its 30 gwei minimum"""
        eth = FakeEth(chain_id=137, max_priority_fee=1 * GWEI, base_fee=5 * GWEI)
        adapter = PolygonAdapter(FakeTransport(eth))
        fee_data = await adapter.get_recommended_gas()
        assert MIN_PRIORITY_FEE == 30 * GWEI
        assert fee_data.max_priority_fee_per_gas == MIN_PRIORITY_FEE
        assert fee_data.max_fee_per_gas == 5 * GWEI + MIN_PRIORITY_FEE
        assert fee_data.base_fee_per_gas == 5 * GWEI

    @pytest.mark.asyncio
    async def test_polygon_priority_fee_above_floor(self):
        """Test a tip above the minimum is kept as reported"""
        eth = FakeEth(chain_id=137, max_priority_fee=40 * GWEI, base_fee=5 * GWEI)
        adapter = PolygonAdapter(FakeTransport(eth))
        fee_data = await adapter.get_recommended_gas()
        assert fee_data.max_priority_fee_per_gas == 40 * GWEI
        assert fee_data.max_fee_per_gas == 5 * GWEI * 2 + 40 * GWEI

    @pytest.mark.asyncio
    async def test_polygon_recommended_gas_without_base_fee(self):
        """Test legacy blocks fall back to gas price plus the minimum tip"""
        eth = FakeEth(chain_id=137, gas_price=50 * GWEI, base_fee=None)
        adapter = PolygonAdapter(FakeTransport(eth))
        fee_data = await adapter.get_recommended_gas()
        assert fee_data.max_priority_fee_per_gas == MIN_PRIORITY_FEE
        assert fee_data.max_fee_per_gas == 50 * GWEI + MIN_PRIORITY_FEE


class TestReceipts:
    """Test waiting for transaction receipts"""

    @pytest.mark.asyncio
    async def test_default_timeout(self):
        """Test the adapter's receipt timeout applies when none is given"""
        eth = FakeEth()
        adapter = EthereumAdapter(FakeTransport(eth))
        receipt = await adapter.wait_for_transaction("0xabc")
        assert receipt["status"] == 1
        assert eth.receipt_timeouts == [120.0]

    @pytest.mark.asyncio
    async def test_configured_timeout(self):
        """Test a configured receipt timeout and an explicit override"""
        eth = FakeEth()
        adapter = EthereumAdapter(FakeTransport(eth))
        adapter.transaction_timeout = 30.0
        await adapter.wait_for_transaction("0xabc")
        await adapter.wait_for_transaction("0xabc", timeout=5)
        assert eth.receipt_timeouts == [30.0, 5]


class TestSendTransaction:
    """Test transaction submission"""

    @pytest.mark.asyncio
    async def test_read_only_transport_refuses(self):
        """Test RPC transports cannot send"""
        adapter = EthereumAdapter(FakeTransport())
        with pytest.raises(RpcError) as exc_info:
            await adapter.send_transaction({"to": ACCOUNT, "value": 1})
        assert exc_info.value.error_code == "READ_ONLY"

    @pytest.mark.asyncio
    async def test_wallet_transport_sends_with_options(self):
        """Test overrides are applied and the hash returned as hex"""
        eth = FakeEth()
        transport = FakeTransport(eth, provider=WalletProvider(FakeWallet()))
        adapter = EthereumAdapter(transport)

        options = ChainOperationOptions(max_fee_per_gas=30 * GWEI, gas_limit=50000, nonce=0)
        tx_hash = await adapter.send_transaction({"to": ACCOUNT, "value": 1}, options)

        assert tx_hash == "0x" + "ab" * 32
        assert eth.sent == [{
            "to": ACCOUNT, "value": 1, "maxFeePerGas": 30 * GWEI, "gas": 50000, "nonce": 0,
        }]


def test_base_adapter_repr():
    """Test repr names class and network"""
    adapter = BaseChainAdapter(FakeTransport(), BlockchainNetwork.ARBITRUM)
    assert repr(adapter) == "BaseChainAdapter(network=arbitrum)"
