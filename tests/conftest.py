"""
Shared fakes for wallet, transport and settings
"""

import asyncio
from collections import defaultdict
from unittest.mock import AsyncMock

import pytest
from web3.exceptions import TransactionNotFound

from sh1fr_blockchain_common.config import ChainSettings
from sh1fr_blockchain_common.networks import NETWORK_CONFIGS
from sh1fr_blockchain_common.types import ProviderRpcError
from sh1fr_blockchain_common.wallet import WalletProvider

ACCOUNT = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
OTHER_ACCOUNT = "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
CONTRACT = "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB"


class FakeEth:
    """Stand-in for AsyncWeb3.eth; awaitable properties like the real module"""

    def __init__(self, chain_id=1, block_number=100, gas_price=20_000_000_000,
                 max_priority_fee=2_000_000_000, base_fee=10_000_000_000):
        self._chain_id = chain_id
        self._block_number = block_number
        self._gas_price = gas_price
        self._max_priority_fee = max_priority_fee
        self.base_fee = base_fee
        self.chain_id_delay = 0
        self.chain_id_error = None
        self.balances = {}
        self.codes = {}
        self.transactions = {}
        self.sent = []
        self.receipt_timeouts = []

    async def _chain_id_value(self):
        if self.chain_id_delay:
            await asyncio.sleep(self.chain_id_delay)
        if self.chain_id_error is not None:
            raise self.chain_id_error
        return self._chain_id

    async def _value(self, value):
        return value

    @property
    def chain_id(self):
        return self._chain_id_value()

    @property
    def block_number(self):
        return self._value(self._block_number)

    @property
    def gas_price(self):
        return self._value(self._gas_price)

    @property
    def max_priority_fee(self):
        return self._value(self._max_priority_fee)

    async def get_block(self, block_identifier):
        block = {"number": self._block_number}
        if self.base_fee is not None:
            block["baseFeePerGas"] = self.base_fee
        return block

    async def get_balance(self, address):
        return self.balances.get(address, 0)

    async def get_code(self, address):
        return self.codes.get(address, b"")

    async def estimate_gas(self, transaction):
        return 21000

    async def send_transaction(self, transaction):
        self.sent.append(transaction)
        return b"\xab" * 32

    async def get_transaction(self, tx_hash):
        if tx_hash not in self.transactions:
            raise TransactionNotFound(f"Transaction {tx_hash} not found")
        return self.transactions[tx_hash]

    async def wait_for_transaction_receipt(self, tx_hash, timeout=120, poll_latency=0.1):
        self.receipt_timeouts.append(timeout)
        return {"transactionHash": tx_hash, "blockNumber": self._block_number, "status": 1}


class FakeMiddlewareOnion:
    def __init__(self):
        self.names = []

    def __contains__(self, name):
        return name in self.names

    def inject(self, middleware, name=None, layer=None):
        self.names.append(name)


class FakeHttpProvider:
    """Provider double recording whether its sessions were closed"""

    def __init__(self):
        self.disconnect = AsyncMock()

    @property
    def closed(self):
        return self.disconnect.await_count > 0


class FakeEns:
    """Stand-in for AsyncWeb3.ens"""

    def __init__(self, names=None):
        self.names = dict(names or {})
        self.address = AsyncMock(side_effect=self._address)
        self.name = AsyncMock(side_effect=self._name)

    async def _address(self, name):
        for address, known in self.names.items():
            if known == name:
                return address
        return None

    async def _name(self, address):
        return self.names.get(address)


class FakeTransport:
    """Stand-in for an AsyncWeb3 instance"""

    def __init__(self, eth=None, provider=None, ens=None):
        self.eth = eth or FakeEth()
        self.provider = provider or object()
        self.ens = ens or FakeEns()
        self.middleware_onion = FakeMiddlewareOnion()


class FakeWallet:
    """Injected wallet double that records requests and awaits handlers on emit"""

    def __init__(self, accounts=None, chain_id=1):
        self.accounts = [ACCOUNT] if accounts is None else accounts
        self.chain_id = chain_id
        self.known_chains = {1, 11155111, 56}
        self.errors = {}
        self.requests = []
        self.listeners = defaultdict(list)

    async def request(self, method, params=None):
        self.requests.append((method, params))
        error = self.errors.get(method)
        if error is not None:
            raise error

        if method in ("eth_requestAccounts", "eth_accounts"):
            return list(self.accounts)
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            chain_id = int(params[0]["chainId"], 16)
            if chain_id not in self.known_chains:
                raise ProviderRpcError(ProviderRpcError.UNRECOGNIZED_CHAIN, "Unrecognized chain ID")
            self.chain_id = chain_id
            return None
        if method == "wallet_addEthereumChain":
            self.known_chains.add(int(params[0]["chainId"], 16))
            return None
        raise ProviderRpcError(ProviderRpcError.UNSUPPORTED_METHOD, f"Unsupported method {method}")

    def on(self, event, handler):
        self.listeners[event].append(handler)

    def remove_listener(self, event, handler):
        self.listeners[event].remove(handler)

    async def emit(self, event, *args):
        for handler in list(self.listeners[event]):
            await handler(*args)

    def listener_count(self):
        return sum(len(handlers) for handlers in self.listeners.values())

    def requested(self, method):
        return [params for name, params in self.requests if name == method]


def _chain_id_for_url(rpc_url):
    for config in NETWORK_CONFIGS.values():
        if config.rpc_url == rpc_url:
            return config.chain_id
    raise KeyError(rpc_url)


class FakeRpcFactory:
    """rpc_transport_factory building fake transports per configured RPC URL"""

    def __init__(self):
        self.created = []
        self.delays = {}
        self.errors = {}

    def __call__(self, rpc_url, timeout):
        chain_id = _chain_id_for_url(rpc_url)
        eth = FakeEth(chain_id=chain_id)
        eth.chain_id_delay = self.delays.get(chain_id, 0)
        eth.chain_id_error = self.errors.get(chain_id)
        transport = FakeTransport(eth, provider=FakeHttpProvider())
        self.created.append(transport)
        return transport


def wallet_transport_factory(wallet):
    return FakeTransport(FakeEth(chain_id=wallet.chain_id), provider=WalletProvider(wallet))


@pytest.fixture
def settings():
    return ChainSettings(connect_timeout=0.2)


@pytest.fixture
def wallet():
    return FakeWallet()


@pytest.fixture
def rpc_factory():
    return FakeRpcFactory()
