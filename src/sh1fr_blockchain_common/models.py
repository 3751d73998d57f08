"""
Data models exchanged with chain adapters.
"""

from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


@dataclass
class ContractData:
    """Contract address and ABI used for reads and event queries"""
    address: str
    abi: List[Dict[str, Any]]
    bytecode: Optional[str] = None
    deployed_bytecode: Optional[str] = None
    constructor_args: List[Any] = field(default_factory=list)
    deployment_block: Optional[int] = None


@dataclass
class ChainOperationOptions:
    """Overrides applied to an outgoing transaction"""
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    gas_limit: Optional[int] = None
    nonce: Optional[int] = None
    timeout: Optional[float] = None

    def apply(self, transaction: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of the transaction with the overrides set"""
        tx = dict(transaction)
        if self.max_fee_per_gas:
            tx['maxFeePerGas'] = self.max_fee_per_gas
        if self.max_priority_fee_per_gas:
            tx['maxPriorityFeePerGas'] = self.max_priority_fee_per_gas
        if self.gas_limit:
            tx['gas'] = self.gas_limit
        if self.nonce is not None:
            tx['nonce'] = self.nonce
        return tx


@dataclass
class FeeData:
    """Current fee levels in wei"""
    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    base_fee_per_gas: Optional[int] = None


@dataclass
class AddressValidationResult:
    """Outcome of an address check"""
    is_valid: bool
    reason: Optional[str] = None
    normalized_address: Optional[str] = None
