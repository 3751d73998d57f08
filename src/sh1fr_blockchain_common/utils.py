"""
Utility functions for blockchain operations.
"""

import re
from decimal import Decimal
from typing import Any, Union

from eth_utils import to_checksum_address, is_address, from_wei, to_wei

from .models import AddressValidationResult

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_ERROR_LENGTH = 150

# Known error fragments and their user-facing messages
ERROR_MESSAGES = {
    'user rejected': 'The connection request was rejected by the user.',
    'network error': 'Unable to connect to the network. Please check your internet connection.',
    'timeout': 'The connection timed out. The network might be congested.',
    'already processing': 'A wallet operation is already in progress. Please wait for it to complete.',
    'user denied': 'The transaction was rejected by the user.',
    'insufficient funds': 'Your wallet does not have enough funds for this transaction.',
    'gas required exceeds allowance': 'The transaction requires more gas than allowed.',
    'intrinsic gas too low': 'The gas limit is too low for this transaction.',
    'nonce too low': 'The nonce is too low. Another transaction may be pending.',
    'replacement transaction underpriced': 'The replacement transaction has a gas price that is too low.',
}

_NOISE_PATTERNS = [
    re.compile(r'\(action="[\w-]+", data=\{.*\}\)'),
    re.compile(r'\[ethjs-query\].*while formatting outputs from RPC.*'),
    re.compile(r'^\s*Error: '),
]


def validate_address(address: str) -> AddressValidationResult:
    """Validate an EVM address and return its checksum form"""
    if not address:
        return AddressValidationResult(is_valid=False, reason="Address is empty")

    if not re.match(r'^0x[0-9a-fA-F]{40}$', address):
        return AddressValidationResult(is_valid=False, reason="Invalid address format")

    if not is_address(address):
        return AddressValidationResult(is_valid=False, reason="Invalid checksum")

    normalized = to_checksum_address(address)
    if normalized == ZERO_ADDRESS:
        return AddressValidationResult(
            is_valid=True, normalized_address=normalized, reason="Zero address detected"
        )
    return AddressValidationResult(is_valid=True, normalized_address=normalized)


def normalize_address(address: str) -> str:
    """Normalize address to checksum format"""
    return to_checksum_address(address)


def format_address(address: str, prefix_length: int = 6, suffix_length: int = 4) -> str:
    """Shorten an address for display (0x1234...5678)"""
    if not address:
        return ""
    try:
        normalized = to_checksum_address(address)
    except ValueError:
        return address
    if len(normalized) < prefix_length + suffix_length + 3:
        return normalized
    return f"{normalized[:prefix_length]}...{normalized[-suffix_length:]}"


def truncate_string(value: str, max_length: int = 30) -> str:
    if not value:
        return ""
    if len(value) <= max_length:
        return value
    return value[:max_length - 3] + "..."


def format_wei(wei_value: Union[int, str], unit: str = "ether") -> Decimal:
    """Convert wei to larger unit"""
    return Decimal(str(from_wei(int(wei_value), unit)))


def wei_to_gwei(wei_value: Union[int, str]) -> Decimal:
    return format_wei(wei_value, "gwei")


def gwei_to_wei(gwei: Union[Decimal, float, str, int]) -> int:
    if isinstance(gwei, (Decimal, float)):
        gwei = str(gwei)
    return to_wei(gwei, "gwei")


def extract_method_signature(data: str) -> str:
    """Four-byte selector (0x + 8 hex chars) of transaction input data"""
    if not data or data == "0x" or len(data) < 10:
        return ""
    return data[:10]


def translate_error(error: Any) -> str:
    """
    Turn a raw transport or wallet error into a short user-facing message.

    Known failure fragments map to fixed messages; anything else has
    embedded call payloads and library prefixes stripped and is truncated.
    """
    if error is None:
        return "Unknown error"

    message = str(error) or type(error).__name__
    lowered = message.lower()
    for pattern, friendly in ERROR_MESSAGES.items():
        if pattern in lowered:
            return friendly

    cleaned = message
    for noise in _NOISE_PATTERNS:
        cleaned = noise.sub("", cleaned, count=1)
    cleaned = cleaned.strip() or "Unknown error"

    if len(cleaned) > MAX_ERROR_LENGTH:
        cleaned = cleaned[:MAX_ERROR_LENGTH - 3] + "..."
    return cleaned
