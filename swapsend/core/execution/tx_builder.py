"""
Transaction builder for the requests the operator sends.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from eth_utils import keccak

from .errors import InvalidRequestError
from .models import TransactionRequest


# Maximum uint256 for unlimited approval
MAX_UINT256 = 2**256 - 1

# Readable amounts are cut to this many characters
MAX_DECIMALS = 8


def _selector(signature: str) -> str:
    return "0x" + keccak(text=signature)[:4].hex()


WETH_DEPOSIT_SELECTOR = _selector("deposit()")
ERC20_APPROVE_SELECTOR = _selector("approve(address,uint256)")


def _encode_uint256(value: int) -> str:
    """Encode a uint256 as a 32-byte hex string (without 0x prefix)."""
    if value < 0 or value > MAX_UINT256:
        raise InvalidRequestError(f"Value out of uint256 range: {value}")
    return format(value, "064x")


def _encode_address(address: str) -> str:
    """Encode an address as a 32-byte hex string (without 0x prefix)."""
    addr = address.lower().replace("0x", "")
    if len(addr) != 40:
        raise InvalidRequestError(f"Invalid address length: {address}")
    return addr.zfill(64)


def parse_units(amount: Union[str, int, Decimal], decimals: int) -> int:
    """Convert a human-readable amount into base units ("1.5", 18 -> 1.5e18)."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidRequestError(f"Not a number: {amount!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidRequestError(f"{amount} has more than {decimals} decimals")
    if scaled < 0:
        raise InvalidRequestError(f"Amount must be non-negative: {amount}")
    return int(scaled)


def format_units(raw_amount: int, decimals: int) -> str:
    """Convert base units to a readable string, truncated to MAX_DECIMALS characters."""
    value = Decimal(raw_amount).scaleb(-decimals)
    text = format(value.normalize(), "f")
    if "." not in text:
        text += ".0"
    return text[:MAX_DECIMALS]


class TransactionBuilder:
    """
    Builds transaction requests.

    Handles:
    - Wrapping ether (WETH deposit)
    - ERC20 approvals
    - Native transfers
    """

    @staticmethod
    def build_weth_deposit(
        weth_address: str,
        amount_wei: int,
        from_address: Optional[str] = None,
        max_fee_per_gas: Optional[int] = None,
        max_priority_fee_per_gas: Optional[int] = None,
    ) -> TransactionRequest:
        """
        Build a WETH deposit() call wrapping `amount_wei` of ether.

        Args:
            weth_address: The wrapped ether contract
            amount_wei: Ether to wrap, in wei
            from_address: The sender
            max_fee_per_gas: EIP-1559 fee cap
            max_priority_fee_per_gas: EIP-1559 tip

        Returns:
            TransactionRequest ready to be submitted
        """
        if amount_wei <= 0:
            raise InvalidRequestError("Wrap amount must be positive")

        return TransactionRequest(
            to_address=weth_address,
            data=WETH_DEPOSIT_SELECTOR,
            value=amount_wei,
            from_address=from_address,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=max_priority_fee_per_gas,
        )

    @staticmethod
    def build_erc20_approve(
        token_address: str,
        spender_address: str,
        amount: int = MAX_UINT256,
        from_address: Optional[str] = None,
        max_fee_per_gas: Optional[int] = None,
        max_priority_fee_per_gas: Optional[int] = None,
    ) -> TransactionRequest:
        """Build an ERC20 approve(spender, amount) call (unlimited by default)."""
        calldata = (
            ERC20_APPROVE_SELECTOR +
            _encode_address(spender_address) +
            _encode_uint256(amount)
        )

        return TransactionRequest(
            to_address=token_address,
            data=calldata,
            value=0,
            from_address=from_address,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=max_priority_fee_per_gas,
        )

    @staticmethod
    def build_native_transfer(
        to_address: str,
        amount_wei: int,
        from_address: Optional[str] = None,
        max_fee_per_gas: Optional[int] = None,
        max_priority_fee_per_gas: Optional[int] = None,
    ) -> TransactionRequest:
        return TransactionRequest(
            to_address=to_address,
            data="0x",
            value=amount_wei,
            from_address=from_address,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=max_priority_fee_per_gas,
        )
