"""
Node response models.

JSON-RPC returns quantities as 0x-prefixed hex strings; these models parse
them into ints and keep only the fields the execution layer reads.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def parse_quantity(value: Any) -> Optional[int]:
    """Parse a JSON-RPC quantity (hex string, decimal string or int)."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("Boolean is not a quantity")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text, 10)
    raise ValueError(f"Cannot parse quantity from {type(value).__name__}")


class Block(BaseModel):
    """A block header as returned by eth_getBlockByNumber."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    number: int = Field(..., description="Block number")
    hash: Optional[str] = Field(None, description="Block hash")
    timestamp: Optional[int] = Field(None, description="Unix timestamp")
    base_fee_per_gas: Optional[int] = Field(
        None, alias="baseFeePerGas", description="EIP-1559 base fee; absent on legacy chains"
    )
    gas_limit: Optional[int] = Field(None, alias="gasLimit")
    gas_used: Optional[int] = Field(None, alias="gasUsed")

    @field_validator("number", "timestamp", "base_fee_per_gas", "gas_limit", "gas_used", mode="before")
    @classmethod
    def _parse_hex(cls, value: Any) -> Optional[int]:
        return parse_quantity(value)

    @property
    def supports_eip1559(self) -> bool:
        return self.base_fee_per_gas is not None


class Receipt(BaseModel):
    """A transaction receipt as returned by eth_getTransactionReceipt."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    transaction_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: Optional[str] = Field(None, alias="blockHash")
    status: Optional[int] = Field(None, description="1 = success, 0 = revert; absent before Byzantium")
    gas_used: Optional[int] = Field(None, alias="gasUsed")
    effective_gas_price: Optional[int] = Field(None, alias="effectiveGasPrice")

    @field_validator("block_number", "status", "gas_used", "effective_gas_price", mode="before")
    @classmethod
    def _parse_hex(cls, value: Any) -> Optional[int]:
        return parse_quantity(value)

    @property
    def succeeded(self) -> bool:
        return self.status != 0
