"""
Execution node client over JSON-RPC.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .base import ChainClient
from .chain_types import Block, Receipt, parse_quantity
from .errors import RpcTransportError
from .rpc import JsonRpcTransport


logger = logging.getLogger(__name__)


class JsonRpcChainClient(ChainClient):
    """ChainClient backed by a standard Ethereum JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._rpc = JsonRpcTransport(rpc_url, timeout_s=timeout_s, client=client)
        self._chain_id: Optional[int] = None

    async def _quantity(self, method: str, params: list) -> int:
        result = await self._rpc.call(method, params)
        try:
            value = parse_quantity(result)
        except ValueError:
            value = None
        if value is None:
            raise RpcTransportError(method, f"Expected a quantity, got {result!r}")
        return value

    async def block_number(self) -> int:
        return await self._quantity("eth_blockNumber", [])

    async def get_block(self, number: int) -> Optional[Block]:
        result = await self._rpc.call("eth_getBlockByNumber", [hex(number), False])
        if result is None:
            return None
        try:
            return Block.model_validate(result)
        except ValidationError as exc:
            raise RpcTransportError("eth_getBlockByNumber", f"Malformed block: {exc}")

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        result = await self._rpc.call("eth_getTransactionReceipt", [tx_hash])
        if result is None:
            return None
        try:
            return Receipt.model_validate(result)
        except ValidationError as exc:
            raise RpcTransportError("eth_getTransactionReceipt", f"Malformed receipt: {exc}")

    async def send_raw_transaction(self, raw_transaction: str) -> str:
        tx_hash = await self._rpc.call("eth_sendRawTransaction", [raw_transaction])
        logger.info(f"Transaction submitted: {tx_hash}")
        return tx_hash

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return await self._quantity("eth_getTransactionCount", [address, block])

    async def estimate_gas(self, call: Dict[str, Any]) -> int:
        return await self._quantity("eth_estimateGas", [call])

    async def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._quantity("eth_chainId", [])
        return self._chain_id

    async def close(self) -> None:
        await self._rpc.close()
