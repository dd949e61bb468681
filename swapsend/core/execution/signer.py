"""
Local-key signer built on eth-account.

Populates the EIP-1559 fields a request leaves open (chain id, nonce, gas
limit, fees) from the chain client, signs, and optionally broadcasts.
"""

import logging
from typing import Any, Dict

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import is_address, to_checksum_address, to_hex

from .base import ChainClient, Signer
from .errors import InvalidRequestError, SigningError
from .models import SignedTransaction, TransactionRequest, coerce_value


logger = logging.getLogger(__name__)

DEFAULT_PRIORITY_FEE_WEI = 1_000_000_000  # 1 gwei


class LocalAccountSigner(Signer):
    """Signs with an in-process private key; broadcasts via a ChainClient."""

    def __init__(self, account: LocalAccount, chain: ChainClient):
        self._account = account
        self.chain = chain

    @classmethod
    def from_key(cls, private_key: str, chain: ChainClient) -> "LocalAccountSigner":
        if not private_key:
            raise ValueError("A private key is required to build a signer")
        return cls(Account.from_key(private_key), chain)

    @property
    def address(self) -> str:
        return self._account.address

    async def get_nonce(self) -> int:
        return await self.chain.get_transaction_count(self.address, "pending")

    async def populate(self, request: TransactionRequest) -> Dict[str, Any]:
        """Build the full EIP-1559 transaction dict for a request."""
        request = request.normalized()

        if not is_address(request.to_address):
            raise InvalidRequestError(f"Invalid destination address: {request.to_address}")
        if request.from_address and request.from_address.lower() != self.address.lower():
            raise InvalidRequestError(
                f"Request sender {request.from_address} does not match signer {self.address}"
            )

        tx: Dict[str, Any] = {
            "type": 2,
            "to": to_checksum_address(request.to_address),
            "data": request.data,
            "value": coerce_value(request.value),
            "chainId": request.chain_id if request.chain_id is not None else await self.chain.chain_id(),
        }

        tx["nonce"] = request.nonce if request.nonce is not None else await self.get_nonce()

        priority_fee = request.max_priority_fee_per_gas
        max_fee = request.max_fee_per_gas
        if max_fee is None or priority_fee is None:
            latest = await self.chain.get_block(await self.chain.block_number())
            if latest is None or latest.base_fee_per_gas is None:
                raise InvalidRequestError("Cannot derive EIP-1559 fees without a base fee")
            if priority_fee is None:
                priority_fee = DEFAULT_PRIORITY_FEE_WEI
            if max_fee is None:
                max_fee = latest.base_fee_per_gas * 2 + priority_fee
        tx["maxPriorityFeePerGas"] = priority_fee
        tx["maxFeePerGas"] = max_fee

        if request.gas_limit is not None:
            tx["gas"] = request.gas_limit
        else:
            call = request.to_call_object()
            call["from"] = self.address
            tx["gas"] = await self.chain.estimate_gas(call)

        return tx

    async def sign_transaction(self, request: TransactionRequest) -> SignedTransaction:
        tx = await self.populate(request)
        try:
            signed = self._account.sign_transaction(tx)
        except (TypeError, ValueError) as e:
            raise SigningError(f"Failed to sign transaction: {e}")

        return SignedTransaction(
            raw_transaction=to_hex(signed.raw_transaction),
            tx_hash=to_hex(signed.hash),
        )

    async def send_transaction(self, request: TransactionRequest) -> str:
        signed = await self.sign_transaction(request)
        tx_hash = await self.chain.send_raw_transaction(signed.raw_transaction)
        logger.info(f"Broadcast {tx_hash} from {self.address}")
        return tx_hash
