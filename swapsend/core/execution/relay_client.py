"""
Flashbots-style private bundle relay client.

Implements the three relay calls the bundle path needs:
- sign_bundle: sign every entry once, filling nonces per signer
- simulate: eth_callBundle against a target block
- send_raw_bundle: eth_sendBundle for a target block

Every request is authenticated with an X-Flashbots-Signature header: the
auth key's EIP-191 signature over the hex keccak256 of the request body.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

import httpx
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import keccak, to_hex

from .base import RelayClient
from .chain_types import parse_quantity
from .errors import ExecutionError, RpcResponseError, RpcTransportError, SigningError
from .models import (
    BundleEntry,
    BundleSubmissionResult,
    SignedBundle,
    SimulationResult,
)
from .rpc import JsonRpcTransport


logger = logging.getLogger(__name__)

FLASHBOTS_SIGNATURE_HEADER = "X-Flashbots-Signature"


class FlashbotsRelayClient(RelayClient):
    """RelayClient speaking the Flashbots bundle JSON-RPC methods."""

    def __init__(
        self,
        relay_url: str,
        auth_account: LocalAccount,
        *,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._auth_account = auth_account
        self._rpc = JsonRpcTransport(relay_url, timeout_s=timeout_s, client=client)

    @classmethod
    def from_key(
        cls,
        relay_url: str,
        auth_key: str,
        **kwargs: Any,
    ) -> "FlashbotsRelayClient":
        if not auth_key:
            raise ValueError("A relay signing key is required")
        return cls(relay_url, Account.from_key(auth_key), **kwargs)

    @property
    def auth_address(self) -> str:
        return self._auth_account.address

    def _auth_headers(self, body: str) -> Dict[str, str]:
        message = encode_defunct(text=to_hex(keccak(text=body)))
        signed = self._auth_account.sign_message(message)
        return {FLASHBOTS_SIGNATURE_HEADER: f"{self.auth_address}:{to_hex(signed.signature)}"}

    async def _call(self, method: str, params: List[Any]) -> Any:
        return await self._rpc.call(method, params, body_headers=self._auth_headers)

    async def sign_bundle(self, entries: Iterable[BundleEntry]) -> SignedBundle:
        """Sign each entry in order.

        Entries without an explicit nonce get consecutive nonces per signer,
        starting from the signer's pending nonce.
        """
        if not entries:
            raise SigningError("Cannot sign an empty bundle")

        next_nonces: Dict[str, int] = {}
        raw_transactions = []
        tx_hashes = []

        for entry in entries:
            request = entry.transaction
            try:
                if request.nonce is None:
                    key = entry.signer.address.lower()
                    if key not in next_nonces:
                        next_nonces[key] = await entry.signer.get_nonce()
                    request = replace(request, nonce=next_nonces[key])
                    next_nonces[key] += 1

                signed = await entry.signer.sign_transaction(request)
            except SigningError:
                raise
            except ExecutionError as e:
                raise SigningError(f"Failed to sign bundle entry: {e}")

            raw_transactions.append(signed.raw_transaction)
            tx_hashes.append(signed.tx_hash)

        bundle = SignedBundle(
            raw_transactions=tuple(raw_transactions),
            tx_hashes=tuple(tx_hashes),
        )
        logger.debug(f"Signed bundle {bundle.bundle_hash} with {len(tx_hashes)} transaction(s)")
        return bundle

    async def simulate(
        self,
        signed_bundle: SignedBundle,
        target_block: int,
        state_block: str = "latest",
    ) -> SimulationResult:
        params = signed_bundle.to_params(target_block)
        params["stateBlockNumber"] = state_block

        try:
            result = await self._call("eth_callBundle", [params])
        except RpcResponseError as e:
            return SimulationResult(success=False, error=e.message)

        if result is None:
            result = {}
        if not isinstance(result, dict):
            raise RpcTransportError("eth_callBundle", f"Expected a bundle result object, got {type(result).__name__}")
        tx_results = tuple(result.get("results") or ())
        first_revert = next(
            (r for r in tx_results if isinstance(r, dict) and (r.get("error") or r.get("revert"))),
            None,
        )

        error = None
        if first_revert is not None:
            error = (
                f"Transaction {first_revert.get('txHash')} reverted: "
                f"{first_revert.get('revert') or first_revert.get('error')}"
            )

        try:
            total_gas_used = parse_quantity(result.get("totalGasUsed")) or 0
            coinbase_diff = parse_quantity(result.get("coinbaseDiff")) or 0
            state_block_number = parse_quantity(result.get("stateBlockNumber"))
        except ValueError as e:
            raise RpcTransportError("eth_callBundle", f"Malformed bundle result: {e}")

        return SimulationResult(
            success=error is None,
            error=error,
            bundle_hash=result.get("bundleHash"),
            total_gas_used=total_gas_used,
            coinbase_diff=coinbase_diff,
            state_block_number=state_block_number,
            results=tx_results,
        )

    async def send_raw_bundle(
        self,
        signed_bundle: SignedBundle,
        target_block: int,
    ) -> BundleSubmissionResult:
        try:
            result = await self._call("eth_sendBundle", [signed_bundle.to_params(target_block)])
        except RpcResponseError as e:
            return BundleSubmissionResult(
                target_block=target_block,
                success=False,
                error=e.message,
            )

        bundle_hash = result.get("bundleHash") if isinstance(result, dict) else None
        return BundleSubmissionResult(
            target_block=target_block,
            success=True,
            bundle_hash=bundle_hash or signed_bundle.bundle_hash,
        )

    async def close(self) -> None:
        await self._rpc.close()
