"""
Transaction submitter.

Drives a TransactionRequest to a terminal state along one of two paths:

- Direct: sign and broadcast through the Signer, then poll the ChainClient
  for the receipt within a bounded time.
- Bundle: read the current block, sign a one-entry bundle once, simulate it
  against the next block, then offer the same signed bundle to the relay for
  each block of a rolling window, stopping at the first rejection.

Both paths return a SubmissionResult and never raise for network, relay or
input failures; those resolve to Failed with a FailureReason.
"""

import asyncio
import logging
from typing import Optional

from ...config import Settings, settings as default_settings
from .base import ChainClient, RelayClient, Signer
from .cancellation import CancellationToken
from .chain_client import JsonRpcChainClient
from .errors import (
    InvalidRequestError,
    RpcTransportError,
    SubmissionCancelled,
)
from .models import (
    Bundle,
    FailureReason,
    SubmissionConfig,
    SubmissionPath,
    SubmissionResult,
    TransactionRequest,
    TransactionState,
)
from .relay_client import FlashbotsRelayClient
from .signer import LocalAccountSigner
from .state_machine import TransactionStateMachine


logger = logging.getLogger(__name__)


class TransactionSubmitter:
    """
    Submits transactions directly or as private bundles.

    Collaborators are injected; use `from_settings` to build the JSON-RPC,
    eth-account and Flashbots adapters from configuration. Each call is
    independent and holds no state between submissions.
    """

    def __init__(
        self,
        chain: ChainClient,
        signer: Signer,
        relay: Optional[RelayClient] = None,
        config: Optional[SubmissionConfig] = None,
    ):
        self.chain = chain
        self.signer = signer
        self.relay = relay
        self.config = config or SubmissionConfig()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TransactionSubmitter":
        """Build the default adapters (node, local key, Flashbots relay)."""
        settings = settings or default_settings
        if not settings.wallet_private_key:
            raise ValueError("WALLET_PRIVATE_KEY (or PRIVATE_KEY) is not set")
        timeout = settings.request_timeout_seconds

        chain = JsonRpcChainClient(settings.rpc_url, timeout_s=timeout)
        signer = LocalAccountSigner.from_key(settings.wallet_private_key, chain)

        relay = None
        if settings.relay_url:
            auth_key = settings.relay_signing_key or settings.wallet_private_key
            relay = FlashbotsRelayClient.from_key(
                settings.relay_url,
                auth_key,
                timeout_s=timeout,
            )

        return cls(
            chain=chain,
            signer=signer,
            relay=relay,
            config=SubmissionConfig.from_settings(settings),
        )

    async def close(self) -> None:
        await self.chain.close()
        if self.relay is not None:
            await self.relay.close()

    async def __aenter__(self) -> "TransactionSubmitter":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    async def submit(
        self,
        request: TransactionRequest,
        path: SubmissionPath = SubmissionPath.DIRECT,
        *,
        machine: Optional[TransactionStateMachine] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> SubmissionResult:
        """Move `machine` to Sending, run the chosen path, apply its terminal state.

        Raises InvalidTransitionError if the machine is not New (e.g. an
        attempt is already in flight or finished).
        """
        machine = machine or TransactionStateMachine()
        machine.transition(TransactionState.SENDING, reason=path.value)

        if path == SubmissionPath.BUNDLE:
            result = await self.send_bundle(request, cancel=cancel)
        else:
            result = await self.send_transaction(request, cancel=cancel)

        machine.transition(result.state, reason=result.reason.value if result.reason else None)
        return result

    # ------------------------------------------------------------------
    # Direct path
    # ------------------------------------------------------------------

    async def send_transaction(
        self,
        request: TransactionRequest,
        cancel: Optional[CancellationToken] = None,
    ) -> SubmissionResult:
        """Broadcast once, then wait for a receipt."""
        cancel = cancel or CancellationToken()

        try:
            request = request.normalized()
        except InvalidRequestError as e:
            logger.error(f"Rejected transaction request: {e}")
            return _failed(SubmissionPath.DIRECT, FailureReason.INVALID_REQUEST, e)

        try:
            tx_hash = await cancel.guard(self.signer.send_transaction(request))
        except SubmissionCancelled as e:
            return _failed(SubmissionPath.DIRECT, FailureReason.CANCELLED, e)
        except InvalidRequestError as e:
            logger.error(f"Rejected transaction request: {e}")
            return _failed(SubmissionPath.DIRECT, FailureReason.INVALID_REQUEST, e)
        except Exception as e:
            logger.error(f"Transaction broadcast failed: {e}")
            return _failed(SubmissionPath.DIRECT, FailureReason.BROADCAST_FAILED, e)

        return await self._wait_for_receipt(tx_hash, cancel)

    async def _wait_for_receipt(self, tx_hash: str, cancel: CancellationToken) -> SubmissionResult:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.receipt_timeout_seconds
        transport_errors = 0
        attempts = 0

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return self._receipt_timeout(tx_hash, attempts)

            attempts += 1
            try:
                receipt = await asyncio.wait_for(
                    cancel.guard(self.chain.get_transaction_receipt(tx_hash)),
                    timeout=remaining,
                )
            except asyncio.TimeoutError:
                return self._receipt_timeout(tx_hash, attempts)
            except SubmissionCancelled as e:
                logger.warning(f"Stopped waiting for {tx_hash}: {e}")
                return _failed(SubmissionPath.DIRECT, FailureReason.CANCELLED, e, tx_hash=tx_hash)
            except RpcTransportError as e:
                transport_errors += 1
                if transport_errors > self.config.receipt_error_retries:
                    logger.error(f"Receipt error for {tx_hash}: {e}")
                    return _failed(SubmissionPath.DIRECT, FailureReason.RECEIPT_ERROR, e, tx_hash=tx_hash)
                logger.warning(
                    f"Receipt lookup for {tx_hash} failed "
                    f"({transport_errors}/{self.config.receipt_error_retries}): {e}"
                )
            except Exception as e:
                logger.error(f"Receipt error for {tx_hash}: {e}")
                return _failed(SubmissionPath.DIRECT, FailureReason.RECEIPT_ERROR, e, tx_hash=tx_hash)
            else:
                transport_errors = 0
                if receipt is not None:
                    if not receipt.succeeded:
                        logger.warning(f"Transaction {tx_hash} mined in block {receipt.block_number} but reverted")
                    else:
                        logger.info(f"Transaction {tx_hash} mined in block {receipt.block_number}")
                    return SubmissionResult(
                        state=TransactionState.SENT,
                        path=SubmissionPath.DIRECT,
                        tx_hash=tx_hash,
                        receipt=receipt,
                    )

            remaining = deadline - loop.time()
            if remaining <= 0:
                return self._receipt_timeout(tx_hash, attempts)
            try:
                await cancel.sleep(min(self.config.receipt_poll_interval_seconds, remaining))
            except SubmissionCancelled as e:
                logger.warning(f"Stopped waiting for {tx_hash}: {e}")
                return _failed(SubmissionPath.DIRECT, FailureReason.CANCELLED, e, tx_hash=tx_hash)

    def _receipt_timeout(self, tx_hash: str, attempts: int) -> SubmissionResult:
        message = (
            f"No receipt for {tx_hash} after {self.config.receipt_timeout_seconds}s "
            f"({attempts} lookups)"
        )
        logger.error(message)
        return SubmissionResult(
            state=TransactionState.FAILED,
            path=SubmissionPath.DIRECT,
            reason=FailureReason.RECEIPT_TIMEOUT,
            error=message,
            tx_hash=tx_hash,
        )

    # ------------------------------------------------------------------
    # Bundle path
    # ------------------------------------------------------------------

    async def send_bundle(
        self,
        request: TransactionRequest,
        cancel: Optional[CancellationToken] = None,
    ) -> SubmissionResult:
        """Sign once, simulate once, then submit for each block of the window."""
        cancel = cancel or CancellationToken()
        path = SubmissionPath.BUNDLE

        if self.relay is None:
            logger.error("No relay client configured for bundle submission")
            return _failed(path, FailureReason.RELAY_UNAVAILABLE, "No relay client configured")

        try:
            request = request.normalized()
        except InvalidRequestError as e:
            logger.error(f"Rejected transaction request: {e}")
            return _failed(path, FailureReason.INVALID_REQUEST, e)

        # Context fetch
        try:
            block_number = await cancel.guard(self.chain.block_number())
            block = await cancel.guard(self.chain.get_block(block_number))
        except SubmissionCancelled as e:
            return _failed(path, FailureReason.CANCELLED, e)
        except Exception as e:
            logger.error(f"Cannot read current block: {e}")
            return _failed(path, FailureReason.CHAIN_ERROR, e)

        if block is None or block.base_fee_per_gas is None:
            logger.error(f"Cannot get block and base fee per gas for block {block_number}")
            return _failed(path, FailureReason.MISSING_BASE_FEE, f"Block {block_number} has no base fee")

        # Sign exactly once; the same signed bundle is simulated and submitted
        try:
            signed_bundle = await cancel.guard(
                self.relay.sign_bundle(Bundle.single(self.signer, request))
            )
        except SubmissionCancelled as e:
            return _failed(path, FailureReason.CANCELLED, e)
        except Exception as e:
            logger.error(f"Error creating signed bundle: {e}")
            return _failed(path, FailureReason.SIGNING_FAILED, e)

        result = SubmissionResult(state=TransactionState.SENDING, path=path, signed_bundle=signed_bundle)
        targets = self.config.target_blocks(block_number)

        try:
            simulation = await cancel.guard(self.relay.simulate(signed_bundle, targets[0]))
        except SubmissionCancelled as e:
            return _fail(result, FailureReason.CANCELLED, e)
        except Exception as e:
            logger.error(f"Error simulating bundle: {e}")
            return _fail(result, FailureReason.SIMULATION_FAILED, e)

        result.simulation = simulation
        if not simulation.success:
            logger.error(f"Error in simulation: {simulation.error}")
            return _fail(result, FailureReason.SIMULATION_FAILED, simulation.error or "Simulation failed")
        logger.info(f"Simulation succeeded for block #{targets[0]} (gas used {simulation.total_gas_used})")

        for target_block in targets:
            try:
                submission = await cancel.guard(self.relay.send_raw_bundle(signed_bundle, target_block))
            except SubmissionCancelled as e:
                return _fail(result, FailureReason.CANCELLED, e)
            except Exception as e:
                logger.error(f"Error submitting bundle for block #{target_block}: {e}")
                return _fail(result, FailureReason.SUBMISSION_FAILED, e)

            result.submissions.append(submission)
            if not submission.success:
                logger.error(f"Error submitting bundle for block #{target_block}: {submission.error}")
                return _fail(result, FailureReason.SUBMISSION_FAILED, submission.error or "Relay rejected bundle")
            logger.info(f"Bundle submitted for block #{target_block}")

        logger.info(
            f"Bundle {signed_bundle.bundle_hash} submitted for blocks "
            f"#{targets[0]}-#{targets[-1]}"
        )
        result.state = TransactionState.SENT
        return result


def _failed(path: SubmissionPath, reason: FailureReason, error, **kwargs) -> SubmissionResult:
    return SubmissionResult(
        state=TransactionState.FAILED,
        path=path,
        reason=reason,
        error=str(error),
        **kwargs,
    )


def _fail(result: SubmissionResult, reason: FailureReason, error) -> SubmissionResult:
    result.state = TransactionState.FAILED
    result.reason = reason
    result.error = str(error)
    return result
