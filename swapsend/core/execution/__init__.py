"""
Transaction Submission Layer

Delivers a prepared transaction to the network and reduces the outcome to a
terminal TransactionState:
- TransactionSubmitter: direct broadcast + receipt poll, or private bundle
  (sign once, simulate, submit for a window of upcoming blocks)
- TransactionStateMachine: validated New -> Sending -> Sent/Failed transitions
- JsonRpcChainClient / LocalAccountSigner / FlashbotsRelayClient: adapters
- TransactionBuilder: WETH deposit, ERC20 approve, native transfer

Usage:
    from swapsend.core.execution import (
        SubmissionPath,
        TransactionBuilder,
        TransactionSubmitter,
    )

    async with TransactionSubmitter.from_settings() as submitter:
        request = TransactionBuilder.build_weth_deposit(weth, amount_wei)
        result = await submitter.submit(request, SubmissionPath.BUNDLE)
"""

from .models import (
    Bundle,
    BundleEntry,
    BundleSubmissionResult,
    FailureReason,
    SignedBundle,
    SignedTransaction,
    SimulationResult,
    SubmissionConfig,
    SubmissionPath,
    SubmissionResult,
    TransactionRequest,
    TransactionState,
    coerce_value,
)

from .chain_types import Block, Receipt

from .errors import (
    ExecutionError,
    InvalidRequestError,
    InvalidTransitionError,
    RpcError,
    RpcResponseError,
    RpcTransportError,
    SigningError,
    SubmissionCancelled,
)

from .base import ChainClient, RelayClient, Signer

from .cancellation import CancellationToken

from .chain_client import JsonRpcChainClient

from .signer import LocalAccountSigner

from .relay_client import FlashbotsRelayClient

from .state_machine import StateTransition, TransactionStateMachine

from .submitter import TransactionSubmitter

from .tx_builder import TransactionBuilder, format_units, parse_units

__all__ = [
    # Models
    "Bundle",
    "BundleEntry",
    "BundleSubmissionResult",
    "FailureReason",
    "SignedBundle",
    "SignedTransaction",
    "SimulationResult",
    "SubmissionConfig",
    "SubmissionPath",
    "SubmissionResult",
    "TransactionRequest",
    "TransactionState",
    "coerce_value",
    "Block",
    "Receipt",
    # Errors
    "ExecutionError",
    "InvalidRequestError",
    "InvalidTransitionError",
    "RpcError",
    "RpcResponseError",
    "RpcTransportError",
    "SigningError",
    "SubmissionCancelled",
    # Collaborators
    "ChainClient",
    "RelayClient",
    "Signer",
    "JsonRpcChainClient",
    "LocalAccountSigner",
    "FlashbotsRelayClient",
    # Engine
    "CancellationToken",
    "StateTransition",
    "TransactionStateMachine",
    "TransactionSubmitter",
    # Builder
    "TransactionBuilder",
    "format_units",
    "parse_units",
]
