"""
Transaction submission models and types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple, Union

from eth_utils import keccak, to_bytes, to_hex

from .errors import InvalidRequestError

if TYPE_CHECKING:
    from ...config import Settings
    from .base import Signer
    from .chain_types import Receipt


class TransactionState(str, Enum):
    """Submission lifecycle state."""
    NEW = "New"                  # Built, no submission attempted
    SENDING = "Sending"          # Attempt in flight
    SENT = "Sent"                # Receipt observed / bundle offered for every target block
    FAILED = "Failed"
    REJECTED = "Rejected"        # Operator declined to sign

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({
    TransactionState.SENT,
    TransactionState.FAILED,
    TransactionState.REJECTED,
})


class SubmissionPath(str, Enum):
    """How a transaction reaches the network."""
    DIRECT = "direct"            # Public node broadcast + receipt poll
    BUNDLE = "bundle"            # Private relay, simulated then offered for several blocks


class FailureReason(str, Enum):
    """Why a submission ended in Failed."""
    INVALID_REQUEST = "invalid_request"
    RELAY_UNAVAILABLE = "relay_unavailable"
    CHAIN_ERROR = "chain_error"
    MISSING_BASE_FEE = "missing_base_fee"
    SIGNING_FAILED = "signing_failed"
    BROADCAST_FAILED = "broadcast_failed"
    RECEIPT_ERROR = "receipt_error"
    RECEIPT_TIMEOUT = "receipt_timeout"
    SIMULATION_FAILED = "simulation_failed"
    SUBMISSION_FAILED = "submission_failed"
    CANCELLED = "cancelled"


def coerce_value(value: Union[int, str, None]) -> int:
    """Coerce a transaction value to an unsigned integer amount of wei.

    Accepts ints, decimal strings and 0x-prefixed hex strings. None means 0.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise InvalidRequestError(f"Transaction value must be an integer amount, got {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if text.lower().startswith("0x"):
                amount = int(text, 16)
            else:
                amount = int(text, 10)
        except ValueError:
            raise InvalidRequestError(f"Transaction value is not an integer amount: {value!r}")
    else:
        raise InvalidRequestError(f"Unsupported transaction value type: {type(value).__name__}")

    if amount < 0:
        raise InvalidRequestError(f"Transaction value must be non-negative, got {amount}")
    return amount


@dataclass(frozen=True)
class TransactionRequest:
    """A transaction ready to be signed and delivered."""
    to_address: str
    data: str = "0x"                            # Encoded calldata (hex)
    value: Union[int, str, None] = None         # Wei; coerced before use
    max_fee_per_gas: Optional[int] = None       # EIP-1559
    max_priority_fee_per_gas: Optional[int] = None
    from_address: Optional[str] = None

    # Filled by the signer when absent
    gas_limit: Optional[int] = None
    nonce: Optional[int] = None
    chain_id: Optional[int] = None

    def normalized(self) -> "TransactionRequest":
        """Return a copy whose value is an unsigned int."""
        if not self.to_address:
            raise InvalidRequestError("Transaction request needs a destination address")
        if not isinstance(self.data, str) or not self.data.startswith("0x"):
            raise InvalidRequestError("Transaction data must be 0x-prefixed hex")
        return replace(self, value=coerce_value(self.value))

    def to_call_object(self) -> Dict[str, Any]:
        """JSON-RPC call object (eth_estimateGas / eth_call)."""
        call = {
            "to": self.to_address,
            "data": self.data,
            "value": hex(coerce_value(self.value)),
        }
        if self.from_address:
            call["from"] = self.from_address
        return call


@dataclass(frozen=True)
class BundleEntry:
    """One signer/transaction pair inside a bundle."""
    signer: "Signer"
    transaction: TransactionRequest


@dataclass(frozen=True)
class Bundle:
    """Transactions to be included, in order, in a single target block."""
    entries: Tuple[BundleEntry, ...]

    def __post_init__(self):
        if not self.entries:
            raise InvalidRequestError("A bundle needs at least one transaction")

    @classmethod
    def single(cls, signer: "Signer", transaction: TransactionRequest) -> "Bundle":
        return cls(entries=(BundleEntry(signer=signer, transaction=transaction),))

    def __iter__(self) -> Iterator[BundleEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class SignedTransaction:
    """A raw signed transaction and its hash."""
    raw_transaction: str
    tx_hash: str


@dataclass(frozen=True)
class SignedBundle:
    """Signed form of a Bundle. Reused for every target block."""
    raw_transactions: Tuple[str, ...]
    tx_hashes: Tuple[str, ...]

    @property
    def bundle_hash(self) -> str:
        """keccak256 over the concatenated transaction hashes."""
        return to_hex(keccak(b"".join(to_bytes(hexstr=h) for h in self.tx_hashes)))

    def to_params(self, target_block: int) -> Dict[str, Any]:
        return {
            "txs": list(self.raw_transactions),
            "blockNumber": hex(target_block),
        }


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of dry-running a signed bundle."""
    success: bool
    error: Optional[str] = None
    bundle_hash: Optional[str] = None
    total_gas_used: int = 0
    coinbase_diff: int = 0
    state_block_number: Optional[int] = None
    results: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class BundleSubmissionResult:
    """Outcome of offering a signed bundle for one target block."""
    target_block: int
    success: bool
    bundle_hash: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SubmissionResult:
    """What a submission path hands back to its caller."""
    state: TransactionState
    path: SubmissionPath
    reason: Optional[FailureReason] = None
    error: Optional[str] = None

    # Direct path
    tx_hash: Optional[str] = None
    receipt: Optional["Receipt"] = None

    # Bundle path
    signed_bundle: Optional[SignedBundle] = None
    simulation: Optional[SimulationResult] = None
    submissions: List[BundleSubmissionResult] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.state == TransactionState.SENT

    @property
    def timed_out(self) -> bool:
        return self.reason == FailureReason.RECEIPT_TIMEOUT

    @property
    def cancelled(self) -> bool:
        return self.reason == FailureReason.CANCELLED

    @property
    def submitted_blocks(self) -> List[int]:
        return [s.target_block for s in self.submissions if s.success]


@dataclass(frozen=True)
class SubmissionConfig:
    """Polling bounds and the bundle retry window."""
    receipt_poll_interval_seconds: float = 1.0
    receipt_timeout_seconds: float = 180.0
    receipt_error_retries: int = 3
    bundle_start_offset: int = 1
    bundle_block_window: int = 10

    def __post_init__(self):
        if self.receipt_poll_interval_seconds < 0:
            raise ValueError("receipt_poll_interval_seconds must be >= 0")
        if self.receipt_timeout_seconds <= 0:
            raise ValueError("receipt_timeout_seconds must be > 0")
        if self.receipt_error_retries < 0:
            raise ValueError("receipt_error_retries must be >= 0")
        if self.bundle_start_offset < 1:
            raise ValueError("bundle_start_offset must be >= 1")
        if self.bundle_block_window < 1:
            raise ValueError("bundle_block_window must be >= 1")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SubmissionConfig":
        return cls(
            receipt_poll_interval_seconds=settings.receipt_poll_interval_seconds,
            receipt_timeout_seconds=settings.receipt_timeout_seconds,
            receipt_error_retries=settings.receipt_error_retries,
            bundle_start_offset=settings.bundle_start_offset,
            bundle_block_window=settings.bundle_block_window,
        )

    def target_blocks(self, current_block: int) -> range:
        first = current_block + self.bundle_start_offset
        return range(first, first + self.bundle_block_window)
