"""
Collaborator interfaces the submitter depends on.

Concrete adapters live in chain_client.py, signer.py and relay_client.py;
tests substitute fakes.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

from .chain_types import Block, Receipt
from .models import (
    BundleEntry,
    BundleSubmissionResult,
    SignedBundle,
    SignedTransaction,
    SimulationResult,
    TransactionRequest,
)


class ChainClient(ABC):
    """Read access to an execution node plus raw broadcast."""

    @abstractmethod
    async def block_number(self) -> int:
        """Current block number."""
        pass

    @abstractmethod
    async def get_block(self, number: int) -> Optional[Block]:
        """Block by number, or None if the node does not have it."""
        pass

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        """Receipt by hash, or None while the transaction is not mined."""
        pass

    @abstractmethod
    async def send_raw_transaction(self, raw_transaction: str) -> str:
        """Broadcast a signed transaction and return its hash."""
        pass

    @abstractmethod
    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        """Nonce of `address` at `block`."""
        pass

    @abstractmethod
    async def estimate_gas(self, call: Dict[str, Any]) -> int:
        pass

    @abstractmethod
    async def chain_id(self) -> int:
        pass

    async def close(self) -> None:
        pass


class Signer(ABC):
    """Holds key material for one address."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def get_nonce(self) -> int:
        """Next nonce for this address, counting pending transactions."""
        pass

    @abstractmethod
    async def sign_transaction(self, request: TransactionRequest) -> SignedTransaction:
        pass

    @abstractmethod
    async def send_transaction(self, request: TransactionRequest) -> str:
        """Sign and broadcast; returns the transaction hash."""
        pass


class RelayClient(ABC):
    """Private bundle relay (Flashbots protocol)."""

    @abstractmethod
    async def sign_bundle(self, entries: Iterable[BundleEntry]) -> SignedBundle:
        pass

    @abstractmethod
    async def simulate(self, signed_bundle: SignedBundle, target_block: int) -> SimulationResult:
        pass

    @abstractmethod
    async def send_raw_bundle(
        self,
        signed_bundle: SignedBundle,
        target_block: int,
    ) -> BundleSubmissionResult:
        pass

    async def close(self) -> None:
        pass
