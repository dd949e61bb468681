"""
Shared fakes for the execution layer tests.
"""

import pytest
from unittest.mock import AsyncMock

from swapsend.core.execution import (
    Block,
    BundleSubmissionResult,
    Receipt,
    SignedBundle,
    SignedTransaction,
    SimulationResult,
    SubmissionConfig,
    TransactionRequest,
    TransactionSubmitter,
)


SENDER = "0x1111111111111111111111111111111111111111"
WETH = "0x2222222222222222222222222222222222222222"
TX_HASH = "0x" + "ab" * 32

# Hardhat/Anvil development account #0
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


def make_receipt(block_number: int = 101, status: int = 1) -> Receipt:
    return Receipt(
        transaction_hash=TX_HASH,
        block_number=block_number,
        block_hash="0x" + "cd" * 32,
        status=status,
        gas_used=46_000,
    )


class DummyChain:
    """Minimal chain client stub for tests."""

    def __init__(self, block_number: int = 100, base_fee: int = 1_000_000_000):
        self.block_number = AsyncMock(return_value=block_number)
        self.get_block = AsyncMock(
            return_value=Block(number=block_number, base_fee_per_gas=base_fee)
        )
        self.get_transaction_receipt = AsyncMock(return_value=make_receipt())
        self.send_raw_transaction = AsyncMock(return_value=TX_HASH)
        self.close = AsyncMock()


class DummySigner:
    """Minimal signer stub for tests."""

    def __init__(self, address: str = SENDER):
        self.address = address
        self.get_nonce = AsyncMock(return_value=0)
        self.sign_transaction = AsyncMock(
            return_value=SignedTransaction(raw_transaction="0x02f8", tx_hash=TX_HASH)
        )
        self.send_transaction = AsyncMock(return_value=TX_HASH)


class DummyRelay:
    """Relay stub that simulates fine and accepts every submission."""

    def __init__(self):
        self.signed_bundle = SignedBundle(raw_transactions=("0x02f8",), tx_hashes=(TX_HASH,))
        self.sign_bundle = AsyncMock(return_value=self.signed_bundle)
        self.simulate = AsyncMock(return_value=SimulationResult(success=True, total_gas_used=46_000))
        self.send_raw_bundle = AsyncMock(side_effect=self._accept)
        self.close = AsyncMock()

    @staticmethod
    async def _accept(signed_bundle, target_block):
        return BundleSubmissionResult(target_block=target_block, success=True)

    @property
    def submitted_targets(self):
        return [c.args[1] for c in self.send_raw_bundle.await_args_list]


@pytest.fixture
def chain() -> DummyChain:
    return DummyChain()


@pytest.fixture
def signer() -> DummySigner:
    return DummySigner()


@pytest.fixture
def relay() -> DummyRelay:
    return DummyRelay()


@pytest.fixture
def fast_config() -> SubmissionConfig:
    return SubmissionConfig(
        receipt_poll_interval_seconds=0,
        receipt_timeout_seconds=5,
        receipt_error_retries=0,
    )


@pytest.fixture
def submitter(chain, signer, relay, fast_config) -> TransactionSubmitter:
    return TransactionSubmitter(chain=chain, signer=signer, relay=relay, config=fast_config)


@pytest.fixture
def wrap_request() -> TransactionRequest:
    return TransactionRequest(
        to_address=WETH,
        data="0xd0e30db0",
        value=10**18,
        from_address=SENDER,
        max_fee_per_gas=100_000_000_000,
        max_priority_fee_per_gas=2_000_000_000,
    )
