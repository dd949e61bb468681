"""
Tests for the direct submission path: broadcast once, poll for the receipt.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from swapsend.core.execution import (
    CancellationToken,
    FailureReason,
    RpcResponseError,
    RpcTransportError,
    SubmissionConfig,
    SubmissionPath,
    TransactionRequest,
    TransactionState,
    TransactionSubmitter,
)

from conftest import SENDER, TX_HASH, WETH, make_receipt


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_value", ["abc", "1.5", "", -1, True, 1.5, b"\x01"])
async def test_malformed_value_fails_without_broadcast(submitter, signer, bad_value):
    request = TransactionRequest(to_address=WETH, value=bad_value, from_address=SENDER)

    result = await submitter.send_transaction(request)

    assert result.state == TransactionState.FAILED
    assert result.reason == FailureReason.INVALID_REQUEST
    signer.send_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_value_is_coerced_before_broadcast(submitter, signer):
    request = TransactionRequest(to_address=WETH, value="0x10", from_address=SENDER)

    result = await submitter.send_transaction(request)

    assert result.state == TransactionState.SENT
    sent_request = signer.send_transaction.await_args.args[0]
    assert sent_request.value == 16
    # The caller's request is untouched
    assert request.value == "0x10"


@pytest.mark.asyncio
async def test_receipt_after_three_empty_polls_is_sent(submitter, chain, signer, wrap_request):
    chain.get_transaction_receipt = AsyncMock(side_effect=[None, None, None, make_receipt(105)])

    result = await submitter.send_transaction(wrap_request)

    assert result.state == TransactionState.SENT
    assert result.path == SubmissionPath.DIRECT
    assert result.tx_hash == TX_HASH
    assert result.receipt.block_number == 105
    assert chain.get_transaction_receipt.await_count == 4
    signer.send_transaction.assert_awaited_once()


@pytest.mark.asyncio
async def test_reverted_receipt_still_counts_as_sent(submitter, chain, wrap_request):
    chain.get_transaction_receipt = AsyncMock(return_value=make_receipt(status=0))

    result = await submitter.send_transaction(wrap_request)

    assert result.state == TransactionState.SENT
    assert result.receipt.succeeded is False


@pytest.mark.asyncio
async def test_broadcast_failure_is_failed_without_polling(submitter, chain, signer, wrap_request):
    signer.send_transaction.side_effect = RpcResponseError("eth_sendRawTransaction", "nonce too low")

    result = await submitter.send_transaction(wrap_request)

    assert result.state == TransactionState.FAILED
    assert result.reason == FailureReason.BROADCAST_FAILED
    assert "nonce too low" in result.error
    chain.get_transaction_receipt.assert_not_awaited()


@pytest.mark.asyncio
async def test_receipt_rpc_error_stops_polling(submitter, chain, wrap_request):
    chain.get_transaction_receipt = AsyncMock(
        side_effect=RpcResponseError("eth_getTransactionReceipt", "unknown transaction")
    )

    result = await submitter.send_transaction(wrap_request)

    assert result.state == TransactionState.FAILED
    assert result.reason == FailureReason.RECEIPT_ERROR
    assert result.tx_hash == TX_HASH
    assert chain.get_transaction_receipt.await_count == 1


@pytest.mark.asyncio
async def test_transport_error_fails_when_no_retries_allowed(submitter, chain, wrap_request):
    chain.get_transaction_receipt = AsyncMock(
        side_effect=RpcTransportError("eth_getTransactionReceipt", "connection refused")
    )

    result = await submitter.send_transaction(wrap_request)

    assert result.reason == FailureReason.RECEIPT_ERROR
    assert chain.get_transaction_receipt.await_count == 1


@pytest.mark.asyncio
async def test_transient_transport_errors_are_retried(chain, signer, wrap_request):
    config = SubmissionConfig(receipt_poll_interval_seconds=0, receipt_error_retries=2)
    submitter = TransactionSubmitter(chain=chain, signer=signer, config=config)
    transient = RpcTransportError("eth_getTransactionReceipt", "timeout")
    chain.get_transaction_receipt = AsyncMock(side_effect=[transient, None, transient, transient, make_receipt()])

    result = await submitter.send_transaction(wrap_request)

    assert result.state == TransactionState.SENT
    assert chain.get_transaction_receipt.await_count == 5


@pytest.mark.asyncio
async def test_consecutive_transport_errors_beyond_limit_fail(chain, signer, wrap_request):
    config = SubmissionConfig(receipt_poll_interval_seconds=0, receipt_error_retries=2)
    submitter = TransactionSubmitter(chain=chain, signer=signer, config=config)
    chain.get_transaction_receipt = AsyncMock(
        side_effect=RpcTransportError("eth_getTransactionReceipt", "connection reset")
    )

    result = await submitter.send_transaction(wrap_request)

    assert result.reason == FailureReason.RECEIPT_ERROR
    assert chain.get_transaction_receipt.await_count == 3


@pytest.mark.asyncio
async def test_receipt_wait_is_bounded(chain, signer, wrap_request):
    config = SubmissionConfig(receipt_poll_interval_seconds=0.01, receipt_timeout_seconds=0.05)
    submitter = TransactionSubmitter(chain=chain, signer=signer, config=config)
    chain.get_transaction_receipt = AsyncMock(return_value=None)

    result = await submitter.send_transaction(wrap_request)

    assert result.state == TransactionState.FAILED
    assert result.reason == FailureReason.RECEIPT_TIMEOUT
    assert result.timed_out
    assert result.tx_hash == TX_HASH
    assert chain.get_transaction_receipt.await_count >= 1


@pytest.mark.asyncio
async def test_hung_receipt_lookup_times_out(chain, signer, wrap_request):
    config = SubmissionConfig(receipt_poll_interval_seconds=0, receipt_timeout_seconds=0.05)
    submitter = TransactionSubmitter(chain=chain, signer=signer, config=config)

    async def hang(tx_hash):
        await asyncio.sleep(3600)

    chain.get_transaction_receipt = AsyncMock(side_effect=hang)

    result = await asyncio.wait_for(submitter.send_transaction(wrap_request), timeout=2)

    assert result.reason == FailureReason.RECEIPT_TIMEOUT


@pytest.mark.asyncio
async def test_cancel_during_receipt_poll_cancels_inflight_lookup(chain, signer, wrap_request):
    config = SubmissionConfig(receipt_poll_interval_seconds=0, receipt_timeout_seconds=60)
    submitter = TransactionSubmitter(chain=chain, signer=signer, config=config)
    lookup_started = asyncio.Event()
    lookup_cancelled = asyncio.Event()

    async def hang(tx_hash):
        lookup_started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            lookup_cancelled.set()
            raise

    chain.get_transaction_receipt = AsyncMock(side_effect=hang)
    token = CancellationToken()

    task = asyncio.create_task(submitter.send_transaction(wrap_request, cancel=token))
    await asyncio.wait_for(lookup_started.wait(), timeout=2)
    token.cancel("operator abort")
    result = await asyncio.wait_for(task, timeout=2)

    assert result.state == TransactionState.FAILED
    assert result.cancelled
    assert "operator abort" in result.error
    assert lookup_cancelled.is_set()


@pytest.mark.asyncio
async def test_cancel_during_poll_sleep(chain, signer, wrap_request):
    config = SubmissionConfig(receipt_poll_interval_seconds=30, receipt_timeout_seconds=60)
    submitter = TransactionSubmitter(chain=chain, signer=signer, config=config)
    chain.get_transaction_receipt = AsyncMock(return_value=None)
    token = CancellationToken()

    asyncio.get_running_loop().call_later(0.02, token.cancel)
    result = await asyncio.wait_for(submitter.send_transaction(wrap_request, cancel=token), timeout=2)

    assert result.reason == FailureReason.CANCELLED
    assert chain.get_transaction_receipt.await_count == 1


@pytest.mark.asyncio
async def test_already_cancelled_token_skips_broadcast(submitter, signer, wrap_request):
    token = CancellationToken()
    token.cancel()

    result = await submitter.send_transaction(wrap_request, cancel=token)

    assert result.reason == FailureReason.CANCELLED
    signer.send_transaction.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_broadcast_exception_resolves_to_failed(submitter, chain, signer, wrap_request):
    signer.send_transaction.side_effect = ConnectionError("socket closed")

    result = await submitter.send_transaction(wrap_request)

    assert result.state == TransactionState.FAILED
    assert result.reason == FailureReason.BROADCAST_FAILED
    assert "socket closed" in result.error
    chain.get_transaction_receipt.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_receipt_exception_resolves_to_failed(submitter, chain, wrap_request):
    chain.get_transaction_receipt = AsyncMock(side_effect=OSError("bad file descriptor"))

    result = await submitter.send_transaction(wrap_request)

    assert result.reason == FailureReason.RECEIPT_ERROR
    assert result.tx_hash == TX_HASH
