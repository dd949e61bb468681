"""Operator CLI: wrap ether or send a transaction, directly or as a relay bundle."""

import argparse
import asyncio
import sys
from typing import Callable, List, Optional

from .config import settings
from .core.execution import (
    InvalidRequestError,
    RpcError,
    SubmissionPath,
    SubmissionResult,
    TransactionBuilder,
    TransactionRequest,
    TransactionState,
    TransactionStateMachine,
    TransactionSubmitter,
    format_units,
    parse_units,
)
from .logging_config import setup_logging


def print_result(result: SubmissionResult) -> None:
    """Pretty print a submission outcome"""
    icon = "✅" if result.is_success else "❌"
    print(f"\n{icon} Transaction State: {result.state.value}")
    print(f"Path: {result.path.value}")
    if result.tx_hash:
        print(f"Hash: {result.tx_hash}")
    if result.receipt is not None:
        print(f"Block: {result.receipt.block_number}")
    if result.signed_bundle is not None:
        print(f"Bundle: {result.signed_bundle.bundle_hash}")
    if result.submitted_blocks:
        blocks = result.submitted_blocks
        print(f"Offered for blocks: #{blocks[0]}-#{blocks[-1]}")
    if result.reason:
        print(f"Reason: {result.reason.value}")
    if result.error:
        print(f"Error: {result.error}")


def confirm(prompt: str, input_fn: Callable[[str], str] = input) -> bool:
    try:
        answer = input_fn(f"{prompt} [y/N] ").strip().lower()
    except EOFError:
        return False
    return answer in ("y", "yes")


async def cli_block(submitter: TransactionSubmitter) -> int:
    """Print the current block and its base fee"""
    number = await submitter.chain.block_number()
    block = await submitter.chain.get_block(number)
    print(f"Block Number: {number}")
    if block is None or block.base_fee_per_gas is None:
        print("Base fee: unavailable (bundles cannot be sent on this chain)")
    else:
        print(f"Base fee: {format_units(block.base_fee_per_gas, 9)} gwei")
    return 0


async def cli_submit(
    submitter: TransactionSubmitter,
    request: TransactionRequest,
    path: SubmissionPath,
    assume_yes: bool = False,
    input_fn: Callable[[str], str] = input,
) -> int:
    """Submit a request, asking the operator first unless assume_yes"""
    machine = TransactionStateMachine()

    value = int(request.value or 0)
    print(f"To:    {request.to_address}")
    print(f"Value: {format_units(value, 18)} ETH")
    print(f"Data:  {request.data}")
    print(f"Path:  {path.value}")

    if not assume_yes and not confirm("Send this transaction?", input_fn):
        machine.transition(TransactionState.REJECTED, reason="declined by operator")
        print(f"\n🚫 Transaction State: {machine.current_state.value}")
        return 1

    print("\n⏳ Sending...")
    result = await submitter.submit(request, path, machine=machine)
    print_result(result)
    return 0 if result.is_success else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Transaction submission CLI")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("block", help="Show the current block and base fee")

    wrap_parser = subparsers.add_parser("wrap", help="Wrap ether into WETH")
    wrap_parser.add_argument("--amount", required=True, help="Ether to wrap (e.g. 1.5)")

    send_parser = subparsers.add_parser("send", help="Send an arbitrary transaction")
    send_parser.add_argument("--to", required=True, help="Destination address")
    send_parser.add_argument("--data", default="0x", help="Hex calldata")
    send_parser.add_argument("--value", default="0", help="Value in wei (decimal or 0x hex)")

    for sub in (wrap_parser, send_parser):
        sub.add_argument("--bundle", action="store_true", help="Deliver privately through the relay")
        sub.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser


async def run(
    argv: Optional[List[str]] = None,
    submitter: Optional[TransactionSubmitter] = None,
    input_fn: Callable[[str], str] = input,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    setup_logging(args.log_level)

    owns_submitter = submitter is None
    if submitter is None:
        try:
            submitter = TransactionSubmitter.from_settings(settings)
        except ValueError as e:
            print(f"❌ Configuration error: {e}")
            return 2

    try:
        if args.command == "block":
            return await cli_block(submitter)

        path = SubmissionPath.BUNDLE if args.bundle else SubmissionPath.DIRECT
        fees = dict(
            max_fee_per_gas=settings.max_fee_per_gas_wei,
            max_priority_fee_per_gas=settings.max_priority_fee_per_gas_wei,
        )

        if args.command == "wrap":
            request = TransactionBuilder.build_weth_deposit(
                weth_address=settings.weth_address,
                amount_wei=parse_units(args.amount, 18),
                from_address=submitter.signer.address,
                **fees,
            )
        else:
            request = TransactionRequest(
                to_address=args.to,
                data=args.data,
                value=args.value,
                from_address=submitter.signer.address,
                **fees,
            ).normalized()

        return await cli_submit(submitter, request, path, assume_yes=args.yes, input_fn=input_fn)

    except InvalidRequestError as e:
        print(f"❌ Invalid request: {e}")
        return 2
    except RpcError as e:
        print(f"❌ Node error: {e}")
        return 1
    finally:
        if owns_submitter:
            await submitter.close()


def main() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
