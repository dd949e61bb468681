"""
Tests for TransactionBuilder and unit conversion.
"""

from decimal import Decimal

import pytest

from swapsend.core.execution import (
    InvalidRequestError,
    TransactionBuilder,
    format_units,
    parse_units,
)
from swapsend.core.execution.tx_builder import (
    ERC20_APPROVE_SELECTOR,
    MAX_UINT256,
    WETH_DEPOSIT_SELECTOR,
)

from conftest import SENDER, WETH


def test_selectors():
    assert WETH_DEPOSIT_SELECTOR == "0xd0e30db0"
    assert ERC20_APPROVE_SELECTOR == "0x095ea7b3"


class TestTransactionBuilder:

    def test_weth_deposit(self):
        request = TransactionBuilder.build_weth_deposit(
            WETH, 10**18, from_address=SENDER, max_fee_per_gas=100, max_priority_fee_per_gas=2,
        )

        assert request.to_address == WETH
        assert request.data == "0xd0e30db0"
        assert request.value == 10**18
        assert request.from_address == SENDER
        assert request.max_fee_per_gas == 100

    @pytest.mark.parametrize("amount", [0, -1])
    def test_weth_deposit_requires_positive_amount(self, amount):
        with pytest.raises(InvalidRequestError):
            TransactionBuilder.build_weth_deposit(WETH, amount)

    def test_erc20_approve_defaults_to_unlimited(self):
        spender = "0x" + "ab" * 20
        request = TransactionBuilder.build_erc20_approve(WETH, spender)

        assert request.data.startswith("0x095ea7b3")
        assert len(request.data) == 2 + 8 + 64 + 64
        assert request.data[10:74] == "0" * 24 + "ab" * 20
        assert request.data[74:] == "f" * 64
        assert request.value == 0

    def test_erc20_approve_rejects_bad_spender(self):
        with pytest.raises(InvalidRequestError):
            TransactionBuilder.build_erc20_approve(WETH, "0x1234", amount=1)

    def test_erc20_approve_rejects_out_of_range(self):
        with pytest.raises(InvalidRequestError):
            TransactionBuilder.build_erc20_approve(WETH, SENDER, amount=MAX_UINT256 + 1)

    def test_native_transfer(self):
        request = TransactionBuilder.build_native_transfer(SENDER, 5)
        assert (request.to_address, request.data, request.value) == (SENDER, "0x", 5)


class TestUnits:

    @pytest.mark.parametrize("amount, decimals, expected", [
        ("1", 18, 10**18),
        ("1.5", 18, 15 * 10**17),
        ("0.000001", 6, 1),
        (2, 6, 2_000_000),
        (Decimal("0.1"), 18, 10**17),
    ])
    def test_parse_units(self, amount, decimals, expected):
        assert parse_units(amount, decimals) == expected

    @pytest.mark.parametrize("amount", ["abc", "0.0000001", "-1"])
    def test_parse_units_rejects(self, amount):
        with pytest.raises(InvalidRequestError):
            parse_units(amount, 6)

    @pytest.mark.parametrize("raw, expected", [
        (10**18, "1.0"),
        (15 * 10**17, "1.5"),
        (10**19, "10.0"),
        (123_456_789 * 10**9, "0.123456"),
    ])
    def test_format_units(self, raw, expected):
        assert format_units(raw, 18) == expected
