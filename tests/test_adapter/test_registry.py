"""
Asset Registry Test Suite

Tests method resolution, chain metadata and floor amount conversion.

Usage:
    pytest tests/test_adapter/test_registry.py -v
"""

from decimal import Decimal

import pytest

import sys
from pathlib import Path
src_path = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(src_path))

from mcp_payments.engine.exceptions import InvalidAmountError, UnknownMethodError
from mcp_payments.adapters.registry import (
    Chain,
    Currency,
    PaymentMethod,
    amount_to_units,
    get_chain_info,
    list_payment_methods,
    resolve_currency,
    resolve_method,
    to_decimal,
    units_to_amount,
)


class TestMethodResolution:
    """Resolution of payment methods to chain and currency."""

    def test_resolve_token_method(self):
        resolved = resolve_method("USDC_BASE_SEPOLIA")
        assert resolved.method == PaymentMethod.USDC_BASE_SEPOLIA
        assert resolved.chain.chain == Chain.BASE_SEPOLIA
        assert resolved.chain.chain_id == 84532
        assert resolved.currency.symbol == Currency.USDC
        assert resolved.currency.decimals == 6
        assert resolved.currency.is_native is False
        assert resolved.currency.address == "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
        assert resolved.currency.supports_erc3009

    def test_resolve_native_method(self):
        resolved = resolve_method(PaymentMethod.ETH_BASE_MAINNET)
        assert resolved.chain.chain_id == 8453
        assert resolved.currency.decimals == 18
        assert resolved.currency.is_native
        assert resolved.currency.address is None

    def test_resolution_is_case_insensitive(self):
        assert resolve_method(" usdc_base_sepolia ").method == PaymentMethod.USDC_BASE_SEPOLIA

    def test_unknown_method_raises(self):
        with pytest.raises(UnknownMethodError, match="DOGE_BASE"):
            resolve_method("DOGE_BASE")

    def test_token_override(self):
        override = "0x1111111111111111111111111111111111111111"
        resolved = resolve_method("USDC_BASE_SEPOLIA", {"USDC_BASE_SEPOLIA": override})
        assert resolved.currency.address == override

    def test_override_does_not_apply_to_other_methods(self):
        override = "0x1111111111111111111111111111111111111111"
        resolved = resolve_method("USDC_BASE_MAINNET", {"USDC_BASE_SEPOLIA": override})
        assert resolved.currency.address == "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"

    def test_solana_methods_are_not_evm(self):
        resolved = resolve_method("USDC_SOLANA")
        assert not resolved.chain.is_evm
        assert resolved.chain.x402_network is None
        assert resolve_method("SOL_SOLANA").currency.decimals == 9

    def test_unknown_chain_raises(self):
        with pytest.raises(UnknownMethodError):
            resolve_currency("USDT", "solana-testnet")

    @pytest.mark.parametrize("method", list(PaymentMethod))
    def test_every_method_is_consistent(self, method):
        resolved = resolve_method(method)
        assert resolved.currency.decimals in (6, 9, 18)
        assert resolved.currency.is_native == (resolved.currency.address is None)

    def test_list_payment_methods_covers_every_member(self):
        methods = list_payment_methods()
        assert [m.method for m in methods] == list(PaymentMethod)

    def test_explorer_url(self):
        chain = get_chain_info("base-sepolia")
        assert chain.explorer_url("0xabc") == "https://base-sepolia.blockscout.com/tx/0xabc"


class TestAmountConversion:
    """Decimal floor conversion between amounts and smallest units."""

    def test_simple_conversion(self):
        assert amount_to_units("0.5", 6) == 500000
        assert amount_to_units(Decimal("1"), 18) == 10 ** 18

    def test_float_goes_through_str(self):
        # 0.1 as a binary float is 0.1000000000000000055...
        assert amount_to_units(0.1, 18) == 10 ** 17
        assert amount_to_units(0.29, 6) == 290000

    def test_fraction_below_one_unit_is_truncated(self):
        assert amount_to_units("0.0000009", 6) == 0
        assert amount_to_units("1.9999999", 6) == 1999999

    def test_large_amount_keeps_every_digit(self):
        amount = "123456789012345678901234.123456789012345678"
        assert amount_to_units(amount, 18) == 123456789012345678901234123456789012345678

    def test_negative_amount_raises(self):
        with pytest.raises(InvalidAmountError):
            amount_to_units("-1", 6)

    @pytest.mark.parametrize("amount", ["abc", "NaN", "Infinity", "", True])
    def test_malformed_amount_raises(self, amount):
        with pytest.raises(InvalidAmountError):
            to_decimal(amount)

    def test_units_to_amount(self):
        assert units_to_amount(500000, 6) == Decimal("0.5")
        assert units_to_amount(1, 18) == Decimal("1E-18")
