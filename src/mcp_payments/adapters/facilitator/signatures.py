"""
x402 Authorization Signing

Builds the PaymentRequirements a seller demands and the signed ERC-3009
authorization a buyer presents against them. Signing happens entirely
in-process with eth_account; nothing here touches the network.

The seller and the buyer must build identical requirements (same resource,
description, timeout window, asset and EIP-712 domain) or the facilitator
will legitimately reject the authorization.
"""

import os
import re
import time
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional, Union

from eth_account import Account
from web3 import AsyncWeb3

from ...engine.exceptions import InvalidAmountError, PaymentMethodError
from ...schemas.https import (
    ExactEvmAuthorization,
    ExactEvmPayload,
    PaymentPayload,
    PaymentRequirements,
)
from ..evm.standards import EIP712Domain, ERC3009TypedData, TransferWithAuthorizationMessage
from ..registry import PaymentMethod, ResolvedMethod, amount_to_units, resolve_method

#: Default validity window of an authorization, in seconds.
DEFAULT_MAX_TIMEOUT_SECONDS = 3600

#: validAfter is backdated to tolerate clock skew between buyer and chain.
VALID_AFTER_SKEW_SECONDS = 600

DEFAULT_DESCRIPTION = "Payment for order"

_MONEY_JUNK = re.compile(r"[^0-9.\-]")
_MIN_MONEY = Decimal("0.0001")
_MAX_MONEY = Decimal("999999999")


def parse_money(amount: Union[str, int, float, Decimal]) -> Decimal:
    """
    Parse a money amount such as "$3.10", 0.10, ".5" or "$1,000.00".

    Strings are stripped of every character other than digits, ``.`` and
    ``-`` before parsing; numbers are taken through ``str``. The value must
    lie between 0.0001 and 999999999.

    Raises:
        InvalidAmountError: If the amount does not parse or is out of range.
    """
    error = InvalidAmountError(
        f'Invalid amount (amount: {amount}). Must be in the form "$3.10", 0.10, "0.001"'
    )
    if isinstance(amount, bool):
        raise error
    text = _MONEY_JUNK.sub("", amount) if isinstance(amount, str) else str(amount)
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise error from None
    if not value.is_finite() or value < _MIN_MONEY or value > _MAX_MONEY:
        raise error
    return value


def _require_erc3009(resolved: ResolvedMethod) -> None:
    if not resolved.chain.x402_network:
        raise PaymentMethodError(
            f"{resolved.method.value} is not settled by x402 facilitators"
        )
    if not resolved.currency.supports_erc3009:
        raise PaymentMethodError(
            f"{resolved.method.value} does not support transferWithAuthorization"
        )


def build_payment_requirements(
    resolved: ResolvedMethod,
    amount_units: int,
    pay_to: str,
    resource: str,
    max_timeout_seconds: int = DEFAULT_MAX_TIMEOUT_SECONDS,
    description: str = DEFAULT_DESCRIPTION,
) -> PaymentRequirements:
    """
    Build the "exact" PaymentRequirements for a method and amount.

    Raises:
        PaymentMethodError: If the method has no x402 network or ERC-3009 domain.
    """
    _require_erc3009(resolved)
    return PaymentRequirements(
        network=resolved.chain.x402_network,
        max_amount_required=str(amount_units),
        resource=resource,
        description=description,
        pay_to=AsyncWeb3.to_checksum_address(pay_to),
        max_timeout_seconds=max_timeout_seconds,
        asset=AsyncWeb3.to_checksum_address(resolved.currency.address),
        extra={
            "name": resolved.currency.eip712_name,
            "version": resolved.currency.eip712_version,
        },
    )


def build_typed_data(
    resolved: ResolvedMethod,
    authorization: ExactEvmAuthorization,
) -> ERC3009TypedData:
    """EIP-712 envelope of ``authorization`` under the token's domain."""
    return ERC3009TypedData(
        domain=EIP712Domain(
            name=resolved.currency.eip712_name,
            version=resolved.currency.eip712_version,
            chainId=resolved.chain.chain_id,
            verifyingContract=AsyncWeb3.to_checksum_address(resolved.currency.address),
        ),
        message=TransferWithAuthorizationMessage(
            authorizer=authorization.sender,
            recipient=authorization.to,
            value=int(authorization.value),
            validAfter=int(authorization.valid_after),
            validBefore=int(authorization.valid_before),
            nonce=authorization.nonce,
        ),
    )


def build_authorization(
    amount: Union[str, int, float, Decimal],
    pay_to: str,
    resource: str,
    method: Union[PaymentMethod, str],
    private_key: str,
    max_timeout_seconds: int = DEFAULT_MAX_TIMEOUT_SECONDS,
    token_overrides: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Sign an ERC-3009 authorization and return it as a base64 payment header.

    Args:
        amount: Money amount ("$0.10", "0.1", 0.1).
        pay_to: Payee (seller) address.
        resource: Resource identifier the payment unlocks.
        method: PaymentMethod; must be an ERC-3009 token on an x402 network.
        private_key: Buyer key (0x-prefixed hex). Never logged.
        max_timeout_seconds: Validity window from now.
        token_overrides: PaymentMethod value -> token contract address.

    Returns:
        str: Base64 payment header.

    Raises:
        InvalidAmountError: If the amount is malformed.
        PaymentMethodError: If the method cannot be paid by authorization.

    Example::

        header = build_authorization(
            "$0.10", "0xSeller...", "https://shop.example/orders/42",
            "USDC_BASE_SEPOLIA", private_key="0x...",
        )
    """
    resolved = resolve_method(method, token_overrides)
    amount_units = amount_to_units(parse_money(amount), resolved.currency.decimals)

    requirements = build_payment_requirements(
        resolved, amount_units, pay_to, resource, max_timeout_seconds=max_timeout_seconds
    )

    account = Account.from_key(private_key)
    now = int(time.time())
    authorization = ExactEvmAuthorization(
        sender=account.address,
        to=requirements.pay_to,
        value=requirements.max_amount_required,
        valid_after=str(now - VALID_AFTER_SKEW_SECONDS),
        valid_before=str(now + requirements.max_timeout_seconds),
        nonce="0x" + os.urandom(32).hex(),
    )

    typed_data = build_typed_data(resolved, authorization)
    signed = Account.sign_typed_data(private_key, full_message=typed_data.to_dict())
    signature = signed.signature.hex()
    if not signature.startswith("0x"):
        signature = "0x" + signature

    payload = PaymentPayload(
        network=requirements.network,
        payload=ExactEvmPayload(signature=signature, authorization=authorization),
    )
    return payload.to_header()
