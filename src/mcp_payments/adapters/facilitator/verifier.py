"""
x402 Facilitator Verifier / Settler

Verification strategy for pre-signed payment authorizations. The seller
rebuilds the PaymentRequirements the buyer signed against, asks the
facilitator to verify the authorization and, only when it is valid, asks
the facilitator to settle it on-chain.

Outcomes are reported through ``VerificationResult``:
    - INVALID_AMOUNT: amount does not follow the money grammar (no network call)
    - MISSING_HEADER: no payment header
    - INVALID_HEADER: header is not a decodable payment payload
    - UNSUPPORTED_CHAIN: method cannot be paid by authorization
    - VERIFICATION_ERROR: the verify call failed in transport
    - INVALID_PAYMENT: the facilitator rejected the authorization
    - SETTLEMENT_FAILED: the authorization was valid but settlement failed
      (``retryable=True``; the authorization stays valid until its deadline)
    - SUCCESS: settled; ``response_header`` carries the settlement proof
"""

import logging
from decimal import Decimal
from typing import Optional, Union

import httpx

from ...config import Settings
from ...engine.exceptions import InvalidAmountError, InvalidPaymentHeaderError, PaymentMethodError
from ...schemas.bases import VerificationRequest, VerificationResult, VerificationStatus
from ...schemas.https import PaymentPayload
from ..bases import PaymentVerifier
from ..registry import PaymentMethod, amount_to_units, resolve_method
from .client import FacilitatorClient
from .signatures import build_payment_requirements, parse_money

logger = logging.getLogger(__name__)


class FacilitatorVerifier(PaymentVerifier):
    """
    Verifies and settles x402 payment headers through a facilitator.

    Example:
        verifier = FacilitatorVerifier(settings)
        result = await verifier.verify_and_settle(
            "$0.10", "0xSeller...", header, "https://shop.example/orders/42",
            "USDC_BASE_SEPOLIA",
        )
        if result.success:
            response.headers["X-PAYMENT-RESPONSE"] = result.response_header
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            settings: Runtime settings (facilitator URL, timeout).
            transport: Custom httpx transport forwarded to the facilitator client.
        """
        self.settings = settings or Settings.from_env()
        self._transport = transport

    def _get_client(self, facilitator_url: Optional[str] = None) -> FacilitatorClient:
        return FacilitatorClient(
            facilitator_url or self.settings.facilitator_url,
            timeout=self.settings.request_timeout,
            transport=self._transport,
        )

    def accepts(self, request: VerificationRequest) -> bool:
        return bool(request.payment_header)

    async def verify(self, request: VerificationRequest) -> VerificationResult:
        return await self.verify_and_settle(
            request.amount,
            request.destination,
            request.payment_header,
            request.resource or "",
            request.method,
            facilitator_url=request.facilitator_url,
        )

    async def verify_and_settle(
        self,
        amount: Union[str, int, float, Decimal],
        pay_to: str,
        payment_header: Optional[str],
        resource: str,
        method: Union[PaymentMethod, str],
        facilitator_url: Optional[str] = None,
    ) -> VerificationResult:
        """
        Verify a payment header with the facilitator, then settle it.

        Args:
            amount: Money amount the seller charges ("$0.10", "0.1", 0.1).
            pay_to: Seller address.
            payment_header: Base64 payment header presented by the buyer.
            resource: Resource identifier the buyer signed for.
            method: PaymentMethod of the authorization.
            facilitator_url: Override of the configured facilitator.

        Returns:
            VerificationResult: See the module docstring for the statuses.
        """
        try:
            money = parse_money(amount)
        except InvalidAmountError as e:
            return VerificationResult.failure(VerificationStatus.INVALID_AMOUNT, str(e))

        if not payment_header:
            return VerificationResult.failure(
                VerificationStatus.MISSING_HEADER, "No payment header found"
            )

        try:
            resolved = resolve_method(method, self.settings.token_addresses)
            requirements = build_payment_requirements(
                resolved,
                amount_to_units(money, resolved.currency.decimals),
                pay_to,
                resource,
            )
        except PaymentMethodError as e:
            return VerificationResult.failure(VerificationStatus.UNSUPPORTED_CHAIN, str(e))
        except Exception as e:
            return VerificationResult.failure(
                VerificationStatus.VERIFICATION_ERROR, f"Error during payment verification: {e}"
            )

        try:
            payload = PaymentPayload.from_header(payment_header)
        except InvalidPaymentHeaderError as e:
            return VerificationResult.failure(
                VerificationStatus.INVALID_HEADER, f"Error during payment verification: {e}"
            )

        client = self._get_client(facilitator_url)
        chain_name = resolved.chain.chain.value

        try:
            verdict = await client.verify(payload, requirements)
        except Exception as e:
            logger.warning("Facilitator verification failed: %s", e)
            return VerificationResult.failure(
                VerificationStatus.VERIFICATION_ERROR,
                "Error during payment verification",
                error_details={"error": str(e)},
            )

        if not verdict.is_valid:
            return VerificationResult.failure(
                VerificationStatus.INVALID_PAYMENT,
                verdict.invalid_reason or "Invalid payment",
                payer=verdict.payer,
                chain_name=chain_name,
            )

        try:
            settlement = await client.settle(payload, requirements)
        except Exception as e:
            logger.error("Facilitator settlement failed: %s", e)
            return VerificationResult.failure(
                VerificationStatus.SETTLEMENT_FAILED,
                f"Settlement failed: {e}",
                payer=verdict.payer,
                chain_name=chain_name,
                retryable=True,
            )

        if not settlement.success:
            return VerificationResult.failure(
                VerificationStatus.SETTLEMENT_FAILED,
                f"Settlement failed: {settlement.error_reason or 'unknown reason'}",
                payer=settlement.payer or verdict.payer,
                chain_name=chain_name,
                response_header=settlement.to_header(),
                retryable=True,
            )

        logger.info("Payment settled on %s: %s", chain_name, settlement.transaction)
        return VerificationResult(
            success=True,
            status=VerificationStatus.SUCCESS,
            message="Payment settled successfully",
            response_header=settlement.to_header(),
            transaction_hash=settlement.transaction or None,
            explorer_url=resolved.chain.explorer_url(settlement.transaction) if settlement.transaction else None,
            chain_name=chain_name,
            payer=settlement.payer or verdict.payer,
        )
