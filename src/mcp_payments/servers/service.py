"""
Monetized Service

Base class for a seller exposing three operations to buyers:

    - ``pricing-listing``: priced items, optionally filtered by a search query
    - ``payment-method``: accepted payment methods and receiving accounts
    - ``make-purchase``: verify the buyer's payment proof, then fulfil

Transports (tool registration, sessions, message framing) are not part of
this module; they call ``call_tool(name, arguments)`` and send back the text
it returns. Every result and every error is text.

Subclasses implement ``pricing_listing``, ``payment_methods`` and
``fulfill``. Payment verification in ``make_purchase`` is not overridable
by fulfilment code: ``fulfill`` only runs after a successful verification.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..adapters.adapters_hub import PaymentsHub
from ..engine.exceptions import PaymentMethodError, PaymentVerificationError
from ..schemas.bases import VerificationRequest, VerificationResult
from ..schemas.tools import (
    PaymentMethodResponse,
    PricingListingRequest,
    PricingListingResponse,
    PurchaseRequest,
    PurchaseResponse,
)

logger = logging.getLogger(__name__)


def _to_text(result: Any) -> str:
    if isinstance(result, list):
        return json.dumps([item.to_dict() for item in result], separators=(",", ":"))
    return json.dumps(result.to_dict(), separators=(",", ":"))


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first['msg']}" if location else first["msg"]


class MonetizedService(ABC):
    """
    Abstract seller service.

    Attributes:
        hub: PaymentsHub used to verify payment proofs
        resource: Resource identifier buyers sign x402 authorizations for

    Example Implementation:
        class PdfService(MonetizedService):
            async def pricing_listing(self, request):
                return PricingListingResponse(items=[...])

            async def payment_methods(self):
                return [PaymentMethodResponse(
                    name="USDC", description="USDC on Base Sepolia",
                    seller_account_id="0x...", payment_method="USDC_BASE_SEPOLIA",
                )]

            async def fulfill(self, purchase, payment):
                return PurchaseResponse(
                    items=purchase.items, purchase_request=purchase,
                    order_id="123", tool_result="...",
                )
    """

    TOOL_PRICING_LISTING = "pricing-listing"
    TOOL_PAYMENT_METHOD = "payment-method"
    TOOL_MAKE_PURCHASE = "make-purchase"

    def __init__(self, hub: Optional[PaymentsHub] = None, resource: str = "mcp://make-purchase"):
        self.hub = hub or PaymentsHub()
        self.resource = resource

    # =========================================================================
    # Seller hooks
    # =========================================================================

    @abstractmethod
    async def pricing_listing(self, request: PricingListingRequest) -> PricingListingResponse:
        """Priced items matching ``request.search_query``."""
        pass

    @abstractmethod
    async def payment_methods(self) -> List[PaymentMethodResponse]:
        """Accepted payment methods and their receiving accounts."""
        pass

    @abstractmethod
    async def fulfill(self, purchase: PurchaseRequest, payment: VerificationResult) -> PurchaseResponse:
        """
        Deliver a paid purchase.

        Called only after ``payment`` verified successfully.
        """
        pass

    # =========================================================================
    # Purchase flow
    # =========================================================================

    async def make_purchase(self, purchase: PurchaseRequest) -> PurchaseResponse:
        """
        Verify the purchase's payment proof, then fulfil it.

        The proof is checked against the seller account registered for the
        chosen payment method and the purchase's total price.

        Raises:
            PaymentMethodError: If the payment method is not accepted.
            PaymentVerificationError: If the payment proof does not verify.
        """
        accepted = {m.payment_method: m for m in await self.payment_methods()}
        method = accepted.get(purchase.payment_method)
        if method is None:
            raise PaymentMethodError(
                f"Payment method {purchase.payment_method.value} is not accepted"
            )

        proof = purchase.signed_transaction.strip()
        request = VerificationRequest(
            transaction_hash=proof if purchase.is_transaction_hash else None,
            payment_header=None if purchase.is_transaction_hash else proof,
            amount=purchase.total_price,
            destination=method.seller_account_id,
            method=purchase.payment_method,
            resource=self.resource,
        )
        payment = await self.hub.verify_payment(request)
        if not payment.success:
            logger.info("Purchase rejected: %s", payment.message)
            raise PaymentVerificationError(payment.message)

        response = await self.fulfill(purchase, payment)
        if response.payment_response is None:
            response.payment_response = payment.response_header or payment.transaction_hash
        return response

    # =========================================================================
    # Tool dispatch
    # =========================================================================

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """
        Run an operation by tool name and marshal the outcome to text.

        Args:
            name: "pricing-listing", "payment-method" or "make-purchase".
            arguments: Tool arguments (camelCase wire names).

        Returns:
            str: JSON text of the result, or an "Error ...: <reason>" text.
        """
        handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            self.TOOL_PRICING_LISTING: self._pricing_listing_tool,
            self.TOOL_PAYMENT_METHOD: self._payment_method_tool,
            self.TOOL_MAKE_PURCHASE: self._make_purchase_tool,
        }
        error_prefixes = {
            self.TOOL_PRICING_LISTING: "Error getting pricing listing",
            self.TOOL_PAYMENT_METHOD: "Error getting payment method",
            self.TOOL_MAKE_PURCHASE: "Error making purchase",
        }

        handler = handlers.get(name)
        if handler is None:
            return f"Error: unknown tool {name}"

        try:
            return _to_text(await handler(arguments or {}))
        except ValidationError as e:
            return f"{error_prefixes[name]}: {_validation_message(e)}"
        except Exception as e:
            logger.warning("Tool %s failed: %s", name, e)
            return f"{error_prefixes[name]}: {e}"

    async def _pricing_listing_tool(self, arguments: Dict[str, Any]) -> PricingListingResponse:
        return await self.pricing_listing(PricingListingRequest.model_validate(arguments))

    async def _payment_method_tool(self, arguments: Dict[str, Any]) -> List[PaymentMethodResponse]:
        return await self.payment_methods()

    async def _make_purchase_tool(self, arguments: Dict[str, Any]) -> PurchaseResponse:
        return await self.make_purchase(PurchaseRequest.model_validate(arguments))
