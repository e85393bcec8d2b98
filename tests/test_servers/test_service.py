"""
Monetized Service Test Suite

Tests the three seller operations through ``call_tool``: pricing listing,
payment methods and the verify-then-fulfil purchase flow.

Usage:
    pytest tests/test_servers/test_service.py -v
"""

import json

import pytest
from unittest.mock import AsyncMock

import sys
from pathlib import Path
src_path = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(src_path))

from mcp_payments.config import Settings
from mcp_payments.engine.exceptions import PaymentVerificationError
from mcp_payments.adapters.adapters_hub import PaymentsHub
from mcp_payments.adapters.registry import PaymentMethod
from mcp_payments.schemas.bases import VerificationResult, VerificationStatus
from mcp_payments.schemas.tools import (
    PaymentMethodResponse,
    PricingListingItem,
    PricingListingResponse,
    PurchaseRequest,
    PurchaseResponse,
)
from mcp_payments.servers.service import MonetizedService


SELLER = "0x069B0687C879b8E9633fb9BFeC3fea684bc238D5"
TX_HASH = "0x" + "3c" * 32


class PdfService(MonetizedService):
    """Sells one PDF conversion for 0.5 USDC."""

    def __init__(self, hub):
        super().__init__(hub, resource="mcp://pdf/make-purchase")
        self.fulfilled = []

    async def pricing_listing(self, request):
        items = [
            PricingListingItem(
                name="PDF conversion",
                description="Convert a web page to PDF",
                price="0.5",
                currency="USDC",
                params={"url": "Page to convert"},
            )
        ]
        if request.search_query:
            items = [i for i in items if request.search_query.lower() in i.name.lower()]
        return PricingListingResponse(items=items)

    async def payment_methods(self):
        return [
            PaymentMethodResponse(
                name="USDC on Base Sepolia",
                description="Pay with USDC on Base Sepolia",
                seller_account_id=SELLER,
                payment_method=PaymentMethod.USDC_BASE_SEPOLIA,
            )
        ]

    async def fulfill(self, purchase, payment):
        self.fulfilled.append((purchase, payment))
        return PurchaseResponse(
            items=purchase.items,
            purchase_request=purchase,
            order_id="order-1",
            tool_result="https://files.test/page.pdf",
        )


# ========================================================================
# Test Fixtures
# ========================================================================

@pytest.fixture
def hub():
    hub = PaymentsHub(Settings())
    hub.verify_payment = AsyncMock(return_value=VerificationResult(
        success=True,
        status=VerificationStatus.SUCCESS,
        message="Payment verified successfully",
        transaction_hash=TX_HASH,
    ))
    return hub


@pytest.fixture
def service(hub):
    return PdfService(hub)


def purchase_arguments(**overrides):
    arguments = {
        "items": [{"name": "PDF conversion", "price": 0.5, "params": {"url": "https://example.org"}}],
        "totalPrice": 0.5,
        "signedTransaction": TX_HASH,
        "paymentMethod": "USDC_BASE_SEPOLIA",
        "buyerAccountId": "0x1234567890123456789012345678901234567890",
    }
    arguments.update(overrides)
    return arguments


# ========================================================================
# Test Classes
# ========================================================================

class TestPricingListing:

    @pytest.mark.asyncio
    async def test_listing(self, service):
        text = await service.call_tool("pricing-listing", {})
        data = json.loads(text)

        assert data["items"][0]["name"] == "PDF conversion"
        assert data["items"][0]["price"] == "0.5"

    @pytest.mark.asyncio
    async def test_search_query(self, service):
        data = json.loads(await service.call_tool("pricing-listing", {"searchQuery": "video"}))
        assert data["items"] == []

    @pytest.mark.asyncio
    async def test_listing_error_is_text(self, service):
        service.pricing_listing = AsyncMock(side_effect=RuntimeError("catalog offline"))

        text = await service.call_tool("pricing-listing", {})
        assert text == "Error getting pricing listing: catalog offline"


class TestPaymentMethod:

    @pytest.mark.asyncio
    async def test_methods(self, service):
        data = json.loads(await service.call_tool("payment-method"))

        assert data == [{
            "name": "USDC on Base Sepolia",
            "description": "Pay with USDC on Base Sepolia",
            "sellerAccountId": SELLER,
            "paymentMethod": "USDC_BASE_SEPOLIA",
        }]

    @pytest.mark.asyncio
    async def test_methods_error_is_text(self, service):
        service.payment_methods = AsyncMock(side_effect=RuntimeError("boom"))

        assert await service.call_tool("payment-method") == "Error getting payment method: boom"


class TestMakePurchase:

    @pytest.mark.asyncio
    async def test_transaction_hash_purchase(self, service, hub):
        text = await service.call_tool("make-purchase", purchase_arguments())
        data = json.loads(text)

        assert data["orderId"] == "order-1"
        assert data["toolResult"] == "https://files.test/page.pdf"
        assert data["paymentResponse"] == TX_HASH
        assert data["purchaseRequest"]["totalPrice"] == "0.5"

        request = hub.verify_payment.call_args.args[0]
        assert request.transaction_hash == TX_HASH
        assert request.payment_header is None
        assert request.amount == "0.5"
        assert request.destination == SELLER
        assert request.method == "USDC_BASE_SEPOLIA"
        assert request.resource == "mcp://pdf/make-purchase"
        assert len(service.fulfilled) == 1

    @pytest.mark.asyncio
    async def test_payment_header_purchase(self, service, hub):
        hub.verify_payment.return_value = VerificationResult(
            success=True,
            status=VerificationStatus.SUCCESS,
            message="Payment settled successfully",
            response_header="eyJzdWNjZXNzIjp0cnVlfQ==",
        )

        text = await service.call_tool("make-purchase", purchase_arguments(signedTransaction="eyJ4NDAyVmVyc2lvbiI6MX0="))

        request = hub.verify_payment.call_args.args[0]
        assert request.transaction_hash is None
        assert request.payment_header == "eyJ4NDAyVmVyc2lvbiI6MX0="
        assert json.loads(text)["paymentResponse"] == "eyJzdWNjZXNzIjp0cnVlfQ=="

    @pytest.mark.asyncio
    async def test_failed_verification_does_not_fulfil(self, service, hub):
        hub.verify_payment.return_value = VerificationResult.failure(
            VerificationStatus.NOT_FOUND, "Transaction not found"
        )

        text = await service.call_tool("make-purchase", purchase_arguments())

        assert text == "Error making purchase: Transaction not found"
        assert service.fulfilled == []

    @pytest.mark.asyncio
    async def test_make_purchase_raises_on_failed_verification(self, service, hub):
        hub.verify_payment.return_value = VerificationResult.failure(
            VerificationStatus.AMOUNT_MISMATCH, "Incorrect amount transferred. Expected: 1, Got: 0"
        )
        purchase = PurchaseRequest.model_validate(purchase_arguments())

        with pytest.raises(PaymentVerificationError, match="Incorrect amount"):
            await service.make_purchase(purchase)

    @pytest.mark.asyncio
    async def test_method_not_accepted(self, service, hub):
        text = await service.call_tool("make-purchase", purchase_arguments(paymentMethod="ETH_BASE_SEPOLIA"))

        assert text == "Error making purchase: Payment method ETH_BASE_SEPOLIA is not accepted"
        hub.verify_payment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_items(self, service, hub):
        arguments = purchase_arguments()
        del arguments["items"]

        text = await service.call_tool("make-purchase", arguments)

        assert text == "Error making purchase: items: Field required"
        hub.verify_payment.assert_not_awaited()


class TestDispatch:

    @pytest.mark.asyncio
    async def test_unknown_tool(self, service):
        assert await service.call_tool("refund", {}) == "Error: unknown tool refund"

    def test_transaction_hash_detection(self):
        base = purchase_arguments()
        assert PurchaseRequest.model_validate(base).is_transaction_hash
        assert not PurchaseRequest.model_validate({**base, "signedTransaction": "0x1234"}).is_transaction_hash
