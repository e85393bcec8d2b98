from mcp_payments import (
    MonetizedService,
    PaymentMethod,
    PaymentMethodResponse,
    PaymentsHub,
    PricingListingItem,
    PricingListingResponse,
    PurchaseResponse,
    Settings,
    setup_logger,
)

SELLER_ACCOUNT = "0x069B0687C879b8E9633fb9BFeC3fea684bc238D5"


class PdfService(MonetizedService):
    """Sells web page to PDF conversions for 0.5 USDC each."""

    async def pricing_listing(self, request):
        return PricingListingResponse(items=[
            PricingListingItem(
                name="PDF conversion",
                description="Convert a web page to a PDF document",
                price="0.5",
                currency="USDC",
                params={"url": "URL of the page to convert"},
            )
        ])

    async def payment_methods(self):
        return [
            PaymentMethodResponse(
                name="USDC on Base Sepolia",
                description="Pay with USDC on Base Sepolia (transaction hash or x402 header)",
                seller_account_id=SELLER_ACCOUNT,
                payment_method=PaymentMethod.USDC_BASE_SEPOLIA,
            )
        ]

    async def fulfill(self, purchase, payment):
        url = purchase.items[0].params.get("url", "")
        print(f"✅ Payment accepted ({payment.message}), converting {url}")
        return PurchaseResponse(
            items=purchase.items,
            purchase_request=purchase,
            order_id=payment.transaction_hash or "pending",
            tool_result=f"https://files.example/{abs(hash(url))}.pdf",
        )


settings = Settings.from_env()
setup_logger(settings.log_level)
service = PdfService(PaymentsHub(settings))


async def main():
    # A transport registers these three tools and forwards calls here
    print(await service.call_tool("pricing-listing", {}))
    print(await service.call_tool("payment-method", {}))


if __name__ == "__main__":
    import asyncio
    asyncio.run(main())
