from mcp_payments import PaymentsHub, Settings, setup_logger

from seller_example import SELLER_ACCOUNT, service

# EVM_PRIVATE_KEY must hold a funded Base Sepolia key (read from .env)
settings = Settings.from_env()
setup_logger(settings.log_level)
hub = PaymentsHub(settings)

ITEM = {"name": "PDF conversion", "price": 0.5, "params": {"url": "https://example.org"}}


async def pay_on_chain():
    """Broadcast the transfer ourselves and present the transaction hash."""
    issued = await hub.send_payment({
        "amount": "0.5",
        "destination": SELLER_ACCOUNT,
        "method": "USDC_BASE_SEPOLIA",
    })
    print("Issued:", issued.result_message)
    if not issued.success:
        return
    return await service.call_tool("make-purchase", {
        "items": [ITEM],
        "totalPrice": 0.5,
        "signedTransaction": issued.transaction_hash,
        "paymentMethod": "USDC_BASE_SEPOLIA",
    })


async def pay_with_authorization():
    """Sign an x402 authorization; the seller settles it through the facilitator."""
    header = hub.build_authorization("$0.50", SELLER_ACCOUNT, service.resource, "USDC_BASE_SEPOLIA")
    return await service.call_tool("make-purchase", {
        "items": [ITEM],
        "totalPrice": 0.5,
        "signedTransaction": header,
        "paymentMethod": "USDC_BASE_SEPOLIA",
    })


if __name__ == "__main__":
    import asyncio
    print("Response:", asyncio.run(pay_with_authorization()))
