"""
Tool Schema Models for the monetized service operations

Arguments and results of the three inbound operations a seller exposes:
``pricing-listing``, ``payment-method`` and ``make-purchase``. Field names
follow the camelCase wire names through aliases.
"""

import re
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from ..adapters.registry import PaymentMethod
from .bases import CanonicalModel

_TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


class PricingListingItem(CanonicalModel):
    """A priced item. ``params`` describes the arguments the item needs."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)


class PricingListingRequest(CanonicalModel):
    search_query: Optional[str] = Field(None, alias="searchQuery")


class PricingListingResponse(CanonicalModel):
    items: List[PricingListingItem] = Field(default_factory=list)


class PaymentMethodResponse(CanonicalModel):
    """A payment method the seller accepts, and the account that receives it."""
    name: str
    description: str
    seller_account_id: str = Field(..., alias="sellerAccountId")
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")


class PurchaseRequest(CanonicalModel):
    """
    Arguments of ``make-purchase``.

    ``signed_transaction`` is the payment proof: either the hash of a
    transaction the buyer broadcast, or a base64 x402 payment header.
    """
    items: List[PricingListingItem] = Field(..., min_length=1)
    total_price: Decimal = Field(..., ge=0, alias="totalPrice")
    signed_transaction: str = Field(..., min_length=1, alias="signedTransaction")
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")
    buyer_account_id: Optional[str] = Field(None, alias="buyerAccountId")

    @field_validator("total_price", mode="before")
    @classmethod
    def _price_from_text(cls, value: Any) -> Any:
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @property
    def is_transaction_hash(self) -> bool:
        return bool(_TX_HASH_PATTERN.match(self.signed_transaction.strip()))


class PurchaseResponse(CanonicalModel):
    """
    Result of ``make-purchase``.

    Attributes:
        items: Items delivered
        purchase_request: The request that was fulfilled
        order_id: Seller's order identifier
        tool_result: Fulfilment output, as text
        payment_response: Settlement header (pre-signed flow) or transaction hash
    """
    items: List[PricingListingItem] = Field(default_factory=list)
    purchase_request: PurchaseRequest = Field(..., alias="purchaseRequest")
    order_id: str = Field(..., alias="orderId")
    tool_result: str = Field("", alias="toolResult")
    payment_response: Optional[str] = Field(None, alias="paymentResponse")
