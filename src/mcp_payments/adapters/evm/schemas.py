"""
EVM Adapter Schema Models

Pydantic models for issuing and inspecting EVM payments. All classes inherit
from ``CanonicalModel`` in ``schemas.bases``.

Issuance classes:
    - PaymentRequest: Amount, destination, method and optional order metadata.
    - OrderMetadata: Audit record embedded as data in native transfers.
    - IssuedPayment: Result message plus transaction hash (empty on failure).

Chain reading classes:
    - NonceView: Which transaction count to read (confirmed or pending).
    - TransferEvent: Decoded ERC-20 ``Transfer`` log.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from ...schemas.bases import CanonicalModel
from ..registry import PaymentMethod, to_decimal


class NonceView(str, Enum):
    """
    Transaction-count view.

    Values are the JSON-RPC block identifiers passed to
    ``eth_getTransactionCount``.
    """
    CONFIRMED = "latest"
    PENDING = "pending"


class PaymentRequest(CanonicalModel):
    """
    Issuance input.

    Attributes:
        amount: Amount in asset units. Floats are converted through ``str``.
        destination: Recipient address.
        method: PaymentMethod to pay with.
        order_id: Optional order identifier, embedded for auditability.
        order_date: Optional order timestamp (ISO string).

    Example::

        PaymentRequest(amount="0.5", destination="0x...", method="USDC_BASE_SEPOLIA")
    """

    amount: Decimal = Field(..., ge=0, description="Amount in asset units")
    destination: str = Field(..., min_length=1, description="Recipient address")
    method: PaymentMethod = Field(..., description="Payment method")
    order_id: Optional[str] = Field(None, description="Order identifier")
    order_date: Optional[str] = Field(None, description="Order timestamp")

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Decimal:
        return to_decimal(value)

    @field_validator("method", mode="before")
    @classmethod
    def _parse_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class OrderMetadata(CanonicalModel):
    """
    Order record attached to a native transfer as transaction data.

    Never consulted by verification; only for external audit.
    """

    order_id: str = Field(..., alias="orderId")
    order_date: str = Field(..., alias="orderDate")
    sender: str = Field(..., alias="from")
    recipient: str = Field(..., alias="to")
    amount: str
    currency: str

    def to_bytes(self) -> bytes:
        return self.to_canonical_json().encode("utf-8")


class IssuedPayment(CanonicalModel):
    """
    Issuance output.

    ``transaction_hash`` is empty exactly when issuance failed. Failures are
    described in ``result_message`` (prefixed "Error: ").

    Attributes:
        result_message: Human-readable outcome
        transaction_hash: Broadcast transaction hash, or "" on failure
        nonce_retried: True when the submission went through the single nonce retry
        receipt_pending: True when the receipt wait timed out after broadcast
        reverted_hash: Hash of a mined transaction whose receipt reports a revert
    """

    result_message: str = Field(..., description="Human-readable outcome")
    transaction_hash: str = Field("", description="Transaction hash, empty on failure")
    nonce_retried: bool = Field(False, description="Submitted after a nonce retry")
    receipt_pending: bool = Field(False, description="Receipt not seen within the wait window")
    reverted_hash: str = Field("", description="Mined but reverted transaction hash")

    @property
    def success(self) -> bool:
        return bool(self.transaction_hash)


class TransferEvent(CanonicalModel):
    """
    Decoded ERC-20 ``Transfer`` log.

    Attributes:
        token: Token contract that emitted the log
        sender: ``from`` topic
        recipient: ``to`` topic
        value: Amount in smallest units
        block_number: Block containing the log
        transaction_hash: Transaction that emitted the log
        log_index: Position of the log in the block
    """

    token: str
    sender: str = Field(..., alias="from")
    recipient: str = Field(..., alias="to")
    value: int = Field(..., ge=0)
    block_number: int
    transaction_hash: str
    log_index: int
