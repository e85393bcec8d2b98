"""
HTTP Request/Response Schema Models for the x402 facilitator protocol

This module defines the Pydantic models exchanged with an x402 facilitator
(version 1, "exact" scheme on EVM networks). Field names follow the wire
format through aliases; Python code uses snake_case.

The facilitator flow consists of:
1. The buyer signs an ERC-3009 authorization and sends it as a base64 header
2. The seller rebuilds the PaymentRequirements the buyer signed against
3. The seller POSTs {paymentPayload, paymentRequirements} to /verify
4. Only after ``isValid`` the seller POSTs the same body to /settle
5. The settle response is base64-encoded into a settlement header

All models inherit from CanonicalModel for consistent serialization.
"""

import base64
import binascii
import json
from typing import Any, Dict, Literal, Optional

from pydantic import ConfigDict, Field, ValidationError

from ..engine.exceptions import InvalidPaymentHeaderError
from .bases import CanonicalModel


X402_VERSION = 1


def _b64encode_json(data: Dict[str, Any]) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


class WireModel(CanonicalModel):
    """Facilitator wire model; unknown response fields are ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        """JSON-compatible dict with wire names, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# Payment requirements
# ============================================================================

class PaymentRequirements(WireModel):
    """What the seller demands for a resource.

    Attributes:
        scheme: Payment scheme ("exact").
        network: x402 network name ("base-sepolia", "base").
        max_amount_required: Amount in smallest units, as a decimal string.
        resource: Resource identifier the payment unlocks.
        description: Human-readable description.
        mime_type: MIME type of the resource.
        pay_to: Payee address.
        max_timeout_seconds: Validity window of the authorization.
        asset: Token contract address.
        output_schema: Optional schema of the resource output.
        extra: EIP-712 domain ``{name, version}`` of the token.
    """
    scheme: Literal["exact"] = "exact"
    network: str
    max_amount_required: str = Field(..., alias="maxAmountRequired")
    resource: str
    description: str = ""
    mime_type: str = Field("application/json", alias="mimeType")
    pay_to: str = Field(..., alias="payTo")
    max_timeout_seconds: int = Field(..., alias="maxTimeoutSeconds")
    asset: str
    output_schema: Optional[Dict[str, Any]] = Field(None, alias="outputSchema")
    extra: Optional[Dict[str, Any]] = None


# ============================================================================
# Payment payload (the X-PAYMENT header)
# ============================================================================

class ExactEvmAuthorization(WireModel):
    """ERC-3009 authorization fields; integers travel as decimal strings."""
    sender: str = Field(..., alias="from")
    to: str
    value: str
    valid_after: str = Field(..., alias="validAfter")
    valid_before: str = Field(..., alias="validBefore")
    nonce: str


class ExactEvmPayload(WireModel):
    signature: str
    authorization: ExactEvmAuthorization


class PaymentPayload(WireModel):
    """Signed payment sent by the buyer.

    Attributes:
        x402_version: Protocol version (1).
        scheme: Payment scheme ("exact").
        network: x402 network name.
        payload: Signature and authorization.
    """
    x402_version: int = Field(X402_VERSION, alias="x402Version")
    scheme: Literal["exact"] = "exact"
    network: str
    payload: ExactEvmPayload

    def to_header(self) -> str:
        """Encode as a base64 payment header."""
        return _b64encode_json(self.to_wire())

    @classmethod
    def from_header(cls, header: str) -> "PaymentPayload":
        """
        Decode a base64 payment header.

        Raises:
            InvalidPaymentHeaderError: If the header is not base64 JSON of a payment payload.
        """
        try:
            raw = base64.b64decode(header.strip(), validate=True)
            data = json.loads(raw.decode("utf-8"))
            return cls.model_validate(data)
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, ValidationError, ValueError) as e:
            raise InvalidPaymentHeaderError(f"Invalid payment header: {e}") from e


# ============================================================================
# Facilitator request / responses
# ============================================================================

class FacilitatorRequest(WireModel):
    """Body of both /verify and /settle."""
    x402_version: int = Field(X402_VERSION, alias="x402Version")
    payment_payload: PaymentPayload = Field(..., alias="paymentPayload")
    payment_requirements: PaymentRequirements = Field(..., alias="paymentRequirements")


class VerifyResponse(WireModel):
    """Facilitator /verify answer."""
    is_valid: bool = Field(..., alias="isValid")
    invalid_reason: Optional[str] = Field(None, alias="invalidReason")
    payer: Optional[str] = None


class SettleResponse(WireModel):
    """Facilitator /settle answer.

    Attributes:
        success: Whether the on-chain settlement succeeded.
        error_reason: Failure reason reported by the facilitator.
        transaction: Settlement transaction hash ("" on failure).
        network: Network settled on.
        payer: Payer address.
    """
    success: bool
    error_reason: Optional[str] = Field(None, alias="errorReason")
    transaction: str = ""
    network: Optional[str] = None
    payer: Optional[str] = None

    def to_header(self) -> str:
        """Encode as a base64 settlement response header."""
        return _b64encode_json(self.to_wire())
