"""
Base Schema Models for mcp-payments

This module defines the base model and the verification result types shared
by both verification strategies (on-chain receipt inspection and
facilitator verify/settle).

Core Classes:
    - CanonicalModel: Pydantic base model with deterministic JSON serialization
    - VerificationStatus: Machine-readable outcome codes
    - VerificationRequest: Proof plus expected amount, destination and method
    - VerificationResult: Outcome of a verification attempt

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    Keys are sorted and whitespace is stripped so the same model always
    serializes to the same string. Tool responses and header payloads are
    produced through this model.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        MyModel(name="test", value=123).to_canonical_json()
        # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        ``model_dump(mode="json")`` converts enums, Decimals and datetimes to
        plain JSON types; ``json.dumps`` then sorts keys and removes spaces.

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to a JSON-compatible dictionary using field aliases.

        Returns:
            Dict[str, Any]: Dictionary with all model fields.
        """
        return self.model_dump(mode="json", by_alias=True)


class VerificationStatus(str, Enum):
    """
    Enumeration of possible verification result statuses.

    Attributes:
        SUCCESS: Payment proof satisfies every requirement
        MISSING_PROOF: Neither a transaction hash nor a payment header was given
        INVALID_REQUEST: Verification request is malformed
        UNSUPPORTED_CHAIN: The method's chain cannot be verified by this strategy
        NOT_FOUND: Transaction or receipt does not exist
        REVERTED: Receipt status indicates on-chain failure
        DESTINATION_MISMATCH: Transaction recipient differs from the expected one
        AMOUNT_MISMATCH: Transferred value differs from the expected amount
        CALLDATA_MISMATCH: Token call data differs from the expected transfer encoding
        MISSING_CONTRACT: No token contract is configured for the method
        INVALID_AMOUNT: Expected amount is malformed
        MISSING_HEADER: Facilitator flow was invoked without a payment header
        INVALID_HEADER: Payment header could not be decoded
        INVALID_PAYMENT: Facilitator rejected the authorization
        VERIFICATION_ERROR: Facilitator verify call failed in transport
        SETTLEMENT_FAILED: Authorization was valid but settlement failed
        BLOCKCHAIN_ERROR: RPC error while inspecting the chain
    """
    SUCCESS = "success"
    MISSING_PROOF = "missing_proof"
    INVALID_REQUEST = "invalid_request"
    UNSUPPORTED_CHAIN = "unsupported_chain"
    NOT_FOUND = "not_found"
    REVERTED = "reverted"
    DESTINATION_MISMATCH = "destination_mismatch"
    AMOUNT_MISMATCH = "amount_mismatch"
    CALLDATA_MISMATCH = "calldata_mismatch"
    MISSING_CONTRACT = "missing_contract"
    INVALID_AMOUNT = "invalid_amount"
    MISSING_HEADER = "missing_header"
    INVALID_HEADER = "invalid_header"
    INVALID_PAYMENT = "invalid_payment"
    VERIFICATION_ERROR = "verification_error"
    SETTLEMENT_FAILED = "settlement_failed"
    BLOCKCHAIN_ERROR = "blockchain_error"


class VerificationRequest(CanonicalModel):
    """
    Input of a verification attempt.

    Exactly one proof must be given: ``transaction_hash`` for a directly
    broadcast payment, or ``payment_header`` for a pre-signed authorization
    redeemed through a facilitator.

    Attributes:
        transaction_hash: Hash of the on-chain payment transaction
        payment_header: Base64 x402 payment header
        amount: Expected amount in asset units (Decimal, or the money string
            accepted by the facilitator flow such as "$0.10")
        destination: Expected recipient (seller) address
        method: PaymentMethod identifier
        resource: Resource the authorization was signed for (facilitator flow)
        facilitator_url: Facilitator override (facilitator flow)
    """

    transaction_hash: Optional[str] = Field(None, description="On-chain transaction hash")
    payment_header: Optional[str] = Field(None, description="Base64 x402 payment header")
    amount: str = Field(..., description="Expected amount in asset units")
    destination: str = Field(..., description="Expected recipient address")
    method: str = Field(..., description="PaymentMethod identifier")
    resource: Optional[str] = Field(None, description="Resource identifier for the authorization")
    facilitator_url: Optional[str] = Field(None, description="Facilitator base URL override")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_to_text(cls, value: Any) -> Any:
        # floats go through str() so 0.1 stays 0.1
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("method", mode="before")
    @classmethod
    def _method_to_text(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @model_validator(mode="after")
    def _single_proof(self) -> "VerificationRequest":
        if self.transaction_hash and self.payment_header:
            raise ValueError("Provide either transaction_hash or payment_header, not both")
        return self


class VerificationResult(CanonicalModel):
    """
    Outcome of verifying a payment proof.

    ``success`` is True only when ``status`` is SUCCESS. Failure results carry
    a diagnostic ``message`` naming the field that did not match.

    Attributes:
        success: Whether the payment satisfies every requirement
        status: Machine-readable outcome
        message: Human-readable outcome
        explorer_url: Block explorer link for the verified transaction
        chain_name: Chain the payment was verified on
        transaction_hash: Verified (or settlement) transaction hash
        response_header: Base64 settlement response header (facilitator flow)
        payer: Payer address reported by the facilitator
        retryable: Whether the same proof may succeed on a later attempt
        error_details: Extra diagnostic data
        verified_at: Timestamp when verification was performed
    """

    success: bool = Field(..., description="Whether verification passed")
    status: VerificationStatus = Field(..., description="Verification result status")
    message: str = Field(..., description="Human-readable status message")
    explorer_url: Optional[str] = Field(None, description="Block explorer transaction URL")
    chain_name: Optional[str] = Field(None, description="Chain name")
    transaction_hash: Optional[str] = Field(None, description="Transaction hash")
    response_header: Optional[str] = Field(None, description="Settlement response header")
    payer: Optional[str] = Field(None, description="Payer address")
    retryable: bool = Field(False, description="Whether retrying with the same proof can succeed")
    error_details: Optional[Dict[str, Any]] = Field(None, description="Detailed error information")
    verified_at: datetime = Field(default_factory=datetime.now, description="Verification timestamp")

    @classmethod
    def failure(
        cls,
        status: VerificationStatus,
        message: str,
        **kwargs: Any,
    ) -> "VerificationResult":
        """Shortcut for a failed result."""
        return cls(success=False, status=status, message=message, **kwargs)

    def is_success(self) -> bool:
        """
        Check if verification was successful.

        Returns:
            bool: True if verification was successful, False otherwise.
        """
        return self.success and self.status == VerificationStatus.SUCCESS

    def get_error_message(self) -> Optional[str]:
        """
        Get formatted error message from verification result.

        Returns:
            Optional[str]: Error message if verification failed, None if successful.
        """
        if self.is_success():
            return None

        error_msg = f"Verification failed: {self.message}"
        if self.error_details:
            details_str = json.dumps(self.error_details, indent=2, default=str)
            error_msg += f"\nDetails: {details_str}"
        return error_msg
