from .bases import CanonicalModel, VerificationStatus, VerificationRequest, VerificationResult
from .https import (
    X402_VERSION,
    PaymentRequirements,
    ExactEvmAuthorization,
    ExactEvmPayload,
    PaymentPayload,
    FacilitatorRequest,
    VerifyResponse,
    SettleResponse,
)

__all__ = [
    "CanonicalModel",
    "VerificationStatus",
    "VerificationRequest",
    "VerificationResult",
    "X402_VERSION",
    "PaymentRequirements",
    "ExactEvmAuthorization",
    "ExactEvmPayload",
    "PaymentPayload",
    "FacilitatorRequest",
    "VerifyResponse",
    "SettleResponse",
]
