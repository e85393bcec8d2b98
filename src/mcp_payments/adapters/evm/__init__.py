from .client import EVMChainClient, classify_submission_error
from .issuer import PaymentIssuer, intrinsic_gas
from .schemas import (
    NonceView,
    PaymentRequest,
    OrderMetadata,
    IssuedPayment,
    TransferEvent,
)
from .verifies import ReceiptVerifier

__all__ = [
    "EVMChainClient",
    "classify_submission_error",
    "PaymentIssuer",
    "intrinsic_gas",
    "NonceView",
    "PaymentRequest",
    "OrderMetadata",
    "IssuedPayment",
    "TransferEvent",
    "ReceiptVerifier",
]
