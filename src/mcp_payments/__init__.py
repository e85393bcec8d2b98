from .config import Settings
from .utils import setup_logger
from .engine.exceptions import PaymentsError
from .schemas import VerificationRequest, VerificationResult, VerificationStatus
from .schemas.tools import (
    PricingListingItem,
    PricingListingRequest,
    PricingListingResponse,
    PaymentMethodResponse,
    PurchaseRequest,
    PurchaseResponse,
)
from .adapters import (
    PaymentsHub,
    PaymentMethod,
    PaymentRequest,
    IssuedPayment,
)
from .servers import MonetizedService

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "setup_logger",
    "PaymentsError",
    "VerificationRequest",
    "VerificationResult",
    "VerificationStatus",
    "PricingListingItem",
    "PricingListingRequest",
    "PricingListingResponse",
    "PaymentMethodResponse",
    "PurchaseRequest",
    "PurchaseResponse",
    "PaymentsHub",
    "PaymentMethod",
    "PaymentRequest",
    "IssuedPayment",
    "MonetizedService",
]
