from .exceptions import (
    PaymentsError,
    ConfigurationError,
    InvalidAmountError,
    PaymentMethodError,
    UnknownMethodError,
    UnsupportedChainError,
    ChainClientError,
    SubmissionError,
    NonceTooLowError,
    ReceiptTimeoutError,
    PaymentVerificationError,
    InvalidPaymentHeaderError,
    FacilitatorError,
)

__all__ = [
    "PaymentsError",
    "ConfigurationError",
    "InvalidAmountError",
    "PaymentMethodError",
    "UnknownMethodError",
    "UnsupportedChainError",
    "ChainClientError",
    "SubmissionError",
    "NonceTooLowError",
    "ReceiptTimeoutError",
    "PaymentVerificationError",
    "InvalidPaymentHeaderError",
    "FacilitatorError",
]
