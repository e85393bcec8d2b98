"""
Exception and Error Definitions Module

Defines the exception hierarchy used across payment issuance, on-chain
verification and facilitator settlement. All exceptions inherit from
PaymentsError for unified exception handling.

Public operations (issuing, verifying, settling) convert these into result
models; they are raised directly only by builders and registry lookups, where
they signal programming or input errors.

Exception Hierarchy:
    PaymentsError (root)
    ├── ConfigurationError
    ├── InvalidAmountError
    ├── PaymentMethodError
    │   ├── UnknownMethodError
    │   └── UnsupportedChainError
    ├── ChainClientError
    │   ├── SubmissionError
    │   │   └── NonceTooLowError
    │   └── ReceiptTimeoutError
    ├── PaymentVerificationError
    │   └── InvalidPaymentHeaderError
    └── FacilitatorError
"""

from typing import Optional


class PaymentsError(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class so callers can catch
    every library failure with a single ``except`` clause.
    """
    pass


class ConfigurationError(PaymentsError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Missing signing key when issuing a payment
    - Invalid timeout or boolean values in the environment
    - Missing RPC URL for a chain
    """
    pass


class InvalidAmountError(PaymentsError, ValueError):
    """
    Raised when an amount cannot be converted into smallest asset units.

    Negative, non-finite and unparseable amounts all land here.
    """
    pass


class PaymentMethodError(PaymentsError):
    """
    Raised when a payment method is invalid or unsupported for an operation.

    This includes scenarios such as:
    - Requesting an ERC-3009 authorization for an asset without an EIP-712 domain
    - Requesting an x402 network for a chain no facilitator settles on
    """
    pass


class UnknownMethodError(PaymentMethodError):
    """
    Raised when a payment method identifier is not in the closed enumeration.

    Attributes:
        method: The identifier that failed to resolve
    """

    def __init__(self, method: object):
        self.method = method
        super().__init__(f"Unknown payment method: {method!r}")


class UnsupportedChainError(PaymentMethodError):
    """
    Raised when an operation requires an EVM chain and receives another kind.

    Attributes:
        chain: Chain identifier that was rejected
    """

    def __init__(self, chain: object, message: Optional[str] = None):
        self.chain = chain
        super().__init__(message or f"Unsupported chain for EVM operations: {chain}")


class ChainClientError(PaymentsError):
    """
    Base exception for JSON-RPC interaction failures.

    Parent class for submission and receipt errors raised by the chain client.
    """
    pass


class SubmissionError(ChainClientError):
    """
    Raised when ``eth_sendRawTransaction`` is rejected by the provider.

    The provider's message is kept verbatim in ``provider_message`` and is
    used as the exception text.

    Attributes:
        provider_message: Error message returned by the RPC provider
    """

    def __init__(self, provider_message: str):
        self.provider_message = provider_message
        super().__init__(provider_message)


class NonceTooLowError(SubmissionError):
    """
    Raised when a submission is rejected because its nonce was already used.

    Some providers report the next usable nonce inside the error text; when
    present it is exposed as ``next_nonce``.

    Attributes:
        next_nonce: Provider-suggested next nonce, or None
    """

    def __init__(self, provider_message: str, next_nonce: Optional[int] = None):
        super().__init__(provider_message)
        self.next_nonce = next_nonce


class ReceiptTimeoutError(ChainClientError):
    """
    Raised when a submitted transaction has no receipt within the wait window.

    The transaction may still be mined later; ``tx_hash`` lets the caller
    reconcile it.

    Attributes:
        tx_hash: Hash of the broadcast transaction
        timeout: Seconds waited before giving up
    """

    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(f"No receipt for {tx_hash} after {timeout} seconds")


class PaymentVerificationError(PaymentsError):
    """
    Base exception for payment verification failures.

    Raised by the purchase flow when a presented payment proof does not
    satisfy the seller's requirements.
    """
    pass


class InvalidPaymentHeaderError(PaymentVerificationError):
    """
    Raised when a payment header is not valid base64 JSON of a payment payload.
    """
    pass


class FacilitatorError(PaymentsError):
    """
    Raised when the facilitator service cannot be reached or answers with
    a non-success HTTP status or a malformed body.

    Attributes:
        status_code: HTTP status code, when a response was received
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
