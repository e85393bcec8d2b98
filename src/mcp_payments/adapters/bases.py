"""
Abstract Base Classes for Payment Verifiers

Defines the single verification capability shared by both strategies:
    - ReceiptVerifier: inspects an on-chain transaction by hash
    - FacilitatorVerifier: verifies and settles a signed x402 payment header

The two strategies only share the asset registry. The hub picks one by the
kind of proof the caller presents.
"""

from abc import ABC, abstractmethod

from ..schemas.bases import VerificationRequest, VerificationResult


class PaymentVerifier(ABC):
    """
    Abstract base class for payment verification strategies.

    Implementations must never let I/O or provider errors escape; every
    outcome, including failures, is returned as a ``VerificationResult``.

    Key Responsibilities:
    1. accepts: Tell whether a request carries the kind of proof this strategy handles
    2. verify: Decide whether the proof satisfies the expected amount,
       destination and asset

    Example Implementation:
        class ReceiptVerifier(PaymentVerifier):
            def accepts(self, request):
                return bool(request.transaction_hash)
    """

    @abstractmethod
    def accepts(self, request: VerificationRequest) -> bool:
        """
        Check whether ``request`` carries the proof kind handled here.

        Args:
            request: Verification request

        Returns:
            bool: True when this verifier should handle the request.
        """
        pass

    @abstractmethod
    async def verify(self, request: VerificationRequest) -> VerificationResult:
        """
        Verify a payment proof against the seller's requirements.

        Args:
            request: Proof plus expected amount, destination and method

        Returns:
            VerificationResult: ``success=True`` only when every requirement
            holds; otherwise a failure with a specific status and message.
        """
        pass
