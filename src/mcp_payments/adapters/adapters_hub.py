"""
Payments Hub - Unified Issuance and Verification Gateway

This module is the main entry point for payment operations. It provides a
single facade that:
1. Issues on-chain payments through the EVM issuer
2. Routes verification to the strategy matching the presented proof
   (transaction hash -> receipt inspection, payment header -> facilitator)
3. Signs x402 authorizations for the pre-signed flow
4. Lists the supported payment methods

Architecture:
    PaymentsHub (you are here)
        ├── Asset Registry (registry.py)
        ├── PaymentIssuer (evm/issuer.py)
        ├── ReceiptVerifier (evm/verifies.py)
        └── FacilitatorVerifier (facilitator/verifier.py)
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..engine.exceptions import PaymentMethodError
from ..schemas.bases import VerificationRequest, VerificationResult, VerificationStatus
from .bases import PaymentVerifier
from .evm.client import EVMChainClient
from .evm.issuer import PaymentIssuer
from .evm.schemas import IssuedPayment, PaymentRequest, TransferEvent
from .evm.verifies import ReceiptVerifier
from .facilitator.signatures import build_authorization
from .facilitator.verifier import FacilitatorVerifier
from .registry import PaymentMethod, ResolvedMethod, list_payment_methods, resolve_method


class PaymentsHub:
    """
    Unified payment hub.

    Holds one issuer (and therefore one set of per-signer nonce locks) and
    the two verification strategies. Create it once per process.

    Example:
        hub = PaymentsHub(Settings.from_env())
        issued = await hub.send_payment({
            "amount": "0.01", "destination": "0x...", "method": "ETH_BASE_SEPOLIA",
        })
        result = await hub.verify_payment({
            "transaction_hash": issued.transaction_hash,
            "amount": "0.01", "destination": "0x...", "method": "ETH_BASE_SEPOLIA",
        })
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        facilitator_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the hub with an issuer and both verification strategies.

        Args:
            settings: Runtime settings; read from the environment when omitted.
            facilitator_transport: Custom httpx transport for facilitator calls.
        """
        self.settings = settings or Settings.from_env()
        self._issuer = PaymentIssuer(self.settings)
        self._verifiers: List[PaymentVerifier] = [
            ReceiptVerifier(self.settings),
            FacilitatorVerifier(self.settings, transport=facilitator_transport),
        ]

    # =========================================================================
    # Payment Methods
    # =========================================================================

    def get_payment_methods(self) -> List[ResolvedMethod]:
        """Every supported payment method with its chain and currency."""
        return list_payment_methods(self.settings.token_addresses)

    # =========================================================================
    # Issuance
    # =========================================================================

    async def send_payment(self, request: Union[PaymentRequest, Dict[str, Any]]) -> IssuedPayment:
        """
        Issue a payment.

        Args:
            request: PaymentRequest or a dict with the same fields.

        Returns:
            IssuedPayment: Never raises; malformed requests come back as "Error: ...".
        """
        if isinstance(request, dict):
            try:
                request = PaymentRequest.model_validate(request)
            except ValidationError as e:
                return IssuedPayment(result_message=f"Error: {e.errors()[0]['msg']}")
        return await self._issuer.send_payment(request)

    # =========================================================================
    # Verification
    # =========================================================================

    async def verify_payment(
        self,
        request: Union[VerificationRequest, Dict[str, Any]],
    ) -> VerificationResult:
        """
        Verify a payment proof with the strategy matching its kind.

        A transaction hash goes to on-chain receipt inspection; a payment
        header goes to the facilitator.

        Args:
            request: VerificationRequest or a dict with the same fields.

        Returns:
            VerificationResult: Never raises.
        """
        if isinstance(request, dict):
            try:
                request = VerificationRequest.model_validate(request)
            except ValidationError as e:
                return VerificationResult.failure(
                    VerificationStatus.INVALID_REQUEST, e.errors()[0]["msg"]
                )

        for verifier in self._verifiers:
            if verifier.accepts(request):
                return await verifier.verify(request)

        return VerificationResult.failure(
            VerificationStatus.MISSING_PROOF,
            "No transaction hash or payment header provided",
        )

    # =========================================================================
    # Pre-signed authorizations
    # =========================================================================

    def build_authorization(
        self,
        amount: Union[str, int, float, Decimal],
        pay_to: str,
        resource: str,
        method: Union[PaymentMethod, str],
        private_key: Optional[str] = None,
    ) -> str:
        """
        Sign an x402 payment header with the configured key (or ``private_key``).

        Raises:
            ConfigurationError: If no key is configured or given.
            InvalidAmountError: If the amount is malformed.
            PaymentMethodError: If the method cannot be paid by authorization.
        """
        return build_authorization(
            amount,
            pay_to,
            resource,
            method,
            private_key or self.settings.require_private_key(),
            token_overrides=self.settings.token_addresses,
        )

    # =========================================================================
    # Reconciliation
    # =========================================================================

    async def get_transfer_events(
        self,
        method: Union[PaymentMethod, str],
        from_block: Union[int, str],
        to_block: Union[int, str] = "latest",
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
    ) -> List[TransferEvent]:
        """
        Read historical token transfers of a method's asset.

        Raises:
            PaymentMethodError: If the method's asset is not an EVM token.
        """
        resolved = resolve_method(method, self.settings.token_addresses)
        if resolved.currency.is_native:
            raise PaymentMethodError(f"{resolved.method.value} is a native asset without Transfer events")
        client = EVMChainClient.for_chain(resolved.chain, self.settings)
        return await client.get_transfer_events(
            resolved.currency.address, from_block, to_block, sender=sender, recipient=recipient
        )
