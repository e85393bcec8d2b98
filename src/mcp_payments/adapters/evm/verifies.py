"""
EVM Receipt Verifier

Decides whether an on-chain transaction paid the expected amount to the
expected destination in the expected asset. Used for payments the buyer
broadcast directly (a transaction hash is the proof).

Checks, short-circuiting on the first failure:
    1. A hash was provided.
    2. The method is known and resolves to an EVM chain.
    3. The expected destination is a well-formed address (checked before any RPC).
    4. The receipt exists and its status is success.
    5. The transaction exists.
    6. Native asset: ``to`` equals the destination (case-insensitive) and
       ``value`` equals the expected smallest units exactly.
    7. Token: ``to`` equals the token contract and the call data equals the
       re-encoded ``transfer(destination, units)`` byte for byte.

I/O errors are converted into "Error verifying payment: ..." results.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from web3 import AsyncWeb3

from ...config import Settings
from ...engine.exceptions import InvalidAmountError, PaymentMethodError
from ...schemas.bases import VerificationRequest, VerificationResult, VerificationStatus
from ..bases import PaymentVerifier
from ..registry import ChainInfo, PaymentMethod, amount_to_units, resolve_method
from .client import EVMChainClient, to_hex_str

logger = logging.getLogger(__name__)


def _same_address(left: Optional[str], right: Optional[str]) -> bool:
    return bool(left) and bool(right) and left.lower() == right.lower()


class ReceiptVerifier(PaymentVerifier):
    """
    Verifies payments by inspecting the transaction and its receipt.

    Example:
        verifier = ReceiptVerifier(settings)
        result = await verifier.verify_transaction(
            "0xabc...", "0.5", "0xSeller...", "USDC_BASE_SEPOLIA"
        )
        if result.success:
            print(result.explorer_url)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()

    def _get_chain_client(self, chain: ChainInfo) -> EVMChainClient:
        return EVMChainClient.for_chain(chain, self.settings)

    def accepts(self, request: VerificationRequest) -> bool:
        return bool(request.transaction_hash)

    async def verify(self, request: VerificationRequest) -> VerificationResult:
        return await self.verify_transaction(
            request.transaction_hash or "",
            request.amount,
            request.destination,
            request.method,
        )

    async def verify_transaction(
        self,
        tx_hash: str,
        amount: Union[Decimal, int, float, str],
        destination: str,
        method: Union[PaymentMethod, str],
    ) -> VerificationResult:
        """
        Verify that ``tx_hash`` paid ``amount`` of the method's asset to ``destination``.

        Args:
            tx_hash: Transaction hash presented as proof.
            amount: Expected amount in asset units.
            destination: Expected recipient address.
            method: PaymentMethod the buyer claims to have used.

        Returns:
            VerificationResult: Success with explorer URL and chain name, or a
            failure naming the first requirement that did not hold.
        """
        if not tx_hash:
            return VerificationResult.failure(
                VerificationStatus.MISSING_PROOF, "No transaction hash provided"
            )

        try:
            resolved = resolve_method(method, self.settings.token_addresses)
            client = self._get_chain_client(resolved.chain)
        except PaymentMethodError as e:
            return VerificationResult.failure(VerificationStatus.UNSUPPORTED_CHAIN, str(e))

        if not destination or not AsyncWeb3.is_address(destination.lower()):
            return VerificationResult.failure(
                VerificationStatus.INVALID_REQUEST, f"Invalid destination address: {destination}"
            )

        try:
            receipt = await client.get_receipt(tx_hash)
            if receipt is None:
                return VerificationResult.failure(
                    VerificationStatus.NOT_FOUND, "Transaction not found"
                )
            if receipt.get("status") != 1:
                return VerificationResult.failure(
                    VerificationStatus.REVERTED, "Transaction failed", transaction_hash=tx_hash
                )

            try:
                expected_units = amount_to_units(amount, resolved.currency.decimals)
            except InvalidAmountError as e:
                return VerificationResult.failure(VerificationStatus.INVALID_AMOUNT, str(e))

            tx = await client.get_transaction(tx_hash)
            if tx is None:
                return VerificationResult.failure(
                    VerificationStatus.NOT_FOUND, "Transaction not found"
                )

            tx_to = tx.get("to")
            if resolved.currency.is_native:
                if not _same_address(tx_to, destination):
                    return VerificationResult.failure(
                        VerificationStatus.DESTINATION_MISMATCH,
                        f"Incorrect destination address. Expected: {destination}, Got: {tx_to}",
                        transaction_hash=tx_hash,
                    )
                tx_value = int(tx.get("value", 0))
                if tx_value != expected_units:
                    return VerificationResult.failure(
                        VerificationStatus.AMOUNT_MISMATCH,
                        f"Incorrect amount transferred. Expected: {expected_units}, Got: {tx_value}",
                        transaction_hash=tx_hash,
                    )
            else:
                token = resolved.currency.address
                if not token:
                    return VerificationResult.failure(
                        VerificationStatus.MISSING_CONTRACT,
                        "Token contract address not found for this payment method",
                    )
                if not _same_address(tx_to, token):
                    return VerificationResult.failure(
                        VerificationStatus.DESTINATION_MISMATCH,
                        f"Transaction not sent to token contract. Expected: {token}, Got: {tx_to}",
                        transaction_hash=tx_hash,
                    )
                expected_data = client.encode_transfer_call(
                    AsyncWeb3.to_checksum_address(destination), expected_units
                )
                actual_data = to_hex_str(tx.get("input") or b"")
                if actual_data != expected_data.lower():
                    decoded = client.decode_transfer_call(actual_data)
                    details = None
                    if decoded is not None:
                        details = {"to": decoded[0], "value": decoded[1], "expected_value": expected_units}
                    return VerificationResult.failure(
                        VerificationStatus.CALLDATA_MISMATCH,
                        "Token transfer data does not match expected values",
                        transaction_hash=tx_hash,
                        error_details=details,
                    )

        except Exception as e:
            logger.warning("Verification of %s failed: %s", tx_hash, e)
            return VerificationResult.failure(
                VerificationStatus.BLOCKCHAIN_ERROR, f"Error verifying payment: {e}"
            )

        return VerificationResult(
            success=True,
            status=VerificationStatus.SUCCESS,
            message="Payment verified successfully",
            explorer_url=resolved.chain.explorer_url(tx_hash),
            chain_name=resolved.chain.chain.value,
            transaction_hash=tx_hash,
        )
