"""
EVM Payment Issuer

Builds, signs and submits exactly one value transfer per request: native
coin transfers through the transaction value, ERC-20 transfers through a
``transfer(destination, amount)`` call on the token contract.

Nonce handling:
    Submissions for the same (chain id, signer) pair are serialized through
    an ``asyncio.Lock`` held from the nonce read until the node accepts the
    transaction. The nonce itself is ``max(confirmed, pending)``. If the node
    still rejects it as already used (another process sharing the key), the
    confirmed nonce is re-read and the transaction is rebuilt, re-signed and
    resubmitted exactly once. A second rejection is terminal.

Results:
    ``send_payment`` never raises for I/O or provider errors. Every failure is
    returned as an ``IssuedPayment`` with an "Error: ..." message and an empty
    transaction hash.

Dependencies:
    - eth_account: Local transaction signing (the key never leaves the process)
    - web3.py: Address checksumming, via the chain client for RPC
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3

from ...config import Settings
from ...engine.exceptions import NonceTooLowError, ReceiptTimeoutError
from ..registry import ChainInfo, ResolvedMethod, amount_to_units, resolve_method
from .client import EVMChainClient
from .schemas import IssuedPayment, NonceView, OrderMetadata, PaymentRequest

logger = logging.getLogger(__name__)

#: Gas of a plain value transfer without data.
NATIVE_TRANSFER_GAS = 21000

_ZERO_BYTE_GAS = 4
_NONZERO_BYTE_GAS = 16


def intrinsic_gas(data: bytes) -> int:
    """Intrinsic gas of a value transfer carrying ``data``."""
    return NATIVE_TRANSFER_GAS + sum(
        _NONZERO_BYTE_GAS if byte else _ZERO_BYTE_GAS for byte in data
    )


class PaymentIssuer:
    """
    Issues on-chain payments from the configured payer key.

    A chain client is created per call from the method's chain, so one
    issuer serves every supported EVM chain concurrently.

    Attributes:
        settings: Runtime settings (RPC endpoints, timeouts, key)

    Example:
        issuer = PaymentIssuer(Settings.from_env())
        issued = await issuer.send_payment(PaymentRequest(
            amount="0.01", destination="0x...", method="ETH_BASE_SEPOLIA",
        ))
        if issued.success:
            print(issued.transaction_hash)
    """

    def __init__(self, settings: Optional[Settings] = None, private_key: Optional[str] = None):
        """
        Args:
            settings: Runtime settings; read from the environment when omitted.
            private_key: Payer key overriding ``settings.private_key``.
        """
        self.settings = settings or Settings.from_env()
        self._private_key = private_key
        self._signer_locks: Dict[Tuple[int, str], asyncio.Lock] = {}

    def _get_chain_client(self, chain: ChainInfo) -> EVMChainClient:
        return EVMChainClient.for_chain(chain, self.settings)

    def _get_account(self) -> LocalAccount:
        key = self._private_key or self.settings.require_private_key()
        return Account.from_key(key)

    def _signer_lock(self, chain_id: int, address: str) -> asyncio.Lock:
        return self._signer_locks.setdefault((chain_id, address.lower()), asyncio.Lock())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send_payment(self, request: PaymentRequest) -> IssuedPayment:
        """
        Issue one payment.

        Steps:
            1. Resolve chain and currency; bind a chain client for that chain.
            2. Convert the amount to smallest units (floor).
            3. Under the signer lock: nonce = max(confirmed, pending), build,
               sign and submit, retrying once on a nonce conflict.
            4. Optionally wait for the receipt outside the lock.

        Args:
            request: Amount, destination, method and optional order metadata.

        Returns:
            IssuedPayment: "Transaction sent: <hash>" / "Token transfer sent: <hash>"
            (with "after nonce retry" when the retry was used) or "Error: ..."
            with an empty hash.
        """
        try:
            resolved = resolve_method(request.method, self.settings.token_addresses)
            client = self._get_chain_client(resolved.chain)
            account = self._get_account()
            amount_units = amount_to_units(request.amount, resolved.currency.decimals)
            destination = AsyncWeb3.to_checksum_address(request.destination)

            async with self._signer_lock(resolved.chain.chain_id, account.address):
                tx_hash, retried = await self._submit_with_retry(
                    client, account, resolved, destination, amount_units, request
                )
        except Exception as e:
            logger.error("Payment issuance failed (%s): %s", request.method.value, e)
            return IssuedPayment(result_message=f"Error: {e}")

        label = "Transaction sent" if resolved.currency.is_native else "Token transfer sent"
        if retried:
            label += " after nonce retry"
        logger.info("%s on %s: %s", label, resolved.chain.chain.value, tx_hash)

        if not self.settings.wait_for_receipt:
            return IssuedPayment(
                result_message=f"{label}: {tx_hash}",
                transaction_hash=tx_hash,
                nonce_retried=retried,
            )
        return await self._await_receipt(client, label, tx_hash, retried)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _next_nonce(self, client: EVMChainClient, address: str) -> int:
        confirmed = await client.get_nonce(address, NonceView.CONFIRMED)
        pending = await client.get_nonce(address, NonceView.PENDING)
        return max(confirmed, pending)

    def _order_metadata(
        self,
        request: PaymentRequest,
        resolved: ResolvedMethod,
        sender: str,
        destination: str,
    ) -> bytes:
        if not (self.settings.embed_order_metadata and request.order_id):
            return b""
        metadata = OrderMetadata(
            order_id=request.order_id,
            order_date=request.order_date or datetime.now(timezone.utc).isoformat(),
            sender=sender,
            recipient=destination,
            amount=str(request.amount),
            currency=resolved.currency.symbol.value,
        )
        return metadata.to_bytes()

    async def _build_transaction(
        self,
        client: EVMChainClient,
        account: LocalAccount,
        resolved: ResolvedMethod,
        destination: str,
        amount_units: int,
        request: PaymentRequest,
    ) -> Dict[str, Any]:
        """Unsigned transaction fields, without the nonce."""
        gas_price = await client.get_gas_price()
        tx: Dict[str, Any] = {
            "chainId": resolved.chain.chain_id,
            "gasPrice": gas_price,
        }

        if resolved.currency.is_native:
            data = self._order_metadata(request, resolved, account.address, destination)
            tx.update({
                "to": destination,
                "value": amount_units,
                "gas": intrinsic_gas(data),
            })
            if data:
                tx["data"] = "0x" + data.hex()
            return tx

        token = AsyncWeb3.to_checksum_address(resolved.currency.address)
        call_data = client.encode_transfer_call(destination, amount_units)
        gas = await client.estimate_gas(account.address, token, call_data)
        tx.update({
            "to": token,
            "value": 0,
            "gas": gas,
            "data": call_data,
        })
        return tx

    @staticmethod
    def _sign(account: LocalAccount, tx: Dict[str, Any], nonce: int) -> bytes:
        signed = account.sign_transaction({**tx, "nonce": nonce})
        return signed.raw_transaction

    async def _submit_with_retry(
        self,
        client: EVMChainClient,
        account: LocalAccount,
        resolved: ResolvedMethod,
        destination: str,
        amount_units: int,
        request: PaymentRequest,
    ) -> Tuple[str, bool]:
        nonce = await self._next_nonce(client, account.address)
        tx = await self._build_transaction(
            client, account, resolved, destination, amount_units, request
        )

        try:
            return await client.submit_signed_transaction(self._sign(account, tx, nonce)), False
        except NonceTooLowError as e:
            # never reuse or go below the rejected nonce
            fresh = max(await self._next_nonce(client, account.address), nonce + 1, e.next_nonce or 0)
            logger.warning(
                "Nonce %d rejected on %s (%s); retrying once with nonce %d",
                nonce, resolved.chain.chain.value, e.provider_message, fresh,
            )

        # a second failure of any kind propagates
        tx_hash = await client.submit_signed_transaction(self._sign(account, tx, fresh))
        return tx_hash, True

    async def _await_receipt(
        self,
        client: EVMChainClient,
        label: str,
        tx_hash: str,
        retried: bool,
    ) -> IssuedPayment:
        try:
            receipt = await client.wait_for_receipt(tx_hash, self.settings.receipt_timeout)
        except Exception as e:
            # already broadcast: keep the hash so it can be reconciled
            if isinstance(e, ReceiptTimeoutError):
                logger.warning("No receipt for %s yet; reporting as pending", tx_hash)
            else:
                logger.warning("Receipt lookup for %s failed: %s", tx_hash, e)
            return IssuedPayment(
                result_message=f"{label} (receipt pending): {tx_hash}",
                transaction_hash=tx_hash,
                nonce_retried=retried,
                receipt_pending=True,
            )

        if receipt.get("status") != 1:
            logger.error("Transaction %s reverted", tx_hash)
            return IssuedPayment(
                result_message=f"Error: Transaction reverted: {tx_hash}",
                reverted_hash=tx_hash,
                nonce_retried=retried,
            )
        return IssuedPayment(
            result_message=f"{label}: {tx_hash}",
            transaction_hash=tx_hash,
            nonce_retried=retried,
        )
