"""
EVM Chain Client

Thin async JSON-RPC wrapper bound to exactly one chain. A client is built
per call (``EVMChainClient.for_chain``) instead of rebinding a shared
instance, so concurrent requests for different chains never interfere.

Key Features:
    - Nonce reads for the confirmed and pending views
    - Gas price and gas estimation
    - Raw transaction submission with structured nonce-conflict detection
    - Transaction / receipt lookups that return None when absent
    - ERC-20 ``transfer`` call data encoding and decoding
    - Historical ``Transfer`` event reads via ``eth_getLogs``

Dependencies:
    - web3.py: AsyncWeb3 over AsyncHTTPProvider with an explicit timeout
    - eth_abi: ABI encoding of transfer call data and event data
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Tuple, Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from ...config import Settings
from ...engine.exceptions import (
    NonceTooLowError,
    ReceiptTimeoutError,
    SubmissionError,
    UnsupportedChainError,
)
from ..registry import ChainInfo
from .ERC20_ABI import (
    TRANSFER_ARG_TYPES,
    TRANSFER_EVENT_DATA_TYPES,
    TRANSFER_EVENT_TOPIC,
    TRANSFER_SELECTOR,
)
from .schemas import NonceView, TransferEvent

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Provider error classification
# ---------------------------------------------------------------------------

#: Lower-cased fragments providers use for an already-consumed nonce.
_NONCE_TOO_LOW_MARKERS: Tuple[str, ...] = (
    "nonce too low",
    "nonce has already been used",
    "nonce_expired",
)

_NEXT_NONCE_PATTERN = re.compile(r"next nonce (\d+)", re.IGNORECASE)

_RECEIPT_POLL_INTERVAL = 2.0


def provider_error_message(exc: BaseException) -> str:
    """
    Extract the provider's error message from a web3 exception.

    web3 v7 raises ``Web3RPCError`` with the JSON-RPC response attached;
    older releases raise ``ValueError`` with the error dict as first argument.
    Anything else falls back to ``str(exc)``.
    """
    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, dict):
        error = rpc_response.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    if exc.args and isinstance(exc.args[0], dict) and exc.args[0].get("message"):
        return str(exc.args[0]["message"])
    return str(exc)


def classify_submission_error(exc: BaseException) -> SubmissionError:
    """
    Turn a provider exception into ``NonceTooLowError`` or ``SubmissionError``.

    The nonce condition is recognised from the provider message; a
    "next nonce N" hint is extracted when the provider includes one.
    """
    message = provider_error_message(exc)
    lowered = message.lower()
    if any(marker in lowered for marker in _NONCE_TOO_LOW_MARKERS):
        match = _NEXT_NONCE_PATTERN.search(message)
        next_nonce = int(match.group(1)) if match else None
        return NonceTooLowError(message, next_nonce=next_nonce)
    return SubmissionError(message)


def _as_bytes(value: Union[bytes, bytearray, str, None]) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        text = value[2:] if value[:2].lower() == "0x" else value
        return bytes.fromhex(text)
    return bytes(value)


def to_hex_str(value: Union[bytes, bytearray, str]) -> str:
    """Normalize a hash given as bytes or hex text to 0x-prefixed lower-case hex."""
    if isinstance(value, str):
        return "0x" + (value[2:] if value[:2].lower() == "0x" else value).lower()
    return Web3.to_hex(bytes(value))


def _address_topic(address: str) -> str:
    return "0x" + "00" * 12 + AsyncWeb3.to_checksum_address(address)[2:].lower()


def _topic_to_address(topic: Union[bytes, str]) -> str:
    return AsyncWeb3.to_checksum_address("0x" + _as_bytes(topic)[-20:].hex())


class EVMChainClient:
    """
    JSON-RPC client for a single EVM chain.

    Attributes:
        chain: Chain metadata this client is bound to
        rpc_url: Endpoint in use
        request_timeout: Per-request timeout in seconds

    Example:
        client = EVMChainClient.for_chain(resolved.chain, settings)
        nonce = await client.get_nonce(address, NonceView.PENDING)
    """

    def __init__(
        self,
        chain: ChainInfo,
        rpc_url: Optional[str] = None,
        request_timeout: float = 30.0,
        web3: Optional[AsyncWeb3] = None,
    ):
        """
        Bind a client to one chain.

        Args:
            chain: Chain metadata; must describe an EVM chain.
            rpc_url: Endpoint override (defaults to the chain's public RPC).
            request_timeout: Timeout for every HTTP request, in seconds.
            web3: Pre-built AsyncWeb3 instance (tests inject fakes here).

        Raises:
            UnsupportedChainError: If ``chain`` is not an EVM chain.
        """
        if not chain.is_evm:
            raise UnsupportedChainError(chain.chain.value)
        self.chain = chain
        self.rpc_url = rpc_url or chain.rpc_url
        self.request_timeout = request_timeout
        self._web3 = web3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
            self.rpc_url,
            request_kwargs={"timeout": request_timeout}
        ))

    @classmethod
    def for_chain(cls, chain: ChainInfo, settings: Settings) -> "EVMChainClient":
        """Build a client for ``chain`` using the endpoint and timeout in ``settings``."""
        return cls(
            chain,
            rpc_url=settings.rpc_urls.get(chain.chain.value),
            request_timeout=settings.request_timeout,
        )

    @property
    def web3(self) -> AsyncWeb3:
        return self._web3

    # ------------------------------------------------------------------
    # Account state and fees
    # ------------------------------------------------------------------

    async def get_nonce(self, address: str, view: NonceView = NonceView.CONFIRMED) -> int:
        """Read the transaction count of ``address`` for the given view."""
        count = await self._web3.eth.get_transaction_count(
            AsyncWeb3.to_checksum_address(address), view.value
        )
        return int(count)

    async def get_gas_price(self) -> int:
        return int(await self._web3.eth.gas_price)

    async def get_block_number(self) -> int:
        return int(await self._web3.eth.block_number)

    async def estimate_gas(self, from_address: str, to: str, data: str, value: int = 0) -> int:
        """
        Estimate gas for a call from ``from_address`` to ``to`` with ``data``.

        Raises:
            Exception: Whatever the provider raises (reverts, insufficient funds).
        """
        tx: Dict[str, Any] = {
            "from": AsyncWeb3.to_checksum_address(from_address),
            "to": AsyncWeb3.to_checksum_address(to),
            "data": data,
            "value": value,
        }
        return int(await self._web3.eth.estimate_gas(tx))

    # ------------------------------------------------------------------
    # Submission and receipts
    # ------------------------------------------------------------------

    async def submit_signed_transaction(self, raw_transaction: bytes) -> str:
        """
        Broadcast a signed transaction.

        Args:
            raw_transaction: Signed transaction bytes from
                ``Account.sign_transaction(...).raw_transaction``.

        Returns:
            str: 0x-prefixed transaction hash.

        Raises:
            NonceTooLowError: The nonce was already consumed.
            SubmissionError: Any other rejection; carries the provider message.
        """
        try:
            tx_hash = await self._web3.eth.send_raw_transaction(raw_transaction)
        except Exception as e:
            error = classify_submission_error(e)
            logger.warning(
                "Submission rejected on %s: %s", self.chain.chain.value, error.provider_message
            )
            raise error from e
        return to_hex_str(tx_hash)

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Fetch a transaction by hash, or None when the node does not know it."""
        try:
            tx = await self._web3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None
        return dict(tx) if tx is not None else None

    async def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Fetch a receipt by hash, or None when the transaction is not mined."""
        try:
            receipt = await self._web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        return dict(receipt) if receipt is not None else None

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float,
        poll_interval: float = _RECEIPT_POLL_INTERVAL,
    ) -> Dict[str, Any]:
        """
        Poll for a receipt until it appears or ``timeout`` seconds elapse.

        Raises:
            ReceiptTimeoutError: No receipt within ``timeout``.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            receipt = await self.get_receipt(tx_hash)
            if receipt is not None:
                return receipt
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise ReceiptTimeoutError(tx_hash, timeout)
            await asyncio.sleep(min(poll_interval, remaining))

    # ------------------------------------------------------------------
    # ERC-20 helpers
    # ------------------------------------------------------------------

    @staticmethod
    def encode_transfer_call(to: str, amount_units: int) -> str:
        """
        Encode ``transfer(to, amount_units)`` call data.

        Returns:
            str: 0x-prefixed lower-case hex call data.
        """
        payload = abi_encode(TRANSFER_ARG_TYPES, [AsyncWeb3.to_checksum_address(to), int(amount_units)])
        return "0x" + (TRANSFER_SELECTOR + payload).hex()

    @staticmethod
    def decode_transfer_call(data: Union[bytes, str, None]) -> Optional[Tuple[str, int]]:
        """
        Decode ``transfer`` call data into ``(to, amount_units)``.

        Returns None when the data is not a ``transfer`` call.
        """
        raw = _as_bytes(data)
        if len(raw) != 4 + 64 or raw[:4] != TRANSFER_SELECTOR:
            return None
        to, amount = abi_decode(TRANSFER_ARG_TYPES, raw[4:])
        return AsyncWeb3.to_checksum_address(to), int(amount)

    async def get_transfer_events(
        self,
        token: str,
        from_block: Union[int, str],
        to_block: Union[int, str] = "latest",
        sender: Optional[str] = None,
        recipient: Optional[str] = None,
    ) -> List[TransferEvent]:
        """
        Read ``Transfer`` events of ``token`` in a block range.

        Args:
            token: Token contract address.
            from_block: First block (number or tag).
            to_block: Last block (number or tag).
            sender: Only transfers from this address.
            recipient: Only transfers to this address.

        Returns:
            List[TransferEvent]: Decoded events in node order.
        """
        topics: List[Optional[str]] = [
            Web3.to_hex(TRANSFER_EVENT_TOPIC),
            _address_topic(sender) if sender else None,
            _address_topic(recipient) if recipient else None,
        ]
        while topics and topics[-1] is None:
            topics.pop()

        logs = await self._web3.eth.get_logs({
            "address": AsyncWeb3.to_checksum_address(token),
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": topics,
        })

        events: List[TransferEvent] = []
        for log in logs:
            log_topics = log["topics"]
            if len(log_topics) != 3:
                continue
            (value,) = abi_decode(TRANSFER_EVENT_DATA_TYPES, _as_bytes(log["data"]))
            events.append(TransferEvent(
                token=AsyncWeb3.to_checksum_address(log["address"]),
                sender=_topic_to_address(log_topics[1]),
                recipient=_topic_to_address(log_topics[2]),
                value=int(value),
                block_number=int(log["blockNumber"]),
                transaction_hash=to_hex_str(log["transactionHash"]),
                log_index=int(log["logIndex"]),
            ))
        return events
