"""
Payment Adapter Test Mocks Module

Provides mock data and utilities for testing issuance and verification
without blockchain or facilitator connectivity.

Key Components:
    - Test keys and addresses (do not use in production!)
    - FakeChainClient: in-memory EVM chain that accepts real signed
      transactions, decodes them and serves them back as transactions and
      receipts, so an issued payment can be verified end to end
    - Facilitator transport factory built on ``httpx.MockTransport``

Usage:
    from test_mocks import FakeChainClient, MOCK_PAYER_PRIVATE_KEY, make_settings

    client = FakeChainClient(resolve_method("ETH_BASE_SEPOLIA").chain)
    issuer = PaymentIssuer(make_settings())
    with patch.object(issuer, "_get_chain_client", return_value=client):
        ...
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import Mock

import httpx
import rlp
from eth_account import Account
from eth_utils import big_endian_to_int, keccak
from web3 import AsyncWeb3

# Import from the main codebase
import sys
from pathlib import Path
src_path = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(src_path))

from mcp_payments.config import Settings
from mcp_payments.engine.exceptions import ReceiptTimeoutError
from mcp_payments.adapters.evm.client import EVMChainClient
from mcp_payments.adapters.evm.schemas import NonceView
from mcp_payments.adapters.registry import ChainInfo


# ========================================================================
# Mock Blockchain Constants
# ========================================================================

MOCK_PAYER_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
MOCK_OTHER_PRIVATE_KEY = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcdefabcd"

MOCK_PAYER_ADDRESS = Account.from_key(MOCK_PAYER_PRIVATE_KEY).address
MOCK_OTHER_ADDRESS = Account.from_key(MOCK_OTHER_PRIVATE_KEY).address

MOCK_SELLER_ADDRESS = AsyncWeb3.to_checksum_address("0x069b0687c879b8e9633fb9bfec3fea684bc238d5")
MOCK_WRONG_ADDRESS = AsyncWeb3.to_checksum_address("0x1234567890123456789012345678901234567890")

# Base Sepolia USDC
MOCK_USDC_BASE_SEPOLIA = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"

MOCK_CHAIN_ID_BASE_SEPOLIA = 84532

MOCK_GAS_PRICE = 1_000_000_000
MOCK_TOKEN_GAS = 52_000

MOCK_FACILITATOR_URL = "https://facilitator.test"

MOCK_MISSING_TX_HASH = "0x" + "ab" * 32


def make_settings(**overrides: Any) -> Settings:
    """Settings with the test payer key and a fake facilitator."""
    values: Dict[str, Any] = {
        "private_key": MOCK_PAYER_PRIVATE_KEY,
        "facilitator_url": MOCK_FACILITATOR_URL,
        "receipt_timeout": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


# ========================================================================
# Raw transaction decoding
# ========================================================================

def decode_raw_transaction(raw: bytes) -> Dict[str, Any]:
    """
    Decode a signed legacy (EIP-155) transaction into RPC-style fields.

    Returns the fields ``eth_getTransactionByHash`` would return, with the
    sender recovered from the signature.
    """
    nonce, gas_price, gas, to, value, data, v, r, s = rlp.decode(bytes(raw))
    return {
        "hash": "0x" + keccak(bytes(raw)).hex(),
        "nonce": big_endian_to_int(nonce),
        "gasPrice": big_endian_to_int(gas_price),
        "gas": big_endian_to_int(gas),
        "to": AsyncWeb3.to_checksum_address(to) if to else None,
        "value": big_endian_to_int(value),
        "input": "0x" + data.hex(),
        "v": big_endian_to_int(v),
        "from": Account.recover_transaction(bytes(raw)),
    }


# ========================================================================
# Fake chain client
# ========================================================================

class FakeChainClient(EVMChainClient):
    """
    In-memory chain bound to one ChainInfo.

    Accepted transactions are stored and immediately "mined" with
    ``receipt_status``. ``rejections`` is a queue of exceptions raised by
    successive submissions before any transaction is accepted.

    Args:
        chain: Chain metadata.
        confirmed_nonce: Value served for the confirmed view.
        pending_nonce: Value served for the pending view (defaults to confirmed).
        rejections: Exceptions raised by the next submissions, in order.
        bump_confirmed_on_reject: Added to the confirmed nonce on each rejection,
            simulating another process consuming nonces with the same key.
        receipt_status: Status of every produced receipt.
        mine: When False, submissions are accepted but never produce a receipt.
    """

    def __init__(
        self,
        chain: ChainInfo,
        confirmed_nonce: int = 0,
        pending_nonce: Optional[int] = None,
        rejections: Optional[List[Exception]] = None,
        bump_confirmed_on_reject: int = 0,
        receipt_status: int = 1,
        mine: bool = True,
    ):
        super().__init__(chain, web3=Mock())
        self.confirmed_nonce = confirmed_nonce
        self.pending_nonce = confirmed_nonce if pending_nonce is None else pending_nonce
        self.rejections = list(rejections or [])
        self.bump_confirmed_on_reject = bump_confirmed_on_reject
        self.receipt_status = receipt_status
        self.mine = mine

        self.submit_calls = 0
        self.submitted: List[Dict[str, Any]] = []
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.estimate_calls: List[Dict[str, Any]] = []

    async def get_nonce(self, address: str, view: NonceView = NonceView.CONFIRMED) -> int:
        # yield so concurrent issuers interleave here
        await asyncio.sleep(0)
        return self.confirmed_nonce if view == NonceView.CONFIRMED else self.pending_nonce

    async def get_gas_price(self) -> int:
        return MOCK_GAS_PRICE

    async def get_block_number(self) -> int:
        return 100

    async def estimate_gas(self, from_address: str, to: str, data: str, value: int = 0) -> int:
        self.estimate_calls.append({"from": from_address, "to": to, "data": data, "value": value})
        return MOCK_TOKEN_GAS

    async def submit_signed_transaction(self, raw_transaction: bytes) -> str:
        self.submit_calls += 1
        await asyncio.sleep(0)
        if self.rejections:
            self.confirmed_nonce += self.bump_confirmed_on_reject
            raise self.rejections.pop(0)

        tx = decode_raw_transaction(raw_transaction)
        tx_hash = tx["hash"]
        self.submitted.append(tx)
        self.transactions[tx_hash] = tx
        self.pending_nonce = max(self.pending_nonce, tx["nonce"] + 1)
        if self.mine:
            self.receipts[tx_hash] = {
                "transactionHash": tx_hash,
                "status": self.receipt_status,
                "blockNumber": 101,
            }
        return tx_hash

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.transactions.get(tx_hash)

    async def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.receipts.get(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: float, poll_interval: float = 0.0) -> Dict[str, Any]:
        receipt = self.receipts.get(tx_hash)
        if receipt is None:
            raise ReceiptTimeoutError(tx_hash, timeout)
        return receipt


# ========================================================================
# Facilitator transport
# ========================================================================

class FacilitatorRecorder:
    """
    ``httpx.MockTransport`` handler answering /verify and /settle.

    Attributes:
        calls: (path, json body) of every request received
    """

    def __init__(
        self,
        verify_response: Optional[Dict[str, Any]] = None,
        settle_response: Optional[Dict[str, Any]] = None,
        verify_status: int = 200,
        settle_status: int = 200,
    ):
        self.verify_response = verify_response or {"isValid": True, "payer": MOCK_PAYER_ADDRESS}
        self.settle_response = settle_response or {
            "success": True,
            "transaction": "0x" + "cd" * 32,
            "network": "base-sepolia",
            "payer": MOCK_PAYER_ADDRESS,
        }
        self.verify_status = verify_status
        self.settle_status = settle_status
        self.calls: List[tuple] = []

    @property
    def paths(self) -> List[str]:
        return [path for path, _ in self.calls]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content.decode("utf-8"))
        self.calls.append((request.url.path, body))
        if request.url.path.endswith("/verify"):
            return httpx.Response(self.verify_status, json=self.verify_response)
        if request.url.path.endswith("/settle"):
            return httpx.Response(self.settle_status, json=self.settle_response)
        return httpx.Response(404, json={"error": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def failing_transport(error: Callable[[httpx.Request], Exception]) -> httpx.MockTransport:
    """Transport raising ``error(request)`` for every request."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise error(request)
    return httpx.MockTransport(handler)
