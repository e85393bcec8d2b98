"""
EIP-712 / ERC-3009 typed data

Dataclasses describing the ``TransferWithAuthorization`` message a buyer
signs for the x402 "exact" scheme, and the token domain it is bound to.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


#: EIP-712 type definitions of an ERC-3009 transfer authorization.
TRANSFER_WITH_AUTHORIZATION_TYPES: Dict[str, List[Dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


@dataclass(frozen=True)
class EIP712Domain:
    """Domain of an ERC-3009 token: one contract on one chain."""
    name: str
    version: str
    chainId: int
    verifyingContract: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TransferWithAuthorizationMessage:
    """
    ``TransferWithAuthorization`` message.

    The payer is ``authorizer`` here since ``from`` is reserved in Python;
    ``to_dict()`` restores the typed-data field names.

    Attributes:
        authorizer: Payer address (`from`).
        recipient: Payee address (`to`).
        value: Amount in smallest units.
        validAfter: Unix time the authorization becomes usable.
        validBefore: Unix time it expires.
        nonce: Random bytes32 as 0x-prefixed hex.
    """
    authorizer: str
    recipient: str
    value: int
    validAfter: int
    validBefore: int
    nonce: str

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["from"] = data.pop("authorizer")
        data["to"] = data.pop("recipient")
        return data


@dataclass
class ERC3009TypedData:
    """
    Signable envelope; ``to_dict()`` is the ``full_message`` argument of
    ``Account.sign_typed_data``.
    """
    domain: EIP712Domain
    message: TransferWithAuthorizationMessage
    primary_type: str = "TransferWithAuthorization"
    types: Dict[str, List[Dict[str, str]]] = field(
        default_factory=lambda: {k: list(v) for k, v in TRANSFER_WITH_AUTHORIZATION_TYPES.items()}
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "types": self.types,
            "primaryType": self.primary_type,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }
