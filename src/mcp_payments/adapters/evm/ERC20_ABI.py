"""
ERC-20 ABI fragments

Only the pieces needed to move tokens and read their history:
``transfer(address,uint256)`` and the ``Transfer`` event. Call data and
logs are encoded/decoded with eth_abi against these type lists.

Usage:
    from .ERC20_ABI import TRANSFER_SELECTOR, TRANSFER_ARG_TYPES

    data = TRANSFER_SELECTOR + eth_abi.encode(TRANSFER_ARG_TYPES, [to, units])
"""

from typing import List

from eth_utils import keccak


#: 4-byte selector of ``transfer(address,uint256)`` (0xa9059cbb).
TRANSFER_SELECTOR: bytes = keccak(text="transfer(address,uint256)")[:4]

#: Argument types of ``transfer``.
TRANSFER_ARG_TYPES: List[str] = ["address", "uint256"]

#: topic0 of ``Transfer(address indexed from, address indexed to, uint256 value)``.
TRANSFER_EVENT_TOPIC: bytes = keccak(text="Transfer(address,address,uint256)")

#: Non-indexed data types of the ``Transfer`` event.
TRANSFER_EVENT_DATA_TYPES: List[str] = ["uint256"]
