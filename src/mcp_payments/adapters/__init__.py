from .adapters_hub import PaymentsHub
from .bases import PaymentVerifier
from .registry import (
    Chain,
    Currency,
    PaymentMethod,
    ChainInfo,
    CurrencyInfo,
    ResolvedMethod,
    get_chain_info,
    resolve_currency,
    resolve_method,
    list_payment_methods,
    amount_to_units,
    units_to_amount,
)
from .evm import (
    EVMChainClient,
    PaymentIssuer,
    PaymentRequest,
    IssuedPayment,
    TransferEvent,
    ReceiptVerifier,
)
from .facilitator import FacilitatorClient, FacilitatorVerifier, build_authorization

__all__ = [
    "PaymentsHub",
    "PaymentVerifier",
    "Chain",
    "Currency",
    "PaymentMethod",
    "ChainInfo",
    "CurrencyInfo",
    "ResolvedMethod",
    "get_chain_info",
    "resolve_currency",
    "resolve_method",
    "list_payment_methods",
    "amount_to_units",
    "units_to_amount",
    "EVMChainClient",
    "PaymentIssuer",
    "PaymentRequest",
    "IssuedPayment",
    "TransferEvent",
    "ReceiptVerifier",
    "FacilitatorClient",
    "FacilitatorVerifier",
    "build_authorization",
]
