"""
Asset Registry

Static mapping from a payment method to the chain it settles on and the
asset it moves. The set of methods is a closed enumeration; the lookup table
is checked for completeness at import time, so adding a ``PaymentMethod``
member without a table row fails immediately.

Key Features:
    - PaymentMethod / Chain / Currency enumerations
    - Chain metadata (chain id, default RPC, explorer URL, x402 network name)
    - Chain-specific token contract addresses and EIP-712 domains
    - Floor conversion between human amounts and smallest units (Decimal only)

Example:
    resolved = resolve_method("USDC_BASE_SEPOLIA")
    resolved.chain.chain_id          # 84532
    resolved.currency.decimals       # 6
    amount_to_units("0.5", 6)        # 500000
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from enum import Enum
from typing import Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..engine.exceptions import InvalidAmountError, UnknownMethodError


class Chain(str, Enum):
    """Supported chains."""
    BASE_SEPOLIA = "base-sepolia"
    BASE_MAINNET = "base-mainnet"
    SOLANA = "solana"


class Currency(str, Enum):
    """Supported assets."""
    ETH = "ETH"
    USDC = "USDC"
    USDT = "USDT"
    SOL = "SOL"


class PaymentMethod(str, Enum):
    """
    Closed set of payment methods: one asset on one chain.

    The member value is the identifier exchanged with callers.
    """
    ETH_BASE_SEPOLIA = "ETH_BASE_SEPOLIA"
    USDC_BASE_SEPOLIA = "USDC_BASE_SEPOLIA"
    USDT_BASE_SEPOLIA = "USDT_BASE_SEPOLIA"
    ETH_BASE_MAINNET = "ETH_BASE_MAINNET"
    USDC_BASE_MAINNET = "USDC_BASE_MAINNET"
    USDT_BASE_MAINNET = "USDT_BASE_MAINNET"
    SOL_SOLANA = "SOL_SOLANA"
    USDC_SOLANA = "USDC_SOLANA"
    USDT_SOLANA = "USDT_SOLANA"


class ChainInfo(BaseModel):
    """
    Chain metadata.

    Attributes:
        chain: Chain identifier
        kind: "evm" for EVM chains, "svm" for Solana
        chain_id: Numeric EVM chain id (None for non-EVM chains)
        rpc_url: Default public RPC endpoint (sandbox or public network)
        explorer_tx_url: Explorer URL template with a ``{tx_hash}`` placeholder
        x402_network: Network name used by x402 facilitators, if any
    """
    model_config = ConfigDict(frozen=True)

    chain: Chain
    kind: Literal["evm", "svm"]
    chain_id: Optional[int] = None
    rpc_url: str
    explorer_tx_url: str
    x402_network: Optional[str] = None

    @property
    def is_evm(self) -> bool:
        return self.kind == "evm"

    def explorer_url(self, tx_hash: str) -> str:
        return self.explorer_tx_url.format(tx_hash=tx_hash)


class CurrencyInfo(BaseModel):
    """
    Asset descriptor resolved for one chain.

    Attributes:
        symbol: Currency symbol
        decimals: Decimal precision (6, 9 or 18)
        is_native: True for the chain's base coin
        address: Token contract address on this chain (None for native assets)
        eip712_name: EIP-712 domain name for ERC-3009 tokens
        eip712_version: EIP-712 domain version for ERC-3009 tokens
    """
    model_config = ConfigDict(frozen=True)

    symbol: Currency
    decimals: int = Field(..., ge=0)
    is_native: bool
    address: Optional[str] = None
    eip712_name: Optional[str] = None
    eip712_version: Optional[str] = None

    @property
    def supports_erc3009(self) -> bool:
        return bool(self.address and self.eip712_name and self.eip712_version)


class ResolvedMethod(BaseModel):
    """A payment method together with its chain and currency."""
    model_config = ConfigDict(frozen=True)

    method: PaymentMethod
    chain: ChainInfo
    currency: CurrencyInfo


# ---------------------------------------------------------------------------
# Static tables
# ---------------------------------------------------------------------------

_CHAINS: Dict[Chain, ChainInfo] = {
    Chain.BASE_SEPOLIA: ChainInfo(
        chain=Chain.BASE_SEPOLIA,
        kind="evm",
        chain_id=84532,
        rpc_url="https://sepolia.base.org",
        explorer_tx_url="https://base-sepolia.blockscout.com/tx/{tx_hash}",
        x402_network="base-sepolia",
    ),
    Chain.BASE_MAINNET: ChainInfo(
        chain=Chain.BASE_MAINNET,
        kind="evm",
        chain_id=8453,
        rpc_url="https://mainnet.base.org",
        explorer_tx_url="https://base.blockscout.com/tx/{tx_hash}",
        x402_network="base",
    ),
    Chain.SOLANA: ChainInfo(
        chain=Chain.SOLANA,
        kind="svm",
        rpc_url="https://api.devnet.solana.com",
        explorer_tx_url="https://explorer.solana.com/tx/{tx_hash}?cluster=devnet",
    ),
}

# (decimals, is_native)
_CURRENCY_PRECISION: Dict[Currency, Tuple[int, bool]] = {
    Currency.ETH: (18, True),
    Currency.USDC: (6, False),
    Currency.USDT: (6, False),
    Currency.SOL: (9, True),
}

# (chain, currency) -> (address, eip712 name, eip712 version)
_TOKEN_DEPLOYMENTS: Dict[Tuple[Chain, Currency], Tuple[str, Optional[str], Optional[str]]] = {
    (Chain.BASE_SEPOLIA, Currency.USDC): ("0x036CbD53842c5426634e7929541eC2318f3dCF7e", "USDC", "2"),
    (Chain.BASE_SEPOLIA, Currency.USDT): ("0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb", None, None),
    (Chain.BASE_MAINNET, Currency.USDC): ("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "USD Coin", "2"),
    (Chain.BASE_MAINNET, Currency.USDT): ("0xfde4C96256153236af98292015BA95836c75af0a", None, None),
    (Chain.SOLANA, Currency.USDC): ("4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU", None, None),
    (Chain.SOLANA, Currency.USDT): ("Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", None, None),
}

_METHOD_TABLE: Dict[PaymentMethod, Tuple[Chain, Currency]] = {
    PaymentMethod.ETH_BASE_SEPOLIA: (Chain.BASE_SEPOLIA, Currency.ETH),
    PaymentMethod.USDC_BASE_SEPOLIA: (Chain.BASE_SEPOLIA, Currency.USDC),
    PaymentMethod.USDT_BASE_SEPOLIA: (Chain.BASE_SEPOLIA, Currency.USDT),
    PaymentMethod.ETH_BASE_MAINNET: (Chain.BASE_MAINNET, Currency.ETH),
    PaymentMethod.USDC_BASE_MAINNET: (Chain.BASE_MAINNET, Currency.USDC),
    PaymentMethod.USDT_BASE_MAINNET: (Chain.BASE_MAINNET, Currency.USDT),
    PaymentMethod.SOL_SOLANA: (Chain.SOLANA, Currency.SOL),
    PaymentMethod.USDC_SOLANA: (Chain.SOLANA, Currency.USDC),
    PaymentMethod.USDT_SOLANA: (Chain.SOLANA, Currency.USDT),
}


def _check_tables() -> None:
    missing = [m.value for m in PaymentMethod if m not in _METHOD_TABLE]
    if missing:
        raise RuntimeError(f"Payment methods without a registry entry: {missing}")
    for method, (chain, currency) in _METHOD_TABLE.items():
        _, is_native = _CURRENCY_PRECISION[currency]
        if chain not in _CHAINS:
            raise RuntimeError(f"{method.value}: chain {chain.value} is not described")
        if not is_native and (chain, currency) not in _TOKEN_DEPLOYMENTS:
            raise RuntimeError(f"{method.value}: no {currency.value} deployment on {chain.value}")


_check_tables()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def _coerce_method(method: Union[PaymentMethod, str]) -> PaymentMethod:
    if isinstance(method, PaymentMethod):
        return method
    try:
        return PaymentMethod(str(method).strip().upper())
    except ValueError:
        raise UnknownMethodError(method) from None


def _coerce_chain(chain: Union[Chain, str]) -> Chain:
    try:
        return chain if isinstance(chain, Chain) else Chain(str(chain).strip().lower())
    except ValueError:
        raise UnknownMethodError(chain) from None


def get_chain_info(chain: Union[Chain, str]) -> ChainInfo:
    """Return the metadata of a chain."""
    return _CHAINS[_coerce_chain(chain)]


def resolve_currency(
    currency: Union[Currency, str],
    chain: Union[Chain, str],
    token_override: Optional[str] = None,
) -> CurrencyInfo:
    """
    Resolve an asset on a specific chain.

    Args:
        currency: Currency symbol.
        chain: Chain the asset lives on.
        token_override: Contract address replacing the built-in one.

    Returns:
        CurrencyInfo: Decimals, native flag and (for tokens) contract address.

    Raises:
        UnknownMethodError: If the currency is not deployed on the chain.
    """
    chain = _coerce_chain(chain)
    try:
        currency = currency if isinstance(currency, Currency) else Currency(str(currency).strip().upper())
    except ValueError:
        raise UnknownMethodError(currency) from None

    decimals, is_native = _CURRENCY_PRECISION[currency]
    if is_native:
        return CurrencyInfo(symbol=currency, decimals=decimals, is_native=True)

    deployment = _TOKEN_DEPLOYMENTS.get((chain, currency))
    if deployment is None:
        raise UnknownMethodError(f"{currency.value} on {chain.value}")
    address, eip712_name, eip712_version = deployment
    return CurrencyInfo(
        symbol=currency,
        decimals=decimals,
        is_native=False,
        address=token_override or address,
        eip712_name=eip712_name,
        eip712_version=eip712_version,
    )


def resolve_method(
    method: Union[PaymentMethod, str],
    token_overrides: Optional[Mapping[str, str]] = None,
) -> ResolvedMethod:
    """
    Resolve a payment method to its chain and currency.

    Args:
        method: PaymentMethod member or its string value (case-insensitive).
        token_overrides: PaymentMethod value -> token contract address.

    Returns:
        ResolvedMethod: Method with chain metadata and currency descriptor.

    Raises:
        UnknownMethodError: If the identifier is not a PaymentMethod.
    """
    method = _coerce_method(method)
    chain, currency = _METHOD_TABLE[method]
    override = (token_overrides or {}).get(method.value)
    return ResolvedMethod(
        method=method,
        chain=_CHAINS[chain],
        currency=resolve_currency(currency, chain, token_override=override),
    )


def list_payment_methods(token_overrides: Optional[Mapping[str, str]] = None) -> List[ResolvedMethod]:
    """Resolve every payment method, in enumeration order."""
    return [resolve_method(m, token_overrides) for m in PaymentMethod]


# ---------------------------------------------------------------------------
# Amount conversion
# ---------------------------------------------------------------------------

# uint256 needs 78 digits; leave room for the fractional part
_UNIT_PRECISION = 120

def to_decimal(amount: Union[Decimal, int, float, str]) -> Decimal:
    """
    Parse an amount into a finite, non-negative Decimal.

    Floats go through ``str()`` so ``0.1`` becomes ``Decimal("0.1")``.

    Raises:
        InvalidAmountError: If the amount is negative, non-finite or unparseable.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidAmountError(f"Invalid amount: {amount!r}") from e
    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise InvalidAmountError(f"Amount must be non-negative: {amount!r}")
    return value


def amount_to_units(amount: Union[Decimal, int, float, str], decimals: int) -> int:
    """
    Convert a human-readable amount into smallest units, truncating.

    ``floor(amount * 10**decimals)`` computed in Decimal; fractional smallest
    units are dropped, never rounded up.

    Args:
        amount: Human-readable amount (e.g. "0.5" USDC).
        decimals: Asset decimals.

    Returns:
        int: Smallest-unit integer value.

    Raises:
        InvalidAmountError: If the amount is negative, non-finite or unparseable.

    Example:
        amount_to_units("0.5", 6)          # 500000
        amount_to_units("0.0000009", 6)    # 0
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        scaled = to_decimal(amount).scaleb(decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def units_to_amount(units: int, decimals: int) -> Decimal:
    """Convert smallest units back to a human-readable Decimal amount."""
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        return Decimal(int(units)).scaleb(-decimals)
