"""
Runtime configuration for mcp-payments.

Settings are read from the process environment (a ``.env`` file in the
working directory is loaded first via python-dotenv). Everything has a
conservative default except the signing key, which is only required when a
payment is actually issued or an authorization is signed.

Environment Variables:
    - EVM_PRIVATE_KEY: Payer key used for issuance and authorization signing
      (``LOCAL_WALLET_PRIVATE_KEY`` is accepted as a fallback)
    - RPC_URL_BASE_SEPOLIA / RPC_URL_BASE_MAINNET / RPC_URL_SOLANA: RPC overrides
    - TOKEN_ADDRESS_<METHOD>: Token contract override, e.g.
      TOKEN_ADDRESS_USDC_BASE_SEPOLIA
    - X402_FACILITATOR_URL: Facilitator base URL
    - RPC_REQUEST_TIMEOUT: Per-request timeout (seconds) for RPC and HTTP calls
    - RECEIPT_TIMEOUT: Seconds to wait for a receipt after submission
    - WAIT_FOR_RECEIPT: Whether issuance waits for the receipt
    - EMBED_ORDER_METADATA: Whether native transfers carry order metadata as data
    - LOG_LEVEL: Logging level for ``setup_logger``
"""

import os
from typing import Dict, Mapping, Optional

import dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .engine.exceptions import ConfigurationError


DEFAULT_FACILITATOR_URL = "https://x402.org/facilitator"

_RPC_ENV_KEYS = {
    "base-sepolia": "RPC_URL_BASE_SEPOLIA",
    "base-mainnet": "RPC_URL_BASE_MAINNET",
    "solana": "RPC_URL_SOLANA",
}

_TOKEN_ENV_PREFIX = "TOKEN_ADDRESS_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _parse_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


class Settings(BaseModel):
    """
    Process-wide settings for issuance, verification and settlement.

    Attributes:
        private_key: Payer signing key; never logged or serialized in clear
        rpc_urls: Chain value -> RPC URL overrides
        token_addresses: PaymentMethod value -> token contract overrides
        facilitator_url: Base URL of the x402 facilitator
        request_timeout: Timeout in seconds for each RPC or HTTP request
        receipt_timeout: Seconds to wait for a receipt after submission
        wait_for_receipt: Wait for the receipt before reporting issuance
        embed_order_metadata: Attach order metadata to native transfers
        log_level: Level passed to ``setup_logger``
    """

    model_config = ConfigDict(frozen=True)

    private_key: Optional[SecretStr] = Field(None, description="Payer private key (0x-prefixed hex)")
    rpc_urls: Dict[str, str] = Field(default_factory=dict, description="RPC URL overrides per chain")
    token_addresses: Dict[str, str] = Field(default_factory=dict, description="Token address overrides per method")
    facilitator_url: str = Field(DEFAULT_FACILITATOR_URL, description="x402 facilitator base URL")
    request_timeout: float = Field(30.0, gt=0, description="Per-request timeout (seconds)")
    receipt_timeout: float = Field(120.0, gt=0, description="Receipt wait timeout (seconds)")
    wait_for_receipt: bool = Field(True, description="Wait for receipt after submission")
    embed_order_metadata: bool = Field(True, description="Embed order metadata in native transfers")
    log_level: str = Field("INFO", description="Logging level")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, load_dotenv: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (used by tests).
            load_dotenv: Load a ``.env`` file into ``os.environ`` first.

        Returns:
            Settings: Parsed settings.

        Raises:
            ConfigurationError: If a numeric or boolean variable is malformed.
        """
        if load_dotenv and environ is None:
            dotenv.load_dotenv()
        env = os.environ if environ is None else environ

        data: Dict[str, object] = {}

        key = env.get("EVM_PRIVATE_KEY") or env.get("LOCAL_WALLET_PRIVATE_KEY")
        if key:
            data["private_key"] = SecretStr(key.strip())

        data["rpc_urls"] = {
            chain: env[var] for chain, var in _RPC_ENV_KEYS.items() if env.get(var)
        }
        data["token_addresses"] = {
            var[len(_TOKEN_ENV_PREFIX):]: value
            for var, value in env.items()
            if var.startswith(_TOKEN_ENV_PREFIX) and value
        }

        if env.get("X402_FACILITATOR_URL"):
            data["facilitator_url"] = env["X402_FACILITATOR_URL"].rstrip("/")
        if env.get("RPC_REQUEST_TIMEOUT"):
            data["request_timeout"] = _parse_float("RPC_REQUEST_TIMEOUT", env["RPC_REQUEST_TIMEOUT"])
        if env.get("RECEIPT_TIMEOUT"):
            data["receipt_timeout"] = _parse_float("RECEIPT_TIMEOUT", env["RECEIPT_TIMEOUT"])
        if env.get("WAIT_FOR_RECEIPT"):
            data["wait_for_receipt"] = _parse_bool("WAIT_FOR_RECEIPT", env["WAIT_FOR_RECEIPT"])
        if env.get("EMBED_ORDER_METADATA"):
            data["embed_order_metadata"] = _parse_bool("EMBED_ORDER_METADATA", env["EMBED_ORDER_METADATA"])
        if env.get("LOG_LEVEL"):
            data["log_level"] = env["LOG_LEVEL"]

        return cls(**data)

    def require_private_key(self) -> str:
        """
        Return the signing key in clear text.

        Raises:
            ConfigurationError: If no key is configured.
        """
        if self.private_key is None:
            raise ConfigurationError(
                "No signing key configured; set EVM_PRIVATE_KEY"
            )
        return self.private_key.get_secret_value()
