"""
x402 Facilitator HTTP Client

Posts verification and settlement requests to a facilitator service.
Every request uses an explicit timeout; transport failures, non-200 answers
and malformed bodies are raised as ``FacilitatorError``.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ...engine.exceptions import FacilitatorError
from ...schemas.https import (
    FacilitatorRequest,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


class FacilitatorClient:
    """
    Client for a facilitator's ``/verify`` and ``/settle`` endpoints.

    Usage:
        ```python
        client = FacilitatorClient("https://x402.org/facilitator", timeout=30)
        verdict = await client.verify(payload, requirements)
        if verdict.is_valid:
            receipt = await client.settle(payload, requirements)
        ```
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            url: Facilitator base URL.
            timeout: Request timeout in seconds.
            transport: Custom httpx transport (tests pass ``httpx.MockTransport``).
        """
        self.url = url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """Ask the facilitator whether ``payload`` satisfies ``requirements``."""
        data = await self._post("verify", payload, requirements)
        return self._parse(VerifyResponse, data, "verify")

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """Ask the facilitator to redeem ``payload`` on-chain."""
        data = await self._post("settle", payload, requirements)
        return self._parse(SettleResponse, data, "settle")

    # =========================================================================
    # Internals
    # =========================================================================

    async def _post(
        self,
        endpoint: str,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> Dict[str, Any]:
        body = FacilitatorRequest(
            payment_payload=payload,
            payment_requirements=requirements,
        ).to_wire()
        url = f"{self.url}/{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=body)
        except httpx.HTTPError as e:
            logger.warning("Facilitator %s request failed: %s", endpoint, e)
            raise FacilitatorError(f"Failed to {endpoint} payment: {e}") from e

        if response.status_code != 200:
            logger.warning(
                "Facilitator %s answered %d: %s", endpoint, response.status_code, response.text[:200]
            )
            raise FacilitatorError(
                f"Failed to {endpoint} payment: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise FacilitatorError(f"Facilitator {endpoint} returned invalid JSON") from e

    @staticmethod
    def _parse(model, data: Dict[str, Any], endpoint: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise FacilitatorError(f"Unexpected facilitator {endpoint} response: {e}") from e
