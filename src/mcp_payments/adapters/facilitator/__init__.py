from .client import FacilitatorClient
from .signatures import build_authorization, build_payment_requirements, parse_money
from .verifier import FacilitatorVerifier

__all__ = [
    "FacilitatorClient",
    "build_authorization",
    "build_payment_requirements",
    "parse_money",
    "FacilitatorVerifier",
]
