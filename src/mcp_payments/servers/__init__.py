from .service import MonetizedService

__all__ = [
    "MonetizedService",
]
