"""Settlement: оркестрация deposit / withdraw / swap над vault."""

from .service import VaultSettlementService

__all__ = [
    "VaultSettlementService",
]
