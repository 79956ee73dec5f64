"""
Domain models and value objects.

Contains fundamental domain entities: AssetDescriptor, PriceQuote, VaultLedger,
settlement instructions and engine results.
"""

from src.core.domain.asset import AssetDescriptor
from src.core.domain.price import PriceQuote
from src.core.domain.settlement import (
    BurnInstruction,
    CollectInstruction,
    DepositSettlement,
    MintInstruction,
    MintQuote,
    PayoutInstruction,
    PayoutLeg,
    PayoutTransfer,
    SettlementInstruction,
    SwapInstruction,
    SwapSettlement,
    WithdrawalQuote,
    WithdrawalSettlement,
)
from src.core.domain.vault import (
    AssetBalanceView,
    HolderRecord,
    VaultAssetEntry,
    VaultLedger,
    VaultSnapshot,
)

__all__ = [
    # Assets & prices
    "AssetDescriptor",
    "PriceQuote",
    # Vault state
    "AssetBalanceView",
    "HolderRecord",
    "VaultAssetEntry",
    "VaultLedger",
    "VaultSnapshot",
    # Instructions
    "CollectInstruction",
    "MintInstruction",
    "BurnInstruction",
    "PayoutTransfer",
    "PayoutInstruction",
    "SwapInstruction",
    "SettlementInstruction",
    # Engine results
    "MintQuote",
    "PayoutLeg",
    "WithdrawalQuote",
    # Settlement results
    "DepositSettlement",
    "WithdrawalSettlement",
    "SwapSettlement",
]
