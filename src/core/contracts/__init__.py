"""
Contract Validation Module

Модуль для валидации JSON контрактов движка vault.
"""

from .validators import (
    ContractValidator,
    SettlementValidator,
    VaultSnapshotValidator,
    load_schema,
    validate_settlement,
    validate_vault_snapshot,
)

__all__ = [
    # Classes
    "ContractValidator",
    "VaultSnapshotValidator",
    "SettlementValidator",
    # Functions
    "load_schema",
    "validate_vault_snapshot",
    "validate_settlement",
]
