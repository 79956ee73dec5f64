"""Registries: поддерживаемые активы и хранилище vault."""

from .asset_registry import AssetRegistry
from .vault_store import VaultStore, derive_vault_id

__all__ = [
    "AssetRegistry",
    "VaultStore",
    "derive_vault_id",
]
