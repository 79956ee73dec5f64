"""
VaultStore — явное хранилище vault (symbol → VaultLedger)

Заменяет неявное глобальное состояние: владеет всеми VaultLedger deployment
и выдаёт per-vault lock для сериализации settlement-операций.

ИНВАРИАНТЫ:
1. Символ vault уникален и непуст, длина в пределах лимитов
2. Имя vault непусто, длина в пределах лимитов
3. Идентификатор vault детерминирован: sha3_256(creator::symbol)
"""

import hashlib
import logging
import threading
from typing import Optional

from src.core.config import DEFAULT_CONFIG, VaultEngineConfig
from src.core.domain.vault import VaultLedger
from src.core.errors import DuplicateVault, InvalidName, VaultNotFound

_LOG = logging.getLogger(__name__)


def derive_vault_id(creator: str, symbol: str) -> str:
    """Детерминированный идентификатор vault."""
    return hashlib.sha3_256(f"{creator}::{symbol}".encode("utf-8")).hexdigest()


class VaultStore:
    """Хранилище VaultLedger с point lookup по символу."""

    def __init__(self, config: Optional[VaultEngineConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self._vaults: dict[str, VaultLedger] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def validate_name(self, name: str, symbol: str) -> None:
        """
        Raises:
            InvalidName: Пустые или слишком длинные name/symbol
        """
        if not name or len(name) > self.config.max_vault_name_length:
            raise InvalidName(
                f"vault name length must be in [1, {self.config.max_vault_name_length}], "
                f"got {len(name or '')}"
            )
        if not symbol or len(symbol) > self.config.max_vault_symbol_length:
            raise InvalidName(
                f"vault symbol length must be in [1, {self.config.max_vault_symbol_length}], "
                f"got {len(symbol or '')}"
            )

    def create_vault(
        self, creator: str, name: str, symbol: str, ts_utc_ms: int
    ) -> VaultLedger:
        """
        Регистрация нового vault.

        Raises:
            InvalidName: Невалидное имя/символ
            DuplicateVault: Символ уже занят (существующий vault не меняется)
        """
        self.validate_name(name, symbol)

        with self._guard:
            if symbol in self._vaults:
                raise DuplicateVault(f"vault {symbol} already exists")

            ledger = VaultLedger(
                creator=creator,
                name=name,
                symbol=symbol,
                vault_id=derive_vault_id(creator, symbol),
                created_ts_utc_ms=ts_utc_ms,
            )
            self._vaults[symbol] = ledger
            self._locks[symbol] = threading.RLock()

        _LOG.info("vault created: symbol=%s name=%s creator=%s", symbol, name, creator)
        return ledger

    def get(self, symbol: str) -> VaultLedger:
        """
        Raises:
            VaultNotFound: Неизвестный символ
        """
        ledger = self._vaults.get(symbol)
        if ledger is None:
            raise VaultNotFound(f"vault {symbol} not found")
        return ledger

    def lock(self, symbol: str) -> threading.RLock:
        """Lock, сериализующий все изменения одного vault."""
        self.get(symbol)
        return self._locks[symbol]

    def list_vaults(self) -> list[VaultLedger]:
        return list(self._vaults.values())

    def __len__(self) -> int:
        return len(self._vaults)
