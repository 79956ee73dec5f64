"""
VaultLedger — состояние vault

Содержит:
- Балансы активов под управлением (по одной записи на type_id, создаётся лениво)
- Множество держателей shares с временем последнего депозита
- Метаданные vault (создатель, имя, символ, идентификатор)

Балансы меняются только через settlement-операции. Порядок активов —
порядок первого поступления; он же задаёт порядок вектора котировок.
"""

import copy
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

from src.core.errors import InsufficientLiquidity
from src.core.math.fixed_point import validate_u128


# =============================================================================
# ЗАПИСИ
# =============================================================================


@dataclass
class VaultAssetEntry:
    """Баланс одного актива в vault (в минимальных единицах)."""

    type_id: str
    decimals: int
    balance: int = 0


class HolderRecord(BaseModel):
    """Запись держателя shares."""

    holder: str = Field(..., min_length=1)
    last_deposit_ts_utc_ms: int = Field(..., ge=0)

    model_config = {"frozen": True}


class AssetBalanceView(BaseModel):
    """Проекция VaultAssetEntry для query-поверхности."""

    type_id: str = Field(..., min_length=1)
    decimals: int = Field(..., ge=0)
    balance: int = Field(..., ge=0)

    model_config = {"frozen": True}


class VaultSnapshot(BaseModel):
    """Read-only снапшот vault (контракт vault_snapshot)."""

    symbol: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    vault_id: str = Field(..., min_length=1)
    creator: str = Field(..., min_length=1)
    created_ts_utc_ms: int = Field(..., ge=0)
    shares_symbol: str = Field(..., min_length=1)
    assets: list[AssetBalanceView] = Field(default_factory=list)
    holders: list[HolderRecord] = Field(default_factory=list)

    model_config = {"frozen": True}


# =============================================================================
# LEDGER
# =============================================================================


class VaultLedger:
    """
    Изменяемое состояние одного vault.

    Активы хранятся в dict по type_id (O(1) lookup, порядок вставки сохраняется).
    Конкурентный доступ сериализуется снаружи (VaultStore.lock).
    """

    def __init__(
        self,
        creator: str,
        name: str,
        symbol: str,
        vault_id: str,
        created_ts_utc_ms: int,
    ):
        self.creator = creator
        self.name = name
        self.symbol = symbol
        self.vault_id = vault_id
        self.created_ts_utc_ms = created_ts_utc_ms
        # shares-токен vault выпускается под символом самого vault
        self.shares_symbol = symbol

        self._entries: dict[str, VaultAssetEntry] = {}
        self._holders: dict[str, HolderRecord] = {}

    # -------------------------------------------------------------------------
    # Активы
    # -------------------------------------------------------------------------

    @property
    def entries(self) -> list[VaultAssetEntry]:
        """Записи активов в порядке первого поступления."""
        return list(self._entries.values())

    @property
    def asset_type_ids(self) -> list[str]:
        return list(self._entries.keys())

    def entry(self, type_id: str) -> Optional[VaultAssetEntry]:
        return self._entries.get(type_id)

    def has_asset(self, type_id: str) -> bool:
        return type_id in self._entries

    def balance_of(self, type_id: str) -> int:
        entry = self._entries.get(type_id)
        return entry.balance if entry is not None else 0

    def credit(self, type_id: str, decimals: int, amount: int) -> VaultAssetEntry:
        """
        Зачисление актива (запись создаётся при первом поступлении).

        Raises:
            ValueError: Если amount отрицательный или decimals не совпадает
            ArithmeticOverflow: Если новый баланс выходит за u128
        """
        validate_u128(amount, "amount")

        entry = self._entries.get(type_id)
        if entry is None:
            entry = VaultAssetEntry(type_id=type_id, decimals=decimals)
            self._entries[type_id] = entry
        elif entry.decimals != decimals:
            raise ValueError(
                f"decimals mismatch for {type_id}: ledger={entry.decimals}, got={decimals}"
            )

        entry.balance = validate_u128(entry.balance + amount, f"balance[{type_id}]")
        return entry

    def debit(self, type_id: str, amount: int) -> VaultAssetEntry:
        """
        Списание актива.

        Raises:
            InsufficientLiquidity: Если актива нет в vault или баланс меньше amount
        """
        validate_u128(amount, "amount")

        entry = self._entries.get(type_id)
        available = entry.balance if entry is not None else 0
        if entry is None or available < amount:
            raise InsufficientLiquidity(
                f"vault {self.symbol} holds {available} of {type_id}, requested {amount}"
            )

        entry.balance -= amount
        return entry

    # -------------------------------------------------------------------------
    # Держатели
    # -------------------------------------------------------------------------

    def holders(self) -> list[HolderRecord]:
        return list(self._holders.values())

    def is_holder(self, holder: str) -> bool:
        return holder in self._holders

    def touch_holder(self, holder: str, ts_utc_ms: int) -> HolderRecord:
        """Добавление держателя или обновление времени последнего депозита."""
        record = HolderRecord(holder=holder, last_deposit_ts_utc_ms=ts_utc_ms)
        self._holders[holder] = record
        return record

    def remove_holder(self, holder: str) -> bool:
        return self._holders.pop(holder, None) is not None

    # -------------------------------------------------------------------------
    # Снапшоты
    # -------------------------------------------------------------------------

    def snapshot(self) -> VaultSnapshot:
        return VaultSnapshot(
            symbol=self.symbol,
            name=self.name,
            vault_id=self.vault_id,
            creator=self.creator,
            created_ts_utc_ms=self.created_ts_utc_ms,
            shares_symbol=self.shares_symbol,
            assets=[
                AssetBalanceView(type_id=e.type_id, decimals=e.decimals, balance=e.balance)
                for e in self._entries.values()
            ],
            holders=self.holders(),
        )

    def checkpoint(self) -> tuple[dict[str, VaultAssetEntry], dict[str, HolderRecord]]:
        """Копия изменяемого состояния для отката."""
        return copy.deepcopy(self._entries), dict(self._holders)

    def rollback(
        self, state: tuple[dict[str, VaultAssetEntry], dict[str, HolderRecord]]
    ) -> None:
        entries, holders = state
        self._entries = entries
        self._holders = holders
