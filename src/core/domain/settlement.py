"""
Settlement — инструкции для custody и результаты расчётов

Движок никогда не перемещает токены сам: он формирует инструкции
(collect / mint / burn / payout / swap), которые внешний CustodyLedger применяет
атомарно вместе с изменением балансов VaultLedger.
"""

from dataclasses import dataclass
from typing import Literal, Union

from pydantic import BaseModel, Field


# =============================================================================
# ИНСТРУКЦИИ
# =============================================================================


class CollectInstruction(BaseModel):
    """Перевод депозита от держателя в custody vault."""

    kind: Literal["collect"] = "collect"
    vault: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    type_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)

    model_config = {"frozen": True}


class MintInstruction(BaseModel):
    """Выпуск shares держателю."""

    kind: Literal["mint"] = "mint"
    vault: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)

    model_config = {"frozen": True}


class BurnInstruction(BaseModel):
    """Сжигание shares держателя."""

    kind: Literal["burn"] = "burn"
    vault: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)

    model_config = {"frozen": True}


class PayoutTransfer(BaseModel):
    type_id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)

    model_config = {"frozen": True}


class PayoutInstruction(BaseModel):
    """Выплата активов держателю из custody vault."""

    kind: Literal["payout"] = "payout"
    vault: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    transfers: list[PayoutTransfer] = Field(..., min_length=1)

    model_config = {"frozen": True}


class SwapInstruction(BaseModel):
    """Перебалансировка custody vault по результату внешнего DEX swap."""

    kind: Literal["swap"] = "swap"
    vault: str = Field(..., min_length=1)
    sell_type_id: str = Field(..., min_length=1)
    sell_amount: int = Field(..., gt=0)
    buy_type_id: str = Field(..., min_length=1)
    buy_amount: int = Field(..., gt=0)

    model_config = {"frozen": True}


SettlementInstruction = Union[
    CollectInstruction,
    MintInstruction,
    BurnInstruction,
    PayoutInstruction,
    SwapInstruction,
]


# =============================================================================
# РЕЗУЛЬТАТЫ ДВИЖКОВ
# =============================================================================


class PayoutLeg(BaseModel):
    """Один шаг withdrawal waterfall."""

    type_id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, description="Количество актива (минимальные единицы)")
    decimals: int = Field(..., ge=0)
    usd_value: int = Field(..., ge=0, description="USD вклад (точность AUM)")

    model_config = {"frozen": True}


@dataclass(frozen=True)
class MintQuote:
    """Результат IssuanceEngine."""

    minted_shares: int
    deposit_usd_value: int
    nav: int


@dataclass(frozen=True)
class WithdrawalQuote:
    """Результат RedemptionEngine."""

    legs: tuple[PayoutLeg, ...]
    shares_burned: int
    total_usd_value: int
    nav: int

    @property
    def amounts(self) -> list[int]:
        return [leg.amount for leg in self.legs]

    @property
    def decimals(self) -> list[int]:
        return [leg.decimals for leg in self.legs]

    @property
    def usd_values(self) -> list[int]:
        return [leg.usd_value for leg in self.legs]


# =============================================================================
# РЕЗУЛЬТАТЫ SETTLEMENT (контракт settlement)
# =============================================================================


class DepositSettlement(BaseModel):
    operation: Literal["deposit"] = "deposit"
    vault_symbol: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    type_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    deposit_usd_value: int = Field(..., ge=0)
    nav: int = Field(..., ge=0)
    minted_shares: int = Field(..., gt=0)
    ts_utc_ms: int = Field(..., ge=0)
    instructions: list[SettlementInstruction] = Field(default_factory=list)

    model_config = {"frozen": True}


class WithdrawalSettlement(BaseModel):
    operation: Literal["withdraw"] = "withdraw"
    vault_symbol: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    percentage_bps: int = Field(..., gt=0, le=10_000)
    shares_burned: int = Field(..., gt=0)
    nav: int = Field(..., ge=0)
    total_usd_value: int = Field(..., ge=0)
    legs: list[PayoutLeg] = Field(..., min_length=1)
    holder_removed: bool = False
    ts_utc_ms: int = Field(..., ge=0)
    instructions: list[SettlementInstruction] = Field(default_factory=list)

    model_config = {"frozen": True}


class SwapSettlement(BaseModel):
    operation: Literal["swap"] = "swap"
    vault_symbol: str = Field(..., min_length=1)
    caller: str = Field(..., min_length=1)
    sell_type_id: str = Field(..., min_length=1)
    sell_amount: int = Field(..., gt=0)
    buy_type_id: str = Field(..., min_length=1)
    buy_amount: int = Field(..., gt=0)
    ts_utc_ms: int = Field(..., ge=0)
    instructions: list[SettlementInstruction] = Field(default_factory=list)

    model_config = {"frozen": True}
