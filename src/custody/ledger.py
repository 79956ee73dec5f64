"""
CustodyLedger — внешний компонент хранения токенов

Движок не перемещает токены: он передаёт batch инструкций
(collect / mint / burn / payout / swap), который custody применяет атомарно.

InMemoryCustodyLedger — эталонная in-memory реализация:
- кошельки держателей (holder, type_id) → amount
- custody vault (vault, type_id) → amount
- shares (vault, holder) → amount и supply по vault

Batch сначала применяется к рабочей копии; при любой ошибке состояние
не меняется. Состояние общее для всех vault, поэтому чтение и запись
сериализуются собственным RLock.
"""

import logging
import threading
from typing import Iterable, Protocol, Sequence

from src.core.domain.settlement import (
    BurnInstruction,
    CollectInstruction,
    MintInstruction,
    PayoutInstruction,
    SettlementInstruction,
    SwapInstruction,
)
from src.core.errors import InsufficientBalance, InsufficientLiquidity
from src.core.math.fixed_point import validate_u128

_LOG = logging.getLogger(__name__)


class CustodyLedger(Protocol):
    def wallet_balance(self, holder: str, type_id: str) -> int: ...

    def shares_balance(self, vault: str, holder: str) -> int: ...

    def shares_supply(self, vault: str) -> int: ...

    def apply(self, instructions: Sequence[SettlementInstruction]) -> None: ...


class _CustodyState:
    def __init__(self) -> None:
        self.wallets: dict[tuple[str, str], int] = {}
        self.vault_assets: dict[tuple[str, str], int] = {}
        self.shares: dict[tuple[str, str], int] = {}
        self.supply: dict[str, int] = {}

    def copy(self) -> "_CustodyState":
        clone = _CustodyState()
        clone.wallets = dict(self.wallets)
        clone.vault_assets = dict(self.vault_assets)
        clone.shares = dict(self.shares)
        clone.supply = dict(self.supply)
        return clone


class InMemoryCustodyLedger:
    """In-memory custody с атомарным применением batch."""

    def __init__(self) -> None:
        self._state = _CustodyState()
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def wallet_balance(self, holder: str, type_id: str) -> int:
        with self._lock:
            return self._state.wallets.get((holder, type_id), 0)

    def vault_balance(self, vault: str, type_id: str) -> int:
        with self._lock:
            return self._state.vault_assets.get((vault, type_id), 0)

    def shares_balance(self, vault: str, holder: str) -> int:
        with self._lock:
            return self._state.shares.get((vault, holder), 0)

    def shares_supply(self, vault: str) -> int:
        with self._lock:
            return self._state.supply.get(vault, 0)

    # -------------------------------------------------------------------------
    # Запись
    # -------------------------------------------------------------------------

    def fund(self, holder: str, type_id: str, amount: int) -> None:
        """Зачисление токенов в кошелёк держателя (вне settlement)."""
        validate_u128(amount, "amount")
        key = (holder, type_id)
        with self._lock:
            self._state.wallets[key] = validate_u128(
                self._state.wallets.get(key, 0) + amount, "wallet balance"
            )

    def apply(self, instructions: Iterable[SettlementInstruction]) -> None:
        """
        Атомарное применение batch инструкций.

        Raises:
            InsufficientBalance: Кошелёк или shares держателя меньше списания
            InsufficientLiquidity: Custody vault не покрывает payout
        """
        with self._lock:
            work = self._state.copy()
            applied = 0

            for instruction in instructions:
                if isinstance(instruction, CollectInstruction):
                    _debit(
                        work.wallets,
                        (instruction.holder, instruction.type_id),
                        instruction.amount,
                        InsufficientBalance,
                    )
                    _credit(work.vault_assets, (instruction.vault, instruction.type_id), instruction.amount)
                elif isinstance(instruction, MintInstruction):
                    _credit(work.shares, (instruction.vault, instruction.holder), instruction.amount)
                    _credit(work.supply, instruction.vault, instruction.amount)
                elif isinstance(instruction, BurnInstruction):
                    _debit(
                        work.shares,
                        (instruction.vault, instruction.holder),
                        instruction.amount,
                        InsufficientBalance,
                    )
                    _debit(work.supply, instruction.vault, instruction.amount, InsufficientBalance)
                elif isinstance(instruction, PayoutInstruction):
                    for transfer in instruction.transfers:
                        _debit(
                            work.vault_assets,
                            (instruction.vault, transfer.type_id),
                            transfer.amount,
                            InsufficientLiquidity,
                        )
                        _credit(work.wallets, (instruction.holder, transfer.type_id), transfer.amount)
                elif isinstance(instruction, SwapInstruction):
                    _debit(
                        work.vault_assets,
                        (instruction.vault, instruction.sell_type_id),
                        instruction.sell_amount,
                        InsufficientLiquidity,
                    )
                    _credit(
                        work.vault_assets,
                        (instruction.vault, instruction.buy_type_id),
                        instruction.buy_amount,
                    )
                else:
                    raise TypeError(f"unknown settlement instruction: {instruction!r}")
                applied += 1

            self._state = work
        _LOG.debug("custody batch applied: %d instructions", applied)


def _credit(book: dict, key, amount: int) -> None:
    book[key] = validate_u128(book.get(key, 0) + amount, f"balance{key!r}")


def _debit(book: dict, key, amount: int, error: type[Exception]) -> None:
    available = book.get(key, 0)
    if available < amount:
        raise error(f"balance {key!r} is {available}, cannot debit {amount}")
    book[key] = available - amount
