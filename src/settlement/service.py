"""
VaultSettlementService — оркестрация settlement-операций vault

Связывает AssetRegistry, VaultStore, PricingGateway и CustodyLedger:
- create_vault: регистрация vault
- deposit: выпуск shares за депозит одного актива
- withdraw: сжигание shares и выплата по withdrawal waterfall
- apply_swap: учёт внешнего DEX swap (только создатель vault)
- query-поверхность: активы, vault, состав, держатели, AUM/NAV

Каждая операция — сериализуемая единица работы под lock своего vault:
1. Все guard-проверки и расчёты выполняются до изменений
2. Котировки запрашиваются один раз в начале операции
3. Изменения ledger и batch custody применяются вместе; при ошибке custody
   ledger откатывается к checkpoint
"""

import logging
from typing import Callable, Optional, Sequence

from src.core.config import DEFAULT_CONFIG, VaultEngineConfig
from src.core.domain.asset import AssetDescriptor
from src.core.domain.settlement import (
    BurnInstruction,
    CollectInstruction,
    DepositSettlement,
    MintInstruction,
    PayoutInstruction,
    PayoutTransfer,
    SettlementInstruction,
    SwapInstruction,
    SwapSettlement,
    WithdrawalSettlement,
)
from src.core.domain.vault import AssetBalanceView, HolderRecord, VaultLedger, VaultSnapshot
from src.core.errors import (
    AmountTooSmall,
    InsufficientBalance,
    InvalidSwap,
    NotCreator,
    VaultEngineError,
)
from src.core.math.fixed_point import validate_u128
from src.custody.ledger import CustodyLedger
from src.engine.issuance import calc_mint_shares
from src.engine.redemption import calc_withdraw_amounts
from src.engine.valuation import compute_aum, nav_from_aum
from src.pricing.gateway import PricingGateway, fetch_vault_quotes
from src.registry.asset_registry import AssetRegistry
from src.registry.vault_store import VaultStore

_LOG = logging.getLogger(__name__)


class VaultSettlementService:
    """Фасад settlement-операций над vault одного deployment."""

    def __init__(
        self,
        registry: AssetRegistry,
        store: VaultStore,
        gateway: PricingGateway,
        custody: CustodyLedger,
        config: Optional[VaultEngineConfig] = None,
    ):
        self.registry = registry
        self.store = store
        self.gateway = gateway
        self.custody = custody
        self.config = config or store.config or DEFAULT_CONFIG

    # =========================================================================
    # РЕГИСТРАЦИЯ
    # =========================================================================

    def create_vault(
        self, creator: str, name: str, symbol: str, ts_utc_ms: int
    ) -> VaultSnapshot:
        try:
            ledger = self.store.create_vault(creator, name, symbol, ts_utc_ms)
        except VaultEngineError as e:
            _LOG.warning("create_vault rejected: symbol=%s code=%s (%s)", symbol, e.code, e)
            raise
        return ledger.snapshot()

    # =========================================================================
    # DEPOSIT
    # =========================================================================

    def deposit(
        self,
        symbol: str,
        holder: str,
        type_id: str,
        amount: int,
        ts_utc_ms: int,
    ) -> DepositSettlement:
        """
        Депозит одного актива и выпуск shares.

        Raises:
            NotSupportedAsset, VaultNotFound, AmountTooSmall, InsufficientBalance,
            PriceUnavailable, InvalidPriceQuote, ArithmeticOverflow
        """
        try:
            return self._deposit(symbol, holder, type_id, amount, ts_utc_ms)
        except VaultEngineError as e:
            _LOG.warning(
                "deposit rejected: vault=%s holder=%s asset=%s code=%s (%s)",
                symbol,
                holder,
                type_id,
                e.code,
                e,
            )
            raise

    def _deposit(
        self, symbol: str, holder: str, type_id: str, amount: int, ts_utc_ms: int
    ) -> DepositSettlement:
        descriptor = self.registry.require(type_id)
        ledger = self.store.get(symbol)

        validate_u128(amount, "amount", self.config.max_value)
        if amount == 0:
            raise AmountTooSmall("deposit amount must be positive")

        with self.store.lock(symbol):
            available = self.custody.wallet_balance(holder, type_id)
            if available < amount:
                raise InsufficientBalance(
                    f"{holder} holds {available} of {type_id}, deposit requires {amount}"
                )

            quotes = fetch_vault_quotes(self.gateway, self.registry, ledger, [type_id])
            all_prices = [quotes[t] for t in ledger.asset_type_ids]

            mint = calc_mint_shares(
                deposit_amount=amount,
                deposit_asset_decimals=descriptor.decimals,
                all_prices=all_prices,
                deposit_asset_price=quotes[type_id],
                ledger=ledger,
                shares_supply=self.custody.shares_supply(symbol),
                config=self.config,
            )

            instructions: list[SettlementInstruction] = [
                CollectInstruction(vault=symbol, holder=holder, type_id=type_id, amount=amount),
                MintInstruction(vault=symbol, holder=holder, amount=mint.minted_shares),
            ]

            def mutate() -> None:
                ledger.credit(type_id, descriptor.decimals, amount)
                ledger.touch_holder(holder, ts_utc_ms)

            self._commit(ledger, instructions, mutate)

        _LOG.info(
            "deposit settled: vault=%s holder=%s asset=%s amount=%d usd=%d nav=%d minted=%d",
            symbol,
            holder,
            type_id,
            amount,
            mint.deposit_usd_value,
            mint.nav,
            mint.minted_shares,
        )
        return DepositSettlement(
            vault_symbol=symbol,
            holder=holder,
            type_id=type_id,
            amount=amount,
            deposit_usd_value=mint.deposit_usd_value,
            nav=mint.nav,
            minted_shares=mint.minted_shares,
            ts_utc_ms=ts_utc_ms,
            instructions=instructions,
        )

    # =========================================================================
    # WITHDRAW
    # =========================================================================

    def withdraw(
        self,
        symbol: str,
        holder: str,
        percentage_bps: int,
        candidate_type_ids: Sequence[str],
        ts_utc_ms: int,
    ) -> WithdrawalSettlement:
        """
        Сжигание доли shares держателя и выплата по waterfall.

        percentage_bps == 10000 удаляет запись держателя.

        Raises:
            VaultNotFound, InvalidRedemptionRequest, NotSupportedAsset, AmountTooSmall,
            InsufficientLiquidity, PriceUnavailable, InvalidPriceQuote, ArithmeticOverflow
        """
        try:
            return self._withdraw(symbol, holder, percentage_bps, candidate_type_ids, ts_utc_ms)
        except VaultEngineError as e:
            _LOG.warning(
                "withdraw rejected: vault=%s holder=%s bps=%s code=%s (%s)",
                symbol,
                holder,
                percentage_bps,
                e.code,
                e,
            )
            raise

    def _withdraw(
        self,
        symbol: str,
        holder: str,
        percentage_bps: int,
        candidate_type_ids: Sequence[str],
        ts_utc_ms: int,
    ) -> WithdrawalSettlement:
        ledger = self.store.get(symbol)

        with self.store.lock(symbol):
            quotes = fetch_vault_quotes(self.gateway, self.registry, ledger)

            quote = calc_withdraw_amounts(
                holder_shares_balance=self.custody.shares_balance(symbol, holder),
                percentage_bps=percentage_bps,
                candidate_type_ids=candidate_type_ids,
                all_prices=list(quotes.values()),
                ledger=ledger,
                shares_supply=self.custody.shares_supply(symbol),
                registry=self.registry,
                config=self.config,
            )
            holder_removed = percentage_bps == self.config.bps_denominator

            instructions: list[SettlementInstruction] = [
                BurnInstruction(vault=symbol, holder=holder, amount=quote.shares_burned),
                PayoutInstruction(
                    vault=symbol,
                    holder=holder,
                    transfers=[
                        PayoutTransfer(type_id=leg.type_id, amount=leg.amount)
                        for leg in quote.legs
                    ],
                ),
            ]

            def mutate() -> None:
                for leg in quote.legs:
                    if leg.amount:
                        ledger.debit(leg.type_id, leg.amount)
                if holder_removed:
                    ledger.remove_holder(holder)

            self._commit(ledger, instructions, mutate)

        _LOG.info(
            "withdraw settled: vault=%s holder=%s bps=%d burned=%d usd=%d legs=%s",
            symbol,
            holder,
            percentage_bps,
            quote.shares_burned,
            quote.total_usd_value,
            [(leg.type_id, leg.amount) for leg in quote.legs],
        )
        return WithdrawalSettlement(
            vault_symbol=symbol,
            holder=holder,
            percentage_bps=percentage_bps,
            shares_burned=quote.shares_burned,
            nav=quote.nav,
            total_usd_value=quote.total_usd_value,
            legs=list(quote.legs),
            holder_removed=holder_removed,
            ts_utc_ms=ts_utc_ms,
            instructions=instructions,
        )

    # =========================================================================
    # SWAP
    # =========================================================================

    def apply_swap(
        self,
        symbol: str,
        caller: str,
        sell_type_id: str,
        sell_amount: int,
        buy_type_id: str,
        buy_amount: int,
        ts_utc_ms: int,
    ) -> SwapSettlement:
        """
        Учёт результата swap, исполненного внешним DEX.

        Raises:
            VaultNotFound, NotCreator, NotSupportedAsset, AmountTooSmall,
            InvalidSwap (sell == buy), InsufficientLiquidity
        """
        try:
            return self._apply_swap(
                symbol, caller, sell_type_id, sell_amount, buy_type_id, buy_amount, ts_utc_ms
            )
        except VaultEngineError as e:
            _LOG.warning(
                "swap rejected: vault=%s caller=%s code=%s (%s)", symbol, caller, e.code, e
            )
            raise

    def _apply_swap(
        self,
        symbol: str,
        caller: str,
        sell_type_id: str,
        sell_amount: int,
        buy_type_id: str,
        buy_amount: int,
        ts_utc_ms: int,
    ) -> SwapSettlement:
        ledger = self.store.get(symbol)
        if caller != ledger.creator:
            raise NotCreator(f"{caller} is not the creator of vault {symbol}")

        self.registry.require(sell_type_id)
        buy_descriptor = self.registry.require(buy_type_id)

        if sell_type_id == buy_type_id:
            raise InvalidSwap("swap must exchange two different assets")

        validate_u128(sell_amount, "sell_amount", self.config.max_value)
        validate_u128(buy_amount, "buy_amount", self.config.max_value)
        if sell_amount == 0 or buy_amount == 0:
            raise AmountTooSmall("swap amounts must be positive")

        with self.store.lock(symbol):
            instructions: list[SettlementInstruction] = [
                SwapInstruction(
                    vault=symbol,
                    sell_type_id=sell_type_id,
                    sell_amount=sell_amount,
                    buy_type_id=buy_type_id,
                    buy_amount=buy_amount,
                )
            ]

            def mutate() -> None:
                ledger.debit(sell_type_id, sell_amount)
                ledger.credit(buy_type_id, buy_descriptor.decimals, buy_amount)

            self._commit(ledger, instructions, mutate)

        _LOG.info(
            "swap settled: vault=%s sold %d %s for %d %s",
            symbol,
            sell_amount,
            sell_type_id,
            buy_amount,
            buy_type_id,
        )
        return SwapSettlement(
            vault_symbol=symbol,
            caller=caller,
            sell_type_id=sell_type_id,
            sell_amount=sell_amount,
            buy_type_id=buy_type_id,
            buy_amount=buy_amount,
            ts_utc_ms=ts_utc_ms,
            instructions=instructions,
        )

    # =========================================================================
    # QUERY SURFACE
    # =========================================================================

    def list_supported_assets(self) -> list[AssetDescriptor]:
        return self.registry.list_assets()

    def list_vaults(self) -> list[VaultSnapshot]:
        return [ledger.snapshot() for ledger in self.store.list_vaults()]

    def vault_snapshot(self, symbol: str) -> VaultSnapshot:
        return self.store.get(symbol).snapshot()

    def vault_composition(self, symbol: str) -> list[AssetBalanceView]:
        return self.store.get(symbol).snapshot().assets

    def vault_holders(self, symbol: str) -> list[HolderRecord]:
        return self.store.get(symbol).holders()

    def vault_aum(self, symbol: str) -> int:
        ledger = self.store.get(symbol)
        quotes = fetch_vault_quotes(self.gateway, self.registry, ledger)
        return compute_aum(ledger, list(quotes.values()), self.config)

    def vault_nav(self, symbol: str) -> int:
        self.store.get(symbol)
        supply = self.custody.shares_supply(symbol)
        if not supply:
            return self.config.default_nav
        return nav_from_aum(self.vault_aum(symbol), supply, self.config)

    # =========================================================================
    # COMMIT
    # =========================================================================

    def _commit(
        self,
        ledger: VaultLedger,
        instructions: Sequence[SettlementInstruction],
        mutate: Callable[[], None],
    ) -> None:
        """Изменение ledger и batch custody как одна единица; откат ledger при ошибке."""
        checkpoint = ledger.checkpoint()
        try:
            mutate()
            self.custody.apply(instructions)
        except Exception:
            ledger.rollback(checkpoint)
            _LOG.error("settlement rolled back: vault=%s", ledger.symbol)
            raise
