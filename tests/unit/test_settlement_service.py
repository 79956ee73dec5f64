"""
Тесты для VaultSettlementService (end-to-end)

Проверяет:
1. Deposit: выпуск shares, custody, учёт держателя
2. Withdraw: waterfall, сжигание, удаление держателя при 100%
3. Round-trip: вывод никогда не превышает депозит по USD
4. All-or-nothing: при любой ошибке состояние не меняется
5. Swap: только создатель vault
6. Query-поверхность и JSON контракты результатов
7. Параллельные deposit в разные vault и в один vault
"""

import sys
import threading

import pytest

from src.core.contracts import validate_settlement, validate_vault_snapshot
from src.core.domain import AssetDescriptor
from src.core.errors import (
    AmountTooSmall,
    DuplicateVault,
    InsufficientBalance,
    InsufficientLiquidity,
    InvalidRedemptionRequest,
    InvalidSwap,
    NotCreator,
    NotSupportedAsset,
    PriceUnavailable,
    VaultNotFound,
)
from src.custody import InMemoryCustodyLedger
from src.engine.valuation import asset_usd_value
from src.pricing import StaticPricingGateway
from src.registry import AssetRegistry, VaultStore
from src.settlement import VaultSettlementService

NOW_MS = 1_700_000_000_000

WETH = "0x1::weth::WETH"
USDC = "0x1::usdc::USDC"
WBTC = "0x1::wbtc::WBTC"

ONE_WETH = 100_000_000


class FailingCustody(InMemoryCustodyLedger):
    """Custody, отклоняющий любой batch."""

    def apply(self, instructions) -> None:
        raise RuntimeError("custody unavailable")


def _build(custody=None):
    registry = AssetRegistry(
        [
            AssetDescriptor(symbol="WETH", name="Wrapped Ether", decimals=8, type_id=WETH, price_feed_id="ETH/USD"),
            AssetDescriptor(symbol="USDC", name="USD Coin", decimals=6, type_id=USDC, price_feed_id="USDC/USD"),
            AssetDescriptor(symbol="WBTC", name="Wrapped Bitcoin", decimals=8, type_id=WBTC, price_feed_id="BTC/USD"),
        ]
    )
    gateway = StaticPricingGateway(clock=lambda: NOW_MS)
    gateway.publish("ETH/USD", 300_000_000_000, -8)
    gateway.publish("USDC/USD", 100_000_000, -8)

    custody = custody or InMemoryCustodyLedger()
    custody.fund("alice", WETH, 10 * ONE_WETH)
    custody.fund("bob", USDC, 10_000_000_000)

    service = VaultSettlementService(registry, VaultStore(), gateway, custody)
    service.create_vault("alice", "Blue Chip Index", "BCI", NOW_MS)
    return service, gateway, custody


@pytest.fixture
def env():
    return _build()


# =============================================================================
# VAULT REGISTRATION
# =============================================================================


class TestCreateVault:
    def test_duplicate_symbol(self, env) -> None:
        service, _, _ = env
        with pytest.raises(DuplicateVault):
            service.create_vault("bob", "Other", "BCI", NOW_MS)
        assert service.vault_snapshot("BCI").creator == "alice"

    def test_snapshot_matches_contract(self, env) -> None:
        service, _, _ = env
        snapshot = service.create_vault("bob", "Stable Basket", "STB", NOW_MS)
        validate_vault_snapshot(snapshot.model_dump())


# =============================================================================
# DEPOSIT
# =============================================================================


class TestDeposit:
    def test_first_deposit(self, env) -> None:
        service, _, custody = env

        settlement = service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)

        assert settlement.minted_shares == 300_000_000_000
        assert settlement.deposit_usd_value == 300_000_000_000
        assert settlement.nav == 100_000_000
        assert [i.kind for i in settlement.instructions] == ["collect", "mint"]

        assert custody.shares_balance("BCI", "alice") == 300_000_000_000
        assert custody.wallet_balance("alice", WETH) == 9 * ONE_WETH
        assert service.vault_composition("BCI")[0].balance == ONE_WETH
        assert [h.holder for h in service.vault_holders("BCI")] == ["alice"]

        validate_settlement(settlement.model_dump())

    def test_second_depositor_after_price_move(self, env) -> None:
        """ETH $3000 → $3300: NAV 1.1, 1100 USDC → 1000 shares"""
        service, gateway, _ = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)
        gateway.publish("ETH/USD", 330_000_000_000, -8)

        settlement = service.deposit("BCI", "bob", USDC, 1_100_000_000, NOW_MS + 1)

        assert settlement.nav == 110_000_000
        assert settlement.minted_shares == 100_000_000_000
        assert [a.type_id for a in service.vault_composition("BCI")] == [WETH, USDC]
        assert len(service.vault_holders("BCI")) == 2

    def test_repeat_deposit_updates_timestamp(self, env) -> None:
        service, _, _ = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS + 500)

        holders = service.vault_holders("BCI")
        assert len(holders) == 1
        assert holders[0].last_deposit_ts_utc_ms == NOW_MS + 500

    def test_insufficient_balance(self, env) -> None:
        service, _, custody = env

        with pytest.raises(InsufficientBalance):
            service.deposit("BCI", "alice", WETH, 11 * ONE_WETH, NOW_MS)

        assert service.vault_composition("BCI") == []
        assert service.vault_holders("BCI") == []
        assert custody.shares_supply("BCI") == 0

    def test_unsupported_asset(self, env) -> None:
        service, _, _ = env
        with pytest.raises(NotSupportedAsset):
            service.deposit("BCI", "alice", "0x1::doge::DOGE", 1, NOW_MS)

    def test_unknown_vault(self, env) -> None:
        service, _, _ = env
        with pytest.raises(VaultNotFound):
            service.deposit("NOPE", "alice", WETH, ONE_WETH, NOW_MS)

    def test_zero_amount(self, env) -> None:
        service, _, _ = env
        with pytest.raises(AmountTooSmall):
            service.deposit("BCI", "alice", WETH, 0, NOW_MS)

    def test_missing_price_leaves_state_untouched(self, env) -> None:
        service, _, custody = env
        custody.fund("alice", WBTC, ONE_WETH)

        with pytest.raises(PriceUnavailable):
            service.deposit("BCI", "alice", WBTC, ONE_WETH, NOW_MS)

        assert service.vault_composition("BCI") == []
        assert custody.wallet_balance("alice", WBTC) == ONE_WETH

    def test_custody_failure_rolls_back_ledger(self) -> None:
        service, _, _ = _build(custody=FailingCustody())

        with pytest.raises(RuntimeError, match="custody unavailable"):
            service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)

        assert service.vault_composition("BCI") == []
        assert service.vault_holders("BCI") == []


# =============================================================================
# WITHDRAW
# =============================================================================


class TestWithdraw:
    def test_round_trip_never_favours_withdrawer(self, env) -> None:
        service, _, custody = env
        deposit = service.deposit("BCI", "alice", WETH, 123_456_789, NOW_MS)

        settlement = service.withdraw("BCI", "alice", 10_000, [WETH], NOW_MS + 1)

        paid_amount = settlement.legs[0].amount
        paid_usd = asset_usd_value(paid_amount, 8, service.gateway.fetch_quotes(["ETH/USD"])[0])
        assert paid_amount <= 123_456_789
        assert paid_usd <= deposit.deposit_usd_value

        assert settlement.shares_burned == deposit.minted_shares
        assert settlement.holder_removed
        assert service.vault_holders("BCI") == []
        assert custody.shares_balance("BCI", "alice") == 0
        assert custody.shares_supply("BCI") == 0
        assert [i.kind for i in settlement.instructions] == ["burn", "payout"]

        validate_settlement(settlement.model_dump())

    def test_partial_withdraw_keeps_holder(self, env) -> None:
        service, _, custody = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)

        settlement = service.withdraw("BCI", "alice", 2_500, [WETH], NOW_MS + 1)

        assert settlement.legs[0].amount == 25_000_000
        assert not settlement.holder_removed
        assert [h.holder for h in service.vault_holders("BCI")] == ["alice"]
        assert service.vault_composition("BCI")[0].balance == 75_000_000
        assert custody.shares_balance("BCI", "alice") == 225_000_000_000

    def test_waterfall_across_assets(self, env) -> None:
        """Вывод ≈$2000 при 1000 USDC первыми: весь USDC + остаток из WETH"""
        service, _, custody = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)
        service.deposit("BCI", "bob", USDC, 1_000_000_000, NOW_MS)

        # alice: 3000 shares из 4000 по NAV $1; 66.67% её доли ≈ $2000
        settlement = service.withdraw("BCI", "alice", 6_667, [USDC, WETH], NOW_MS + 1)

        assert [leg.type_id for leg in settlement.legs] == [USDC, WETH]
        assert settlement.legs[0].amount == 1_000_000_000
        assert sum(leg.usd_value for leg in settlement.legs) == settlement.total_usd_value
        assert custody.vault_balance("BCI", USDC) == 0

    def test_insufficient_liquidity_leaves_state_untouched(self, env) -> None:
        service, _, custody = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)
        service.deposit("BCI", "bob", USDC, 1_000_000_000, NOW_MS)
        before = service.vault_snapshot("BCI")

        with pytest.raises(InsufficientLiquidity):
            service.withdraw("BCI", "alice", 10_000, [USDC], NOW_MS + 1)

        assert service.vault_snapshot("BCI") == before
        assert custody.shares_balance("BCI", "alice") == 300_000_000_000

    def test_holder_without_shares(self, env) -> None:
        service, _, _ = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)

        with pytest.raises(AmountTooSmall):
            service.withdraw("BCI", "bob", 10_000, [WETH], NOW_MS)


# =============================================================================
# SWAP
# =============================================================================


class TestSwap:
    def test_creator_only(self, env) -> None:
        service, _, _ = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)

        with pytest.raises(NotCreator):
            service.apply_swap("BCI", "bob", WETH, 1, USDC, 1, NOW_MS)

    def test_swap_rebalances_and_withdraw_follows(self, env) -> None:
        service, _, custody = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)

        swap = service.apply_swap("BCI", "alice", WETH, 50_000_000, USDC, 1_500_000_000, NOW_MS)
        validate_settlement(swap.model_dump())

        balances = {a.type_id: a.balance for a in service.vault_composition("BCI")}
        assert balances == {WETH: 50_000_000, USDC: 1_500_000_000}
        assert custody.vault_balance("BCI", USDC) == 1_500_000_000

        settlement = service.withdraw("BCI", "alice", 10_000, [USDC, WETH], NOW_MS + 1)
        assert [leg.amount for leg in settlement.legs] == [1_500_000_000, 50_000_000]

    def test_swap_beyond_balance(self, env) -> None:
        service, _, _ = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)
        before = service.vault_snapshot("BCI")

        with pytest.raises(InsufficientLiquidity):
            service.apply_swap("BCI", "alice", WETH, 2 * ONE_WETH, USDC, 1, NOW_MS)

        assert service.vault_snapshot("BCI") == before

    def test_same_asset_rejected(self, env) -> None:
        service, _, custody = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)

        with pytest.raises(InvalidSwap, match="different assets") as exc_info:
            service.apply_swap("BCI", "alice", WETH, 1, WETH, 1, NOW_MS)

        assert exc_info.value.code == "invalid_swap"
        assert not isinstance(exc_info.value, InvalidRedemptionRequest)
        assert custody.vault_balance("BCI", WETH) == ONE_WETH


# =============================================================================
# QUERY SURFACE
# =============================================================================


class TestQueries:
    def test_listing(self, env) -> None:
        service, _, _ = env
        assert [a.symbol for a in service.list_supported_assets()] == ["WETH", "USDC", "WBTC"]
        assert [v.symbol for v in service.list_vaults()] == ["BCI"]

    def test_nav_and_aum(self, env) -> None:
        service, gateway, _ = env
        assert service.vault_nav("BCI") == 100_000_000

        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)
        gateway.publish("ETH/USD", 600_000_000_000, -8)

        assert service.vault_aum("BCI") == 600_000_000_000
        assert service.vault_nav("BCI") == 200_000_000

    def test_snapshot_contract_after_activity(self, env) -> None:
        service, _, _ = env
        service.deposit("BCI", "alice", WETH, ONE_WETH, NOW_MS)
        validate_vault_snapshot(service.vault_snapshot("BCI").model_dump())


# =============================================================================
# CONCURRENCY
# =============================================================================

ONE_USDC = 1_000_000


@pytest.fixture
def fast_switching():
    previous = sys.getswitchinterval()
    sys.setswitchinterval(1e-6)
    yield
    sys.setswitchinterval(previous)


def _run_threads(targets) -> list[Exception]:
    errors: list[Exception] = []

    def guarded(target):
        def run() -> None:
            try:
                target()
            except Exception as e:
                errors.append(e)

        return run

    threads = [threading.Thread(target=guarded(t)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors


class TestConcurrentDeposits:
    """1 USDC при NAV $1 всегда выпускает ровно 1 share (10^8)."""

    def test_deposits_into_different_vaults(self, env, fast_switching) -> None:
        service, _, custody = env
        vaults = ["VA", "VB", "VC", "VD"]
        rounds = 300

        for symbol in vaults:
            service.create_vault("alice", f"Vault {symbol}", symbol, NOW_MS)
            custody.fund(f"holder-{symbol}", USDC, rounds * ONE_USDC)

        def depositor(symbol: str):
            def run() -> None:
                for i in range(rounds):
                    service.deposit(symbol, f"holder-{symbol}", USDC, ONE_USDC, NOW_MS + i)

            return run

        assert _run_threads([depositor(s) for s in vaults]) == []

        for symbol in vaults:
            assert service.vault_composition(symbol)[0].balance == rounds * ONE_USDC
            assert custody.vault_balance(symbol, USDC) == rounds * ONE_USDC
            assert custody.shares_supply(symbol) == rounds * 100_000_000
            assert service.vault_nav(symbol) == 100_000_000

    def test_deposits_into_same_vault_are_serialized(self, env, fast_switching) -> None:
        service, _, custody = env
        holders = ["h1", "h2", "h3", "h4"]
        rounds = 100

        for holder in holders:
            custody.fund(holder, USDC, rounds * ONE_USDC)

        def depositor(holder: str):
            def run() -> None:
                for i in range(rounds):
                    service.deposit("BCI", holder, USDC, ONE_USDC, NOW_MS + i)

            return run

        assert _run_threads([depositor(h) for h in holders]) == []

        total = len(holders) * rounds
        assert service.vault_composition("BCI")[0].balance == total * ONE_USDC
        assert custody.vault_balance("BCI", USDC) == total * ONE_USDC
        assert custody.shares_supply("BCI") == total * 100_000_000
        for holder in holders:
            assert custody.shares_balance("BCI", holder) == rounds * 100_000_000
        assert sorted(h.holder for h in service.vault_holders("BCI")) == holders
