"""
Issuance Engine — расчёт выпуска shares при депозите

    deposit_usd = usd_value(deposit_amount, deposit_decimals, deposit_price)
    NAV = compute_nav(ledger, all_prices, supply)
    minted = floor(deposit_usd × 10^SHARES_PRECISION / NAV)

Движок не меняет состояние ledger: вызывающий применяет mint, зачисление
баланса и учёт держателя атомарно.
"""

from typing import Optional, Sequence

from src.core.config import DEFAULT_CONFIG, VaultEngineConfig
from src.core.domain.price import PriceQuote
from src.core.domain.settlement import MintQuote
from src.core.domain.vault import VaultLedger
from src.core.errors import AmountTooSmall
from src.core.math.fixed_point import mul_div, pow10, validate_u128
from src.engine.valuation import asset_usd_value, compute_nav


def calc_mint_shares(
    deposit_amount: int,
    deposit_asset_decimals: int,
    all_prices: Sequence[PriceQuote],
    deposit_asset_price: PriceQuote,
    ledger: VaultLedger,
    shares_supply: Optional[int],
    config: Optional[VaultEngineConfig] = None,
) -> MintQuote:
    """
    Количество shares к выпуску за депозит одного актива.

    Args:
        deposit_amount: Сумма депозита (минимальные единицы актива)
        deposit_asset_decimals: Точность актива депозита
        all_prices: Котировки всех активов vault в порядке ledger.entries
        deposit_asset_price: Котировка актива депозита
        ledger: Состояние vault ДО зачисления депозита
        shares_supply: Текущий supply shares (None/0 → NAV по умолчанию)

    Returns:
        MintQuote(minted_shares, deposit_usd_value, nav)

    Raises:
        AmountTooSmall: Если amount == 0, NAV == 0 или результат округляется в 0
        InvalidPriceQuote / ArithmeticOverflow: Из оценки
    """
    cfg = config or DEFAULT_CONFIG

    validate_u128(deposit_amount, "deposit_amount", cfg.max_value)
    if deposit_amount == 0:
        raise AmountTooSmall("deposit amount must be positive")

    deposit_usd_value = asset_usd_value(
        deposit_amount, deposit_asset_decimals, deposit_asset_price, cfg
    )
    nav = compute_nav(ledger, all_prices, shares_supply, cfg)

    if nav == 0:
        raise AmountTooSmall(f"vault {ledger.symbol} NAV is zero, cannot price shares")

    minted_shares = mul_div(
        deposit_usd_value, pow10(cfg.shares_precision), nav, cfg.max_value
    )

    if minted_shares == 0:
        raise AmountTooSmall(
            f"deposit of {deposit_amount} (usd={deposit_usd_value}) mints zero shares at nav={nav}"
        )

    return MintQuote(
        minted_shares=minted_shares,
        deposit_usd_value=deposit_usd_value,
        nav=nav,
    )
