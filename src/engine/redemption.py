"""
Redemption Engine — withdrawal waterfall

Раскладывает сжигание shares на выплату из 1-3 активов-кандидатов в порядке
приоритета, заданном вызывающим (не по балансу и не по цене).

АЛГОРИТМ:
    1. shares_burned = floor(holder_shares × percentage_bps / 10000), 0 → AmountTooSmall
    2. total_usd = floor(shares_burned × NAV / 10^SHARES_PRECISION)
    3. Для каждого кандидата по порядку:
       - usd_value(актив) >= remaining → берётся доля баланса
         floor(balance × remaining / usd_value), шаг терминальный
       - иначе берётся весь баланс, remaining -= usd_value
    4. Кандидаты исчерпаны, remaining > 0 → InsufficientLiquidity (без частичной выплаты)

Округление терминального шага — всегда вниз: остаток USD меньше одной
минимальной единицы актива остаётся в vault.
"""

from typing import TYPE_CHECKING, Optional, Sequence

from src.core.config import DEFAULT_CONFIG, VaultEngineConfig
from src.core.domain.price import PriceQuote
from src.core.domain.settlement import PayoutLeg, WithdrawalQuote
from src.core.domain.vault import VaultLedger
from src.core.errors import (
    AmountTooSmall,
    InsufficientLiquidity,
    InvalidPriceQuote,
    InvalidRedemptionRequest,
)
from src.core.math.fixed_point import mul_div, pow10, validate_u128
from src.engine.valuation import asset_usd_value, compute_aum, nav_from_aum

if TYPE_CHECKING:
    from src.registry.asset_registry import AssetRegistry


def validate_candidates(
    candidate_type_ids: Sequence[str],
    registry: "AssetRegistry",
    config: Optional[VaultEngineConfig] = None,
) -> list[str]:
    """
    Проверка списка активов-кандидатов.

    Raises:
        InvalidRedemptionRequest: Пустой список, больше max_withdraw_assets или дубликаты
        NotSupportedAsset: Кандидат отсутствует в реестре
    """
    cfg = config or DEFAULT_CONFIG
    candidates = list(candidate_type_ids)

    if not candidates:
        raise InvalidRedemptionRequest("at least one withdrawal asset is required")

    if len(candidates) > cfg.max_withdraw_assets:
        raise InvalidRedemptionRequest(
            f"at most {cfg.max_withdraw_assets} withdrawal assets allowed, got {len(candidates)}"
        )

    if len(set(candidates)) != len(candidates):
        raise InvalidRedemptionRequest(f"duplicate withdrawal assets: {candidates}")

    for type_id in candidates:
        registry.require(type_id)

    return candidates


def shares_to_burn(
    holder_shares_balance: int,
    percentage_bps: int,
    config: Optional[VaultEngineConfig] = None,
) -> int:
    """
    floor(holder_shares_balance × percentage_bps / 10000).

    Raises:
        InvalidRedemptionRequest: Если percentage_bps вне [1, 10000]
        AmountTooSmall: Если результат равен 0
    """
    cfg = config or DEFAULT_CONFIG

    if (
        isinstance(percentage_bps, bool)
        or not isinstance(percentage_bps, int)
        or not 0 < percentage_bps <= cfg.bps_denominator
    ):
        raise InvalidRedemptionRequest(
            f"percentage_bps must be in [1, {cfg.bps_denominator}], got {percentage_bps}"
        )

    validate_u128(holder_shares_balance, "holder_shares_balance", cfg.max_value)
    burned = mul_div(
        holder_shares_balance, percentage_bps, cfg.bps_denominator, cfg.max_value
    )

    if burned == 0:
        raise AmountTooSmall(
            f"redeeming {percentage_bps} bps of {holder_shares_balance} shares burns nothing"
        )
    return burned


def calc_withdraw_amounts(
    holder_shares_balance: int,
    percentage_bps: int,
    candidate_type_ids: Sequence[str],
    all_prices: Sequence[PriceQuote],
    ledger: VaultLedger,
    shares_supply: Optional[int],
    registry: "AssetRegistry",
    config: Optional[VaultEngineConfig] = None,
) -> WithdrawalQuote:
    """
    Расчёт выплаты по withdrawal waterfall.

    Args:
        holder_shares_balance: Баланс shares держателя
        percentage_bps: Доля к выводу в базисных пунктах (10000 = 100%)
        candidate_type_ids: 1-3 актива в порядке приоритета вызывающего
        all_prices: Котировки всех активов vault в порядке ledger.entries
        ledger: Состояние vault
        shares_supply: Текущий supply shares vault
        registry: Реестр поддерживаемых активов

    Returns:
        WithdrawalQuote: legs (1-3 шага), shares_burned, total_usd_value, nav

    Raises:
        InvalidRedemptionRequest: Невалидный процент или список кандидатов
        NotSupportedAsset: Кандидат не поддерживается реестром
        AmountTooSmall: Сжигается 0 shares
        InsufficientLiquidity: Кандидаты не покрывают целевую стоимость
        InvalidPriceQuote / ArithmeticOverflow: Из оценки
    """
    cfg = config or DEFAULT_CONFIG

    candidates = validate_candidates(candidate_type_ids, registry, cfg)
    shares_burned = shares_to_burn(holder_shares_balance, percentage_bps, cfg)

    if not shares_supply or shares_burned > shares_supply:
        raise InvalidRedemptionRequest(
            f"cannot burn {shares_burned} shares with supply {shares_supply}"
        )

    aum = compute_aum(ledger, all_prices, cfg)
    nav = nav_from_aum(aum, shares_supply, cfg)
    total_usd_value = mul_div(shares_burned, nav, pow10(cfg.shares_precision), cfg.max_value)

    quotes = dict(zip(ledger.asset_type_ids, all_prices))

    legs: list[PayoutLeg] = []
    remaining = total_usd_value

    for type_id in candidates:
        entry = ledger.entry(type_id)
        if entry is None:
            # Поддерживаемый, но не хранящийся в vault актив: нулевой баланс
            balance, decimals = 0, registry.require(type_id).decimals
        else:
            balance, decimals = entry.balance, entry.decimals

        if balance == 0:
            value = 0
        else:
            quote = quotes.get(type_id)
            if quote is None:
                raise InvalidPriceQuote(f"no quote for withdrawal asset {type_id}")
            value = asset_usd_value(balance, decimals, quote, cfg)

        if value >= remaining:
            amount = mul_div(balance, remaining, value, cfg.max_value) if value else 0
            legs.append(
                PayoutLeg(type_id=type_id, amount=amount, decimals=decimals, usd_value=remaining)
            )
            remaining = 0
            break

        legs.append(
            PayoutLeg(type_id=type_id, amount=balance, decimals=decimals, usd_value=value)
        )
        remaining -= value

    if remaining > 0:
        raise InsufficientLiquidity(
            f"vault {ledger.symbol}: candidates {candidates} cover "
            f"{total_usd_value - remaining} of {total_usd_value} USD"
        )

    return WithdrawalQuote(
        legs=tuple(legs),
        shares_burned=shares_burned,
        total_usd_value=total_usd_value,
        nav=nav,
    )
