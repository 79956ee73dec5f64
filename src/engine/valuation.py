"""
Valuation Engine — AUM и NAV vault

Чистые функции над VaultLedger и заранее полученными котировками:
- asset_usd_value: USD-стоимость одного актива (точность AUM)
- compute_aum: суммарная USD-стоимость корзины активов vault
- compute_nav: USD-стоимость одной share (точность shares)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Котировка с mantissa <= 0 → InvalidPriceQuote (никакой деградации)
2. Перед каждым умножением: MAX / 10^AUM_PRECISION / balance > mantissa,
   иначе ArithmeticOverflow и оценка прерывается целиком
3. Нулевой supply → NAV = 1 USD (первый депозит по курсу 1:1)

ФОРМУЛЫ:
    usd_value = balance × mantissa × 10^(AUM_PRECISION + exponent) / 10^decimals
    AUM = Σ usd_value_i
    NAV = AUM × 10^SHARES_PRECISION / shares_supply
"""

from typing import Optional, Sequence

from src.core.config import DEFAULT_CONFIG, VaultEngineConfig
from src.core.domain.price import PriceQuote
from src.core.domain.vault import VaultLedger
from src.core.errors import ArithmeticOverflow, InvalidPriceQuote
from src.core.math.fixed_point import (
    guarded_scaled_multiply_divide,
    has_headroom,
    mul_div,
    pow10,
    validate_u128,
)


def asset_usd_value(
    balance: int,
    decimals: int,
    quote: PriceQuote,
    config: Optional[VaultEngineConfig] = None,
) -> int:
    """
    USD-стоимость баланса одного актива в точности AUM.

    Args:
        balance: Баланс в минимальных единицах актива
        decimals: Десятичная точность актива
        quote: Котировка (mantissa × 10^exponent)
        config: Конфигурация движка (default: VaultEngineConfig())

    Returns:
        USD-стоимость, масштабированная на 10^aum_precision (floor)

    Raises:
        InvalidPriceQuote: Если mantissa <= 0
        ArithmeticOverflow: Если headroom-проверка не пройдена

    Examples:
        >>> asset_usd_value(100000000, 8, PriceQuote(mantissa=300000000000, exponent=-8))
        300000000000
    """
    cfg = config or DEFAULT_CONFIG

    if not quote.is_positive:
        raise InvalidPriceQuote(f"price mantissa must be positive, got {quote.mantissa}")

    validate_u128(balance, "balance", cfg.max_value)

    # Guard в форме MAX / 10^AUM_PRECISION / balance > mantissa
    if not has_headroom(balance, quote.mantissa, cfg.aum_precision, cfg.max_value):
        raise ArithmeticOverflow(
            f"asset valuation overflow: balance={balance}, mantissa={quote.mantissa}"
        )

    # Положительная экспонента уходит в числитель, отрицательная в знаменатель
    scale_mul = cfg.aum_precision + max(quote.exponent, 0)
    scale_div = decimals + max(-quote.exponent, 0)

    return guarded_scaled_multiply_divide(
        balance, quote.mantissa, scale_mul, scale_div, cfg.max_value
    )


def compute_aum(
    ledger: VaultLedger,
    prices: Sequence[PriceQuote],
    config: Optional[VaultEngineConfig] = None,
) -> int:
    """
    AUM vault: сумма USD-стоимостей всех активов.

    Args:
        ledger: Состояние vault
        prices: По одной котировке на запись актива, в порядке ledger.entries

    Returns:
        AUM в точности AUM

    Raises:
        InvalidPriceQuote: Если число котировок не совпадает с числом активов
            или какая-либо котировка не положительна
        ArithmeticOverflow: Если оценка любого актива или сумма выходит за домен
    """
    cfg = config or DEFAULT_CONFIG
    entries = ledger.entries

    if len(prices) != len(entries):
        raise InvalidPriceQuote(
            f"vault {ledger.symbol} has {len(entries)} assets, got {len(prices)} quotes"
        )

    aum = 0
    for entry, quote in zip(entries, prices):
        aum += asset_usd_value(entry.balance, entry.decimals, quote, cfg)
        if aum > cfg.max_value:
            raise ArithmeticOverflow(f"AUM of vault {ledger.symbol} exceeds max value")

    return aum


def nav_from_aum(
    aum: int,
    shares_supply: Optional[int],
    config: Optional[VaultEngineConfig] = None,
) -> int:
    """
    NAV по уже вычисленному AUM.

    Нулевой или отсутствующий supply → NAV по умолчанию (1 USD).
    Нулевой AUM при ненулевом supply даёт NAV = 0; это отклоняется
    дальше как AmountTooSmall, а не падением.
    """
    cfg = config or DEFAULT_CONFIG

    if not shares_supply:
        return cfg.default_nav

    validate_u128(shares_supply, "shares_supply", cfg.max_value)
    return mul_div(aum, pow10(cfg.shares_precision), shares_supply, cfg.max_value)


def compute_nav(
    ledger: VaultLedger,
    prices: Sequence[PriceQuote],
    shares_supply: Optional[int],
    config: Optional[VaultEngineConfig] = None,
) -> int:
    """
    NAV vault: USD-стоимость одной share в точности shares.

    Examples:
        NAV(supply=0) == 10^8 независимо от AUM
    """
    cfg = config or DEFAULT_CONFIG

    if not shares_supply:
        return cfg.default_nav

    return nav_from_aum(compute_aum(ledger, prices, cfg), shares_supply, cfg)
