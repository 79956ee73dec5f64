"""
Engine Config — параметры fixed-point арифметики и лимиты vault

Единая точка конфигурации для всех вычислений движка:
- Точность AUM/NAV и shares-токена (8 знаков после запятой)
- Верхняя граница u128-домена для проверок переполнения
- Лимиты длины имени и символа vault
- Лимиты withdrawal waterfall (число кандидатов, базисные пункты)
"""

from dataclasses import dataclass
from typing import Final

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Точность USD-оценок (AUM, NAV, USD-стоимость отдельного актива)
AUM_PRECISION: Final[int] = 8

# Точность shares-токена vault
SHARES_PRECISION: Final[int] = 8

# Верхняя граница беззнакового 128-битного домена
MAX_U128: Final[int] = 2**128 - 1

# Знаменатель базисных пунктов (10000 = 100%)
BPS_DENOMINATOR: Final[int] = 10_000

# Максимальное число активов-кандидатов в одном withdrawal
MAX_WITHDRAW_ASSETS: Final[int] = 3

# Лимиты имени/символа vault
MAX_VAULT_NAME_LENGTH: Final[int] = 32
MAX_VAULT_SYMBOL_LENGTH: Final[int] = 10

# Максимальный возраст котировки для gateway со staleness-проверкой
MAX_PRICE_AGE_MS: Final[int] = 60_000


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class VaultEngineConfig:
    """Конфигурация движка оценки и расчётов vault.

    Все движки принимают config=None и используют значения по умолчанию.
    """

    aum_precision: int = AUM_PRECISION
    shares_precision: int = SHARES_PRECISION
    max_value: int = MAX_U128
    max_vault_name_length: int = MAX_VAULT_NAME_LENGTH
    max_vault_symbol_length: int = MAX_VAULT_SYMBOL_LENGTH
    max_withdraw_assets: int = MAX_WITHDRAW_ASSETS
    bps_denominator: int = BPS_DENOMINATOR
    max_price_age_ms: int = MAX_PRICE_AGE_MS

    @property
    def default_nav(self) -> int:
        """NAV по умолчанию: 1 USD в точности shares-токена."""
        return 10**self.shares_precision


DEFAULT_CONFIG: Final[VaultEngineConfig] = VaultEngineConfig()
