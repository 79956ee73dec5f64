"""
Vault Engine Errors

Все ошибки движка наследуются от VaultEngineError и несут стабильный
машиночитаемый `code` для событий и внешних вызывающих.

Ни одна ошибка не ретраится внутри движка: повтор выполняет только внешний
вызывающий после устранения причины (свежие цены, меньшая сумма и т.д.).
"""


class VaultEngineError(Exception):
    """Базовая ошибка движка vault."""

    code: str = "vault_engine_error"


class NotSupportedAsset(VaultEngineError):
    """Актив (type identifier) отсутствует в AssetRegistry."""

    code = "not_supported_asset"


class DuplicateAsset(VaultEngineError):
    """Актив с таким type identifier уже зарегистрирован."""

    code = "duplicate_asset"


class VaultNotFound(VaultEngineError):
    """Vault с указанным символом не существует."""

    code = "vault_not_found"


class DuplicateVault(VaultEngineError):
    """Символ vault уже занят."""

    code = "duplicate_vault"


class InvalidName(VaultEngineError):
    """Пустое или слишком длинное имя/символ vault."""

    code = "invalid_name"


class InsufficientBalance(VaultEngineError):
    """Баланс вызывающего меньше запрошенного депозита."""

    code = "insufficient_balance"


class ArithmeticOverflow(VaultEngineError):
    """Проверка запаса (headroom) перед умножением не пройдена."""

    code = "arithmetic_overflow"


class AmountTooSmall(VaultEngineError):
    """Вычисленное количество mint/burn равно нулю."""

    code = "amount_too_small"


class InsufficientLiquidity(VaultEngineError):
    """Waterfall исчерпал всех кандидатов, не покрыв целевую стоимость."""

    code = "insufficient_liquidity"


class NotCreator(VaultEngineError):
    """Операция доступна только создателю vault."""

    code = "not_creator"


class InvalidPriceQuote(VaultEngineError):
    """Невалидная котировка: mantissa <= 0 или вектор цен не совпадает с активами."""

    code = "invalid_price_quote"


class PriceUnavailable(VaultEngineError):
    """Котировка отсутствует или устарела (не путать с нулевой ценой)."""

    code = "price_unavailable"


class InvalidRedemptionRequest(VaultEngineError):
    """Некорректный запрос на вывод: процент вне 1..10000 или невалидный список кандидатов."""

    code = "invalid_redemption_request"


class InvalidSwap(VaultEngineError):
    """Некорректный учёт swap: продаваемый и покупаемый актив совпадают."""

    code = "invalid_swap"
