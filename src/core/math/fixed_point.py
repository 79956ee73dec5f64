"""
Fixed-Point Math — целочисленная арифметика с контролем переполнения

Все вычисления vault выполняются в беззнаковом 128-битном домене
(Python int + явные проверки границ). Модуль обеспечивает:
- Масштабированное умножение/деление a * b * 10^m / 10^d без промежуточного усечения
- Guarded-вариант с проверкой запаса: MAX / 10^m / a > b до умножения
- Floor mul_div и перевод между десятичными точностями

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Результат никогда не выходит за MAX_U128 молча → ArithmeticOverflow
2. Отрицательные значения и не-int на входе отклоняются → ValueError
3. Деление всегда floor (округление вниз, в пользу vault)
4. Все операции детерминированы и воспроизводимы
"""

from typing import Final

from src.core.config import MAX_U128
from src.core.errors import ArithmeticOverflow

# Верхняя допустимая степень десяти для масштабирования
MAX_SCALE_EXPONENT: Final[int] = 38


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_u128(value: int, name: str, max_value: int = MAX_U128) -> int:
    """
    Проверка, что значение — целое из беззнакового домена.

    Args:
        value: Проверяемое значение
        name: Имя параметра (для сообщения об ошибке)
        max_value: Верхняя граница домена (default: MAX_U128)

    Returns:
        value без изменений

    Raises:
        ValueError: Если value не int (bool тоже отклоняется) или value < 0
        ArithmeticOverflow: Если value > max_value
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")

    if value > max_value:
        raise ArithmeticOverflow(f"{name}={value} exceeds max value {max_value}")

    return value


def pow10(exponent: int) -> int:
    """
    10^exponent для неотрицательного exponent.

    Raises:
        ValueError: Если exponent вне [0, MAX_SCALE_EXPONENT]
    """
    if exponent < 0 or exponent > MAX_SCALE_EXPONENT:
        raise ValueError(
            f"scale exponent must be in [0, {MAX_SCALE_EXPONENT}], got {exponent}"
        )
    return 10**exponent


# =============================================================================
# ПРОВЕРКА ЗАПАСА (HEADROOM)
# =============================================================================


def has_headroom(a: int, b: int, scale: int = 0, max_value: int = MAX_U128) -> bool:
    """
    Проверка запаса перед умножением: MAX / 10^scale / a > b.

    Нулевой операнд всегда безопасен (произведение = 0).

    Examples:
        >>> has_headroom(100000000, 300000000000, 8)
        True
        >>> has_headroom(2**100, 2**40, 8)
        False
    """
    if a == 0 or b == 0:
        return True
    return max_value // pow10(scale) // a > b


def ensure_headroom(
    a: int,
    b: int,
    scale: int = 0,
    max_value: int = MAX_U128,
    context: str = "multiply",
) -> None:
    """
    Guard перед масштабированным умножением.

    Raises:
        ArithmeticOverflow: Если a * b * 10^scale может выйти за max_value
    """
    if not has_headroom(a, b, scale, max_value):
        raise ArithmeticOverflow(
            f"{context}: {a} * {b} * 10^{scale} exceeds max value {max_value}"
        )


# =============================================================================
# МАСШТАБИРОВАННОЕ УМНОЖЕНИЕ/ДЕЛЕНИЕ
# =============================================================================


def scaled_multiply_divide(
    a: int,
    b: int,
    scale_mul: int,
    scale_div: int,
    max_value: int = MAX_U128,
) -> int:
    """
    Вычисление floor(a * b * 10^scale_mul / 10^scale_div) без промежуточного усечения.

    Промежуточное произведение считается точно (Python int), в домен
    проверяется только результат.

    Args:
        a: Первый множитель (>= 0)
        b: Второй множитель (>= 0)
        scale_mul: Степень десяти в числителе
        scale_div: Степень десяти в знаменателе

    Returns:
        Результат в пределах [0, max_value]

    Raises:
        ArithmeticOverflow: Если результат > max_value

    Examples:
        >>> scaled_multiply_divide(100000000, 300000000000, 8, 16)
        300000000000
    """
    validate_u128(a, "a", max_value)
    validate_u128(b, "b", max_value)

    result = a * b * pow10(scale_mul) // pow10(scale_div)

    if result > max_value:
        raise ArithmeticOverflow(
            f"{a} * {b} * 10^{scale_mul} / 10^{scale_div} exceeds max value {max_value}"
        )
    return result


def guarded_scaled_multiply_divide(
    a: int,
    b: int,
    scale_mul: int,
    scale_div: int,
    max_value: int = MAX_U128,
) -> int:
    """
    Guarded-вариант scaled_multiply_divide.

    До умножения выполняет headroom-проверку MAX / 10^scale_mul / a > b,
    то есть отклоняет пары, произведение которых не помещается в домен
    ещё до деления на 10^scale_div.

    Raises:
        ArithmeticOverflow: Если headroom-проверка не пройдена
    """
    validate_u128(a, "a", max_value)
    validate_u128(b, "b", max_value)
    ensure_headroom(a, b, scale_mul, max_value, context="guarded_scaled_multiply_divide")
    return scaled_multiply_divide(a, b, scale_mul, scale_div, max_value)


def mul_div(a: int, b: int, denominator: int, max_value: int = MAX_U128) -> int:
    """
    floor(a * b / denominator) с guarded-умножением.

    Raises:
        ValueError: Если denominator <= 0
        ArithmeticOverflow: Если a * b выходит за max_value
    """
    validate_u128(a, "a", max_value)
    validate_u128(b, "b", max_value)

    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")

    ensure_headroom(a, b, 0, max_value, context="mul_div")
    return a * b // denominator

