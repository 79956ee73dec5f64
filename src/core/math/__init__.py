"""
Core math modules

Целочисленные примитивы fixed-point арифметики с гарантией отсутствия переполнения.
"""

from src.core.math.fixed_point import (
    MAX_SCALE_EXPONENT,
    ensure_headroom,
    guarded_scaled_multiply_divide,
    has_headroom,
    mul_div,
    pow10,
    scaled_multiply_divide,
    validate_u128,
)

__all__ = [
    # Constants
    "MAX_SCALE_EXPONENT",
    # Validation
    "validate_u128",
    "pow10",
    # Headroom guards
    "has_headroom",
    "ensure_headroom",
    # Scaled arithmetic
    "scaled_multiply_divide",
    "guarded_scaled_multiply_divide",
    "mul_div",
]
