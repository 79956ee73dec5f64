"""
PriceQuote — котировка цены актива

price = mantissa × 10^exponent (USD). Котировки живут только в рамках одной
операции и никогда не сохраняются.
"""

from pydantic import BaseModel, Field


class PriceQuote(BaseModel):
    """Котировка: mantissa × 10^exponent."""

    mantissa: int = Field(..., ge=0, description="Мантисса цены (неотрицательная)")
    exponent: int = Field(..., ge=-18, le=18, description="Десятичная экспонента")
    publish_ts_utc_ms: int = Field(
        default=0, ge=0, description="Время публикации котировки (UTC, миллисекунды)"
    )

    model_config = {"frozen": True}

    @property
    def is_positive(self) -> bool:
        return self.mantissa > 0
