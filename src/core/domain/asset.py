"""
AssetDescriptor — описание поддерживаемого актива

Immutable Pydantic модель. type_id — ключ соединения (join key), по которому
активы сравниваются во всех компонентах движка.
"""

from pydantic import BaseModel, Field

from src.core.math.fixed_point import MAX_SCALE_EXPONENT


class AssetDescriptor(BaseModel):
    """
    Описание актива в AssetRegistry.

    Immutable модель (frozen=True): после включения в реестр не меняется.
    """

    symbol: str = Field(..., min_length=1, description="Тикер актива (например, 'WETH')")
    name: str = Field(..., min_length=1, description="Отображаемое имя")
    decimals: int = Field(
        ..., ge=0, le=MAX_SCALE_EXPONENT // 2, description="Десятичная точность актива"
    )
    type_id: str = Field(
        ..., min_length=1, description="Глобально уникальный идентификатор типа актива"
    )
    price_feed_id: str = Field(
        ..., min_length=1, description="Идентификатор внешнего price feed"
    )

    model_config = {"frozen": True}
