"""AssetRegistry — каталог поддерживаемых активов (один на deployment)."""

import logging
from typing import Iterable, Optional

from src.core.domain.asset import AssetDescriptor
from src.core.errors import DuplicateAsset, NotSupportedAsset

_LOG = logging.getLogger(__name__)


class AssetRegistry:
    """
    Реестр поддерживаемых активов.

    Lookup по type_id за O(1); перечисление в порядке добавления.
    Добавленный актив неизменяем и не удаляется.
    """

    def __init__(self, assets: Optional[Iterable[AssetDescriptor]] = None):
        self._assets: dict[str, AssetDescriptor] = {}
        for asset in assets or ():
            self.support_asset(asset)

    def support_asset(self, descriptor: AssetDescriptor) -> AssetDescriptor:
        """
        Добавление актива в реестр.

        Raises:
            DuplicateAsset: Если type_id уже зарегистрирован
        """
        if descriptor.type_id in self._assets:
            raise DuplicateAsset(f"asset {descriptor.type_id} is already supported")

        self._assets[descriptor.type_id] = descriptor
        _LOG.info(
            "asset supported: type_id=%s symbol=%s decimals=%d feed=%s",
            descriptor.type_id,
            descriptor.symbol,
            descriptor.decimals,
            descriptor.price_feed_id,
        )
        return descriptor

    def is_supported(self, type_id: str) -> bool:
        return type_id in self._assets

    def get(self, type_id: str) -> Optional[AssetDescriptor]:
        return self._assets.get(type_id)

    def require(self, type_id: str) -> AssetDescriptor:
        """
        Raises:
            NotSupportedAsset: Если актив не зарегистрирован
        """
        descriptor = self._assets.get(type_id)
        if descriptor is None:
            raise NotSupportedAsset(f"asset {type_id} is not supported")
        return descriptor

    def list_assets(self) -> list[AssetDescriptor]:
        return list(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._assets
