"""
PricingGateway — интерфейс получения котировок

Движок только потребляет котировки: обновление и доставка цен — внешний
сервис. Отсутствующая или устаревшая котировка — отдельная ошибка
PriceUnavailable, никогда не нулевая/дефолтная цена.

Состав:
- PricingGateway: протокол fetch_quotes(feed_ids) → котировки в том же порядке
- StaticPricingGateway: in-memory реализация со staleness-проверкой
- fetch_vault_quotes: снапшот котировок для всех активов vault за один вызов
"""

import logging
import time
from typing import Callable, Optional, Protocol, Sequence

from src.core.config import DEFAULT_CONFIG, VaultEngineConfig
from src.core.domain.price import PriceQuote
from src.core.domain.vault import VaultLedger
from src.core.errors import PriceUnavailable
from src.registry.asset_registry import AssetRegistry

_LOG = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class PricingGateway(Protocol):
    def fetch_quotes(self, feed_ids: Sequence[str]) -> list[PriceQuote]:
        """По одной котировке на feed_id, в порядке запроса."""
        ...


class StaticPricingGateway:
    """
    In-memory gateway: котировки публикуются явно через publish().

    Котировка старше max_age_ms относительно clock() считается устаревшей.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], int]] = None,
        max_age_ms: Optional[int] = None,
        config: Optional[VaultEngineConfig] = None,
    ):
        cfg = config or DEFAULT_CONFIG
        self.clock = clock or _now_ms
        self.max_age_ms = cfg.max_price_age_ms if max_age_ms is None else max_age_ms
        self._quotes: dict[str, PriceQuote] = {}

    def publish(
        self,
        feed_id: str,
        mantissa: int,
        exponent: int,
        publish_ts_utc_ms: Optional[int] = None,
    ) -> PriceQuote:
        quote = PriceQuote(
            mantissa=mantissa,
            exponent=exponent,
            publish_ts_utc_ms=self.clock() if publish_ts_utc_ms is None else publish_ts_utc_ms,
        )
        self._quotes[feed_id] = quote
        return quote

    def fetch_quotes(self, feed_ids: Sequence[str]) -> list[PriceQuote]:
        """
        Raises:
            PriceUnavailable: Котировка отсутствует или устарела
        """
        now = self.clock()
        quotes = []

        for feed_id in feed_ids:
            quote = self._quotes.get(feed_id)
            if quote is None:
                raise PriceUnavailable(f"no quote published for feed {feed_id}")

            age_ms = now - quote.publish_ts_utc_ms
            if age_ms > self.max_age_ms:
                raise PriceUnavailable(
                    f"quote for feed {feed_id} is stale: age={age_ms}ms > {self.max_age_ms}ms"
                )
            quotes.append(quote)

        return quotes


def fetch_vault_quotes(
    gateway: PricingGateway,
    registry: AssetRegistry,
    ledger: VaultLedger,
    extra_type_ids: Sequence[str] = (),
) -> dict[str, PriceQuote]:
    """
    Снапшот котировок для операции над vault.

    Все активы vault (плюс extra_type_ids, например актив нового депозита)
    запрашиваются одним вызовом; в ходе операции цены не перезапрашиваются.

    Returns:
        type_id → PriceQuote, порядок ключей = порядок ledger.entries, затем extra

    Raises:
        NotSupportedAsset: Актив отсутствует в реестре
        PriceUnavailable: Из gateway
    """
    type_ids = list(ledger.asset_type_ids)
    for type_id in extra_type_ids:
        if type_id not in type_ids:
            type_ids.append(type_id)

    feed_ids = [registry.require(type_id).price_feed_id for type_id in type_ids]
    quotes = gateway.fetch_quotes(feed_ids)

    if len(quotes) != len(feed_ids):
        raise PriceUnavailable(
            f"gateway returned {len(quotes)} quotes for {len(feed_ids)} feeds"
        )

    _LOG.debug("fetched %d quotes for vault %s", len(quotes), ledger.symbol)
    return dict(zip(type_ids, quotes))


