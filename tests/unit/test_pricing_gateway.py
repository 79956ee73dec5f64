"""
Тесты для PricingGateway

Проверяет:
1. Порядок котировок совпадает с порядком запроса
2. Отсутствующая и устаревшая котировка → PriceUnavailable
3. Снапшот котировок vault (fetch_vault_quotes)
"""

import pytest

from src.core.domain import AssetDescriptor, VaultLedger
from src.core.errors import NotSupportedAsset, PriceUnavailable
from src.pricing import StaticPricingGateway, fetch_vault_quotes
from src.registry import AssetRegistry

NOW_MS = 1_700_000_000_000

WETH = "0x1::weth::WETH"
USDC = "0x1::usdc::USDC"


@pytest.fixture
def gateway() -> StaticPricingGateway:
    gw = StaticPricingGateway(clock=lambda: NOW_MS)
    gw.publish("ETH/USD", 300_000_000_000, -8)
    gw.publish("USDC/USD", 100_000_000, -8)
    return gw


@pytest.fixture
def registry() -> AssetRegistry:
    return AssetRegistry(
        [
            AssetDescriptor(symbol="WETH", name="Wrapped Ether", decimals=8, type_id=WETH, price_feed_id="ETH/USD"),
            AssetDescriptor(symbol="USDC", name="USD Coin", decimals=6, type_id=USDC, price_feed_id="USDC/USD"),
        ]
    )


class TestStaticPricingGateway:
    def test_quotes_in_request_order(self, gateway: StaticPricingGateway) -> None:
        quotes = gateway.fetch_quotes(["USDC/USD", "ETH/USD"])
        assert [q.mantissa for q in quotes] == [100_000_000, 300_000_000_000]

    def test_publish_uses_clock(self, gateway: StaticPricingGateway) -> None:
        assert gateway.fetch_quotes(["ETH/USD"])[0].publish_ts_utc_ms == NOW_MS

    def test_missing_quote(self, gateway: StaticPricingGateway) -> None:
        with pytest.raises(PriceUnavailable, match="no quote"):
            gateway.fetch_quotes(["ETH/USD", "BTC/USD"])

    def test_stale_quote(self) -> None:
        gw = StaticPricingGateway(clock=lambda: NOW_MS)
        gw.publish("ETH/USD", 300_000_000_000, -8, publish_ts_utc_ms=NOW_MS - 60_001)

        with pytest.raises(PriceUnavailable, match="stale"):
            gw.fetch_quotes(["ETH/USD"])

    def test_max_age_boundary(self) -> None:
        gw = StaticPricingGateway(clock=lambda: NOW_MS, max_age_ms=1_000)
        gw.publish("ETH/USD", 300_000_000_000, -8, publish_ts_utc_ms=NOW_MS - 1_000)
        assert len(gw.fetch_quotes(["ETH/USD"])) == 1

    def test_zero_price_is_not_unavailable(self, gateway: StaticPricingGateway) -> None:
        """Нулевая цена доставляется как есть; отклоняет её ValuationEngine"""
        gateway.publish("ETH/USD", 0, -8)
        assert gateway.fetch_quotes(["ETH/USD"])[0].mantissa == 0


class TestFetchVaultQuotes:
    def test_ledger_order_then_extra(self, gateway, registry) -> None:
        ledger = VaultLedger("alice", "Index", "IDX", "0" * 64, 0)
        ledger.credit(USDC, 6, 1)

        quotes = fetch_vault_quotes(gateway, registry, ledger, [WETH])

        assert list(quotes) == [USDC, WETH]
        assert quotes[WETH].mantissa == 300_000_000_000

    def test_extra_already_held_not_duplicated(self, gateway, registry) -> None:
        ledger = VaultLedger("alice", "Index", "IDX", "0" * 64, 0)
        ledger.credit(WETH, 8, 1)

        assert list(fetch_vault_quotes(gateway, registry, ledger, [WETH])) == [WETH]

    def test_unsupported_extra(self, gateway, registry) -> None:
        ledger = VaultLedger("alice", "Index", "IDX", "0" * 64, 0)
        with pytest.raises(NotSupportedAsset):
            fetch_vault_quotes(gateway, registry, ledger, ["0x1::doge::DOGE"])
