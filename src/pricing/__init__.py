"""Pricing: интерфейс внешнего price gateway и in-memory реализация."""

from .gateway import PricingGateway, StaticPricingGateway, fetch_vault_quotes

__all__ = [
    "PricingGateway",
    "StaticPricingGateway",
    "fetch_vault_quotes",
]
