"""Custody: интерфейс внешнего хранилища токенов и in-memory реализация."""

from .ledger import CustodyLedger, InMemoryCustodyLedger

__all__ = [
    "CustodyLedger",
    "InMemoryCustodyLedger",
]
