"""Persistence providers and the strategy that selects between them."""

from .persistence_strategy import PersistenceStrategy
from .providers_base import AddResult, PersistenceProvider
from .providers_pinata import PinataProvider

__all__ = [
    "AddResult",
    "PersistenceProvider",
    "PersistenceStrategy",
    "PinataProvider",
]
