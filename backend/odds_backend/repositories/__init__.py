"""Repository abstractions for database interactions."""

from .bet_repository import BetRepository
from .market_repository import SEED_MARKETS, MarketRepository

__all__ = [
    "BetRepository",
    "MarketRepository",
    "SEED_MARKETS",
]
