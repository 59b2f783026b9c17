"""Read-only market listing plus the catalogue seed."""

from __future__ import annotations

from sqlalchemy.orm import Session

from odds_backend.repositories import MarketRepository
from odds_backend.schemas import Market


class MarketService:
    def __init__(self, session: Session) -> None:
        self._market_repo = MarketRepository(session)

    def list_markets(self) -> list[Market]:
        return [Market.model_validate(record) for record in self._market_repo.list_markets()]

    def seed_if_empty(self) -> int:
        return self._market_repo.seed_if_empty()
