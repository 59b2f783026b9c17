"""Market persistence helpers."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence

from loguru import logger
from sqlalchemy import asc, func, select
from sqlalchemy.orm import Session

from odds_backend.models import Market, MarketStatus, utcnow

# (name, category, yes, no); odds are illustrative and never recomputed.
SEED_MARKETS: tuple[tuple[str, str, int, int], ...] = (
    ("New York City Mayoral Election", "Politics", 62, 38),
    ("New Jersey Governor Election 2025", "Politics", 74, 26),
    ("Democratic sweep in Congress?", "Politics", 41, 59),
    ("Zohra Mamdani margin > 10%", "Politics", 28, 72),
    ("Heat vs Clippers — Heat win", "Sports", 46, 54),
    ("Kraken beat Blackhawks", "Sports", 64, 36),
    ("Canucks beat Predators", "Sports", 58, 42),
    ("Seattle vs Minnesota — Seattle win", "Sports", 62, 38),
    ("US Gov shutdown ends by next week", "Macro", 14, 86),
    ("Fed rate cut in December", "Macro", 35, 65),
    ("BTC > $100k by EOY", "Crypto", 22, 78),
    ("SOL > $400 by Q4", "Crypto", 31, 69),
    ("ETH ETF approved this quarter", "Crypto", 27, 73),
    ("Israel–Hamas ceasefire this month", "Politics", 18, 82),
    ("Maduro out by year end", "Politics", 21, 79),
    ("US CPI MoM < 0.1% next print", "Macro", 44, 56),
    ("OpenAI releases new flagship model", "Tech", 52, 48),
    ("Apple headset > 5M shipments in 2026", "Tech", 19, 81),
    ("Bitcoin dominance > 60% this year", "Crypto", 33, 67),
    ("S&P 500 makes new ATH this quarter", "Macro", 48, 52),
)


class MarketRepository:
    """Encapsulate market reads and the one-time catalogue seed."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_markets(self) -> Sequence[Market]:
        query = (
            select(Market)
            .where(Market.status == MarketStatus.LIVE.value)
            .order_by(asc(Market.created_at))
        )
        return self._session.execute(query).scalars().all()

    def get_market(self, market_id: str) -> Market | None:
        return self._session.get(Market, market_id)

    def count_markets(self) -> int:
        return self._session.execute(select(func.count(Market.id))).scalar_one()

    def seed_if_empty(self, *, now: datetime | None = None) -> int:
        """Insert the fixed market catalogue when the table is empty.

        Returns the number of inserted markets; zero when any market already exists.
        """

        if self.count_markets() > 0:
            return 0

        base_time = now or utcnow()
        # Offset each row so listing preserves catalogue order.
        markets = [
            Market(
                name=name,
                category=category,
                yes=yes,
                no=no,
                status=MarketStatus.LIVE.value,
                created_at=base_time + timedelta(microseconds=index),
            )
            for index, (name, category, yes, no) in enumerate(SEED_MARKETS)
        ]
        try:
            self._session.add_all(markets)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("Seeded {} markets", len(markets))
        return len(markets)
