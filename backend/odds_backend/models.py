from __future__ import annotations

import secrets
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base

ID_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
ID_LENGTH = 10


class MarketStatus(str, Enum):
    LIVE = "LIVE"
    CLOSED = "CLOSED"


class BetSide(str, Enum):
    YES = "YES"
    NO = "NO"


class BetChain(str, Enum):
    SOLANA = "solana"
    EVM = "evm"


class BetStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    RECEIPT_ONLY = "RECEIPT_ONLY"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Return a short opaque identifier drawn from the base-58 alphabet."""

    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


class Market(Base):
    __tablename__ = "markets"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    yes: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    no: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    status: Mapped[str] = mapped_column(String, nullable=False, default=MarketStatus.LIVE.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    bets: Mapped[list["Bet"]] = relationship("Bet", back_populates="market")


class Bet(Base):
    __tablename__ = "bets"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=generate_id)
    market_id: Mapped[str] = mapped_column(String, ForeignKey("markets.id"), nullable=False)
    side: Mapped[str] = mapped_column(String(3), nullable=False)
    amount_sol: Mapped[Decimal] = mapped_column(Numeric(20, 9), nullable=False)
    wallet: Mapped[str] = mapped_column(String, nullable=False, index=True)
    chain: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    tx: Mapped[str | None] = mapped_column(String, nullable=True)
    proof: Mapped[str | None] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    market: Mapped[Market] = relationship("Market", back_populates="bets")

    __table_args__ = (
        CheckConstraint("side IN ('YES','NO')", name="ck_bets_side"),
        CheckConstraint("amount_sol > 0", name="ck_bets_amount_positive"),
    )
