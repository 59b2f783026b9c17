"""Bet persistence helpers.

Every write commits immediately; status changes out of ``PENDING`` are
conditional updates, so two racing confirmations cannot both win.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import desc, select, update
from sqlalchemy.orm import Session

from odds_backend.models import Bet, BetStatus, generate_id, utcnow


class BetRepository:
    """Encapsulate bet creation, lookup and lifecycle transitions."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Mutations

    def create_bet(
        self,
        *,
        market_id: str,
        side: str,
        amount_sol: float | Decimal,
        wallet: str,
        chain: str,
        status: str,
        created_at: datetime | None = None,
    ) -> str:
        bet = Bet(
            id=generate_id(),
            market_id=market_id,
            side=side,
            amount_sol=Decimal(str(amount_sol)),
            wallet=wallet,
            chain=chain,
            status=status,
            created_at=created_at or utcnow(),
        )
        try:
            self._session.add(bet)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return bet.id

    def mark_bet_confirmed(self, bet_id: str, *, tx: str, proof: str | None) -> int:
        return self._finalize(
            bet_id,
            status=BetStatus.CONFIRMED,
            tx=tx,
            proof=proof,
            failure_reason=None,
        )

    def mark_bet_failed(self, bet_id: str, *, tx: str | None, reason: str | None) -> int:
        return self._finalize(
            bet_id,
            status=BetStatus.FAILED,
            tx=tx,
            proof=None,
            failure_reason=reason,
        )

    def _finalize(
        self,
        bet_id: str,
        *,
        status: BetStatus,
        tx: str | None,
        proof: str | None,
        failure_reason: str | None,
    ) -> int:
        """Move a ``PENDING`` bet to ``status``; return the number of rows changed."""

        statement = (
            update(Bet)
            .where(Bet.id == bet_id, Bet.status == BetStatus.PENDING.value)
            .values(status=status.value, tx=tx, proof=proof, failure_reason=failure_reason)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self._session.execute(statement)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Queries

    def get_bet(self, bet_id: str) -> Bet | None:
        bet = self._session.get(Bet, bet_id)
        if bet is not None:
            self._session.refresh(bet)
        return bet

    def list_bets_for_wallet(self, wallet: str) -> Sequence[Bet]:
        query = (
            select(Bet)
            .where(Bet.wallet == wallet)
            .order_by(desc(Bet.created_at), desc(Bet.id))
        )
        return self._session.execute(query).scalars().all()
