from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from helpers import OTHER_WALLET, TX_SIGNATURE, WALLET
from odds_backend.models import BetStatus, ID_ALPHABET, ID_LENGTH, MarketStatus
from odds_backend.repositories import SEED_MARKETS, BetRepository, MarketRepository


def _pending_bet(repo: BetRepository, market_id: str, **overrides) -> str:
    fields = {
        "market_id": market_id,
        "side": "YES",
        "amount_sol": 0.25,
        "wallet": WALLET,
        "chain": "solana",
        "status": BetStatus.PENDING.value,
    }
    fields.update(overrides)
    return repo.create_bet(**fields)


def test_seed_if_empty_is_idempotent(db_session):
    repo = MarketRepository(db_session)

    assert repo.seed_if_empty() == len(SEED_MARKETS)
    assert repo.seed_if_empty() == 0
    assert repo.count_markets() == len(SEED_MARKETS)


def test_list_markets_returns_live_markets_in_catalogue_order(db_session):
    repo = MarketRepository(db_session)
    repo.seed_if_empty()

    markets = repo.list_markets()
    assert [market.name for market in markets] == [name for name, *_ in SEED_MARKETS]

    closed = markets[0]
    closed.status = MarketStatus.CLOSED.value
    db_session.commit()

    live = repo.list_markets()
    assert closed.id not in {market.id for market in live}
    assert all(market.status == MarketStatus.LIVE.value for market in live)


def test_get_market_returns_none_for_unknown_id(db_session):
    assert MarketRepository(db_session).get_market("missing") is None


def test_create_bet_generates_short_id(db_session, market_id):
    repo = BetRepository(db_session)

    bet_id = _pending_bet(repo, market_id)

    assert len(bet_id) == ID_LENGTH
    assert set(bet_id) <= set(ID_ALPHABET)
    bet = repo.get_bet(bet_id)
    assert bet.status == BetStatus.PENDING.value
    assert bet.amount_sol == Decimal("0.25")
    assert bet.tx is None and bet.proof is None


def test_create_bet_rejects_unknown_market(db_session, market_id):
    with pytest.raises(IntegrityError):
        _pending_bet(BetRepository(db_session), "nope")


def test_create_bet_rejects_invalid_side(db_session, market_id):
    with pytest.raises(IntegrityError):
        _pending_bet(BetRepository(db_session), market_id, side="MAYBE")


def test_mark_bet_confirmed_stores_tx_and_proof(db_session, market_id):
    repo = BetRepository(db_session)
    bet_id = _pending_bet(repo, market_id)

    assert repo.mark_bet_confirmed(bet_id, tx=TX_SIGNATURE, proof="proof-1") == 1

    bet = repo.get_bet(bet_id)
    assert bet.status == BetStatus.CONFIRMED.value
    assert bet.tx == TX_SIGNATURE
    assert bet.proof == "proof-1"


def test_mark_bet_failed_persists_reason(db_session, market_id):
    repo = BetRepository(db_session)
    bet_id = _pending_bet(repo, market_id)

    assert repo.mark_bet_failed(bet_id, tx=TX_SIGNATURE, reason="TX_NOT_FOUND") == 1

    bet = repo.get_bet(bet_id)
    assert bet.status == BetStatus.FAILED.value
    assert bet.failure_reason == "TX_NOT_FOUND"
    assert bet.proof is None


def test_terminal_bets_are_not_updated_again(db_session, market_id):
    repo = BetRepository(db_session)
    bet_id = _pending_bet(repo, market_id)
    repo.mark_bet_confirmed(bet_id, tx=TX_SIGNATURE, proof="proof-1")

    assert repo.mark_bet_failed(bet_id, tx="other", reason="MISMATCH") == 0
    assert repo.get_bet(bet_id).status == BetStatus.CONFIRMED.value

    receipt_id = _pending_bet(repo, market_id, chain="evm", status=BetStatus.RECEIPT_ONLY.value)
    assert repo.mark_bet_confirmed(receipt_id, tx=TX_SIGNATURE, proof="p") == 0
    assert repo.get_bet(receipt_id).status == BetStatus.RECEIPT_ONLY.value


def test_mark_unknown_bet_changes_nothing(db_session):
    assert BetRepository(db_session).mark_bet_confirmed("missing", tx="t", proof="p") == 0


def test_list_bets_for_wallet_newest_first(db_session, market_id):
    repo = BetRepository(db_session)
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    older = _pending_bet(repo, market_id, created_at=start)
    newer = _pending_bet(
        repo,
        market_id,
        chain="evm",
        status=BetStatus.RECEIPT_ONLY.value,
        created_at=start + timedelta(minutes=5),
    )
    _pending_bet(repo, market_id, wallet=OTHER_WALLET)

    bets = repo.list_bets_for_wallet(WALLET)

    assert [bet.id for bet in bets] == [newer, older]
    assert repo.list_bets_for_wallet("unknown-wallet") == []
