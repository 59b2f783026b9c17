from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from fastapi.testclient import TestClient

from helpers import TREASURY, FakeSolanaRpc
from odds_backend.chain.solana import SolanaClient
from odds_backend.core.config import Settings, get_settings
from odds_backend.db import create_db_engine, create_session_factory, get_db, init_db
from odds_backend.main import app, get_solana_client
from odds_backend.repositories import MarketRepository


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'odds.db'}",
        admin_token="admin-secret",
        treasury_pubkey=TREASURY,
        solana_rpc="http://solana-rpc.test",
        cors_origin="",
    )


@pytest.fixture
def session_factory(test_settings):
    engine = create_db_engine(str(test_settings.database_url))
    init_db(bind=engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def market_id(db_session) -> str:
    repo = MarketRepository(db_session)
    repo.seed_if_empty()
    return repo.list_markets()[0].id


@pytest.fixture
def fake_rpc() -> FakeSolanaRpc:
    return FakeSolanaRpc()


@pytest.fixture
def solana_client(fake_rpc, test_settings) -> SolanaClient:
    return SolanaClient(
        str(test_settings.solana_rpc),
        commitment=test_settings.solana_commitment,
        transport=fake_rpc.transport(),
    )


@pytest.fixture
def client(test_settings, session_factory, solana_client):
    """Test client wired to an isolated database and the fake RPC node."""

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_solana_client] = lambda: solana_client
    yield TestClient(app)
    app.dependency_overrides.clear()
