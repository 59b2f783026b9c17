from __future__ import annotations

import pytest
from pydantic import ValidationError

from helpers import TREASURY
from odds_backend.core.config import Settings


def test_cors_origin_accepts_comma_separated_string():
    settings = Settings(cors_origin=" https://odds.app, http://localhost:3000 ,,")
    assert settings.cors_origin == ["https://odds.app", "http://localhost:3000"]


def test_cors_origin_defaults_to_empty_allow_list():
    assert Settings(cors_origin="").cors_origin == []


def test_blank_secrets_are_treated_as_missing():
    settings = Settings(treasury_pubkey="  ", admin_token="")
    assert settings.treasury_pubkey is None
    assert settings.admin_token is None


def test_treasury_must_be_a_solana_public_key():
    with pytest.raises(ValidationError):
        Settings(treasury_pubkey="0x52908400098527886E0F7030069857D2E4169EE7")

    assert Settings(treasury_pubkey=TREASURY).treasury_pubkey == TREASURY


def test_commitment_is_normalized_and_validated():
    assert Settings(solana_commitment="Finalized").solana_commitment == "finalized"
    with pytest.raises(ValidationError):
        Settings(solana_commitment="eventually")


def test_production_requires_treasury_and_admin_token():
    settings = Settings(environment="production", treasury_pubkey=None, admin_token=None)

    with pytest.raises(ValueError, match="TREASURY_PUBKEY, ADMIN_TOKEN"):
        settings.require_production_secrets()

    Settings(environment="production", treasury_pubkey=TREASURY, admin_token="t").require_production_secrets()
    Settings(environment="development", treasury_pubkey=None, admin_token=None).require_production_secrets()
