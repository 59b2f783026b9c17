from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from .chain.solana import is_valid_pubkey
from .models import BetSide
from .validation import is_solana_address, parse_amount_sol

# Errors raised with this type carry a client-facing message verbatim.
REQUEST_ERROR_TYPE = "request_invalid"


def request_error(message: str) -> PydanticCustomError:
    return PydanticCustomError(REQUEST_ERROR_TYPE, message)


def _coerce_side(value: Any, message: str) -> BetSide:
    if isinstance(value, BetSide):
        return value
    if value not in (BetSide.YES.value, BetSide.NO.value):
        raise request_error(message)
    return BetSide(value)


# ----------------------------------------------------------------------
# Responses


class Market(BaseModel):
    id: str
    name: str
    category: str
    yes: int
    no: int
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class Bet(BaseModel):
    id: str
    market_id: str
    side: str
    amount_sol: float
    wallet: str
    chain: str
    status: str
    tx: str | None = None
    proof: str | None = None
    failure_reason: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("amount_sol", mode="before")
    @classmethod
    def _coerce_decimal(cls, value: Any) -> float:
        return float(value)


class HealthResponse(BaseModel):
    ok: bool = True
    status: str = "healthy"


class SeedResponse(BaseModel):
    ok: bool = True
    seeded: bool = True
    inserted: int


class MarketList(BaseModel):
    ok: bool = True
    markets: list[Market]


class BetList(BaseModel):
    ok: bool = True
    bets: list[Bet]


class InitiateBetResponse(BaseModel):
    ok: bool = True
    betId: str
    txBase64: str
    lastValidBlockHeight: int


class ConfirmBetResponse(BaseModel):
    ok: bool = True
    betId: str
    txSignature: str
    proof: str


class ConfirmBetRejected(BaseModel):
    ok: bool = False
    reason: str
    status: str | None = None


class EvmReceiptResponse(BaseModel):
    ok: bool = True
    betId: str
    recovered: str


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str


# ----------------------------------------------------------------------
# Requests


class InitiateBetRequest(BaseModel):
    """Body of ``POST /api/bets/initiate``."""

    model_config = ConfigDict(populate_by_name=True)

    market_id: str = Field(default=None, alias="marketId", validate_default=True)
    side: BetSide = Field(default=None, validate_default=True)
    amount_sol: float | None = Field(default=None, alias="amountSol", validate_default=True)
    wallet: str = Field(default=None, validate_default=True)

    @field_validator("market_id", mode="before")
    @classmethod
    def _require_market_id(cls, value: Any) -> str:
        if not isinstance(value, str) or not value:
            raise request_error("marketId is required")
        return value

    @field_validator("side", mode="before")
    @classmethod
    def _validate_side(cls, value: Any) -> BetSide:
        return _coerce_side(value, "side must be YES or NO")

    @field_validator("amount_sol", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> float | None:
        # Unusable amounts fall through to the minimum-amount check.
        return parse_amount_sol(value)

    @field_validator("wallet", mode="before")
    @classmethod
    def _validate_wallet(cls, value: Any) -> str:
        if not is_solana_address(value) or not is_valid_pubkey(value):
            raise request_error("Invalid Solana wallet")
        return value


class ConfirmBetRequest(BaseModel):
    """Body of ``POST /api/bets/confirm``."""

    model_config = ConfigDict(populate_by_name=True)

    bet_id: str = Field(alias="betId")
    tx_signature: str = Field(alias="txSignature")
    wallet: str

    @model_validator(mode="before")
    @classmethod
    def _require_fields(cls, data: Any) -> Any:
        required = ("betId", "txSignature", "wallet")
        if not isinstance(data, dict) or not all(
            isinstance(data.get(key), str) and data.get(key) for key in required
        ):
            raise request_error("betId, txSignature, wallet are required")
        return data


class EvmReceiptRequest(BaseModel):
    """Body of ``POST /api/bets/evm-receipt``."""

    model_config = ConfigDict(populate_by_name=True)

    market_id: str = Field(alias="marketId")
    side: BetSide
    amount: float
    address: str
    message: str
    signature: str

    @model_validator(mode="before")
    @classmethod
    def _require_fields(cls, data: Any) -> Any:
        required = ("marketId", "side", "amount", "address", "message", "signature")
        if not isinstance(data, dict) or not all(data.get(key) for key in required):
            raise request_error("Missing fields")
        return data

    @field_validator("side", mode="before")
    @classmethod
    def _validate_side(cls, value: Any) -> BetSide:
        return _coerce_side(value, "Invalid side")

    @field_validator("amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> float:
        amount = parse_amount_sol(value)
        if amount is None:
            raise request_error("amount must be a positive number")
        return amount

    @field_validator("market_id", "address", "message", "signature", mode="before")
    @classmethod
    def _require_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise request_error("Missing fields")
        return value
