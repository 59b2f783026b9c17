from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Annotated

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import schemas
from .chain.solana import SolanaClient
from .core.config import Settings, get_settings, settings
from .db import get_db, init_db, session_scope
from .errors import ApiError, Unauthorized
from .repositories import MarketRepository
from .services.bet_service import BetService
from .services.market_service import MarketService


def build_solana_client(config: Settings) -> SolanaClient:
    return SolanaClient(
        str(config.solana_rpc),
        commitment=config.solana_commitment,
        timeout=config.solana_rpc_timeout,
    )


def cors_allow_origins(config: Settings) -> list[str]:
    """Browser origins allowed by CORS; an empty allow-list admits any origin."""

    return list(config.cors_origin) or ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, seed the catalogue and open the RPC client for the process lifetime."""

    config = get_settings()
    config.require_production_secrets()
    init_db()
    with session_scope() as session:
        inserted = MarketRepository(session).seed_if_empty()
    logger.info("odds-backend starting on :{} (seeded {} markets)", config.port, inserted)

    app.state.solana = build_solana_client(config)
    try:
        yield
    finally:
        await app.state.solana.aclose()
        logger.info("odds-backend shut down")


app = FastAPI(title="Odds Backend API", version="0.1.0", debug=settings.debug, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allow_origins(settings),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------------------------------------------------
# Error envelope


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=int(status_code), content={"ok": False, "error": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    error_type = first.get("type")
    if error_type == schemas.REQUEST_ERROR_TYPE:
        return str(first.get("msg"))
    if error_type == "json_invalid":
        return "Invalid JSON body"
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = location[-1] if location else "body"
    if error_type == "missing":
        return f"{field} is required"
    return f"{field}: {first.get('msg')}"


@app.exception_handler(ApiError)
async def _handle_api_error(_request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error("Request failed with {}: {}", int(exc.status_code), exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def _handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(HTTPStatus.BAD_REQUEST, _validation_message(exc))


@app.exception_handler(StarletteHTTPException)
async def _handle_http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on {} {}", request.method, request.url.path)
    return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal error")


# ----------------------------------------------------------------------
# Dependencies


def get_solana_client(request: Request) -> SolanaClient:
    """Return the process-wide RPC client, creating it when the lifespan did not run."""

    client = getattr(request.app.state, "solana", None)
    if client is None:
        client = build_solana_client(get_settings())
        request.app.state.solana = client
    return client


def _market_service(db=Depends(get_db)) -> MarketService:
    return MarketService(db)


def _bet_service(
    db=Depends(get_db),
    config: Settings = Depends(get_settings),
    solana: SolanaClient = Depends(get_solana_client),
) -> BetService:
    return BetService(db, settings=config, solana=solana)


def _require_admin(
    authorization: Annotated[str | None, Header()] = None,
    config: Settings = Depends(get_settings),
) -> None:
    token = config.admin_token
    if not token or not authorization:
        raise Unauthorized("unauthorized")
    if not secrets.compare_digest(authorization.encode(), f"Bearer {token}".encode()):
        raise Unauthorized("unauthorized")


# ----------------------------------------------------------------------
# Routes


@app.get("/health", response_model=schemas.HealthResponse, tags=["system"])
def health() -> schemas.HealthResponse:
    return schemas.HealthResponse()


@app.post(
    "/admin/seed",
    response_model=schemas.SeedResponse,
    tags=["system"],
    dependencies=[Depends(_require_admin)],
    responses={401: {"model": schemas.ErrorResponse}},
)
def seed_markets(service: MarketService = Depends(_market_service)) -> schemas.SeedResponse:
    """Seed the market catalogue; a no-op once any market exists."""

    return schemas.SeedResponse(inserted=service.seed_if_empty())


@app.get("/api/markets", response_model=schemas.MarketList, tags=["markets"])
def list_markets(service: MarketService = Depends(_market_service)) -> schemas.MarketList:
    """List live markets, oldest first."""

    return schemas.MarketList(markets=service.list_markets())


@app.post(
    "/api/bets/initiate",
    response_model=schemas.InitiateBetResponse,
    tags=["bets"],
    responses={400: {"model": schemas.ErrorResponse}, 502: {"model": schemas.ErrorResponse}},
)
async def initiate_bet(
    payload: schemas.InitiateBetRequest,
    service: BetService = Depends(_bet_service),
) -> schemas.InitiateBetResponse:
    """Record a pending bet and return the unsigned transfer for the wallet to sign."""

    return await service.initiate(payload)


@app.post(
    "/api/bets/confirm",
    response_model=schemas.ConfirmBetResponse | schemas.ConfirmBetRejected,
    tags=["bets"],
    response_model_exclude_none=True,
    responses={400: {"model": schemas.ConfirmBetRejected}},
)
async def confirm_bet(
    payload: schemas.ConfirmBetRequest,
    response: Response,
    service: BetService = Depends(_bet_service),
):
    """Verify the submitted transfer on-chain and finalize the bet."""

    outcome = await service.confirm(payload)
    if isinstance(outcome, schemas.ConfirmBetRejected):
        response.status_code = HTTPStatus.BAD_REQUEST
    return outcome


@app.post(
    "/api/bets/evm-receipt",
    response_model=schemas.EvmReceiptResponse,
    tags=["bets"],
    responses={400: {"model": schemas.ErrorResponse}},
)
def record_evm_receipt(
    payload: schemas.EvmReceiptRequest,
    service: BetService = Depends(_bet_service),
) -> schemas.EvmReceiptResponse:
    """Record a receipt-only bet attested by an EVM personal-sign signature."""

    return service.record_evm_receipt(payload)


@app.get("/api/bets/by/{wallet}", response_model=schemas.BetList, tags=["bets"])
def list_bets_for_wallet(
    wallet: str,
    service: BetService = Depends(_bet_service),
) -> schemas.BetList:
    """List a wallet's bets across both chains, newest first."""

    return schemas.BetList(bets=service.list_bets_for_wallet(wallet))
