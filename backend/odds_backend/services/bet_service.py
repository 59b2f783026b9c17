"""Bet lifecycle: initiate, confirm against the chain, record signed receipts.

State machine::

    (start) -> PENDING -> CONFIRMED | FAILED
    (start) -> RECEIPT_ONLY

Terminal states never change; leaving ``PENDING`` is a conditional update in
:class:`~odds_backend.repositories.BetRepository`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger
from sqlalchemy.orm import Session

from odds_backend.chain.evm import signature_matches
from odds_backend.chain.solana import SolanaClient, SolanaRpcError, is_valid_signature
from odds_backend.core.config import MAX_LAMPORTS, Settings
from odds_backend.errors import ChainRpcError, ConfigurationError
from odds_backend.models import Bet, BetChain, BetStatus
from odds_backend.repositories import BetRepository, MarketRepository
from odds_backend.schemas import (
    Bet as BetSchema,
    ConfirmBetRejected,
    ConfirmBetRequest,
    ConfirmBetResponse,
    EvmReceiptRequest,
    EvmReceiptResponse,
    InitiateBetRequest,
    InitiateBetResponse,
)
from odds_backend.validation import ensure, to_lamports

ALREADY_FINALIZED = "ALREADY_FINALIZED"

ProofBuilder = Callable[[str, str], str]


def placeholder_proof(bet_id: str, tx_signature: str) -> str:
    """Opaque receipt for a confirmed bet; stands in for a verifiable credential."""

    return f"bet:{bet_id}:sig:{tx_signature}"


class BetService:
    """Coordinate bet persistence with the Solana and EVM chain adapters."""

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings,
        solana: SolanaClient,
        proof_builder: ProofBuilder = placeholder_proof,
    ) -> None:
        self._settings = settings
        self._solana = solana
        self._proof_builder = proof_builder
        self._bet_repo = BetRepository(session)
        self._market_repo = MarketRepository(session)

    def _require_treasury(self) -> str:
        treasury = self._settings.treasury_pubkey
        if not treasury:
            raise ConfigurationError("TREASURY_PUBKEY not set")
        return treasury

    # ------------------------------------------------------------------
    # Solana transfer flow

    async def initiate(self, request: InitiateBetRequest) -> InitiateBetResponse:
        minimum = self._settings.min_bet_sol
        amount = request.amount_sol
        ensure(amount is not None and amount >= minimum, f"Minimum amount is {minimum:g} SOL")
        lamports = to_lamports(amount)
        ensure(lamports <= MAX_LAMPORTS, "amountSol exceeds the largest transferable amount")
        market = await asyncio.to_thread(self._market_repo.get_market, request.market_id)
        ensure(market, "Unknown market")
        treasury = self._require_treasury()

        bet_id = await asyncio.to_thread(
            self._bet_repo.create_bet,
            market_id=request.market_id,
            side=request.side.value,
            amount_sol=amount,
            wallet=request.wallet,
            chain=BetChain.SOLANA.value,
            status=BetStatus.PENDING.value,
        )
        try:
            unsigned = await self._solana.build_transfer_transaction(
                from_pubkey=request.wallet,
                treasury_pubkey=treasury,
                lamports=lamports,
            )
        except SolanaRpcError as exc:
            logger.error("Could not build transfer for bet {}: {}", bet_id, exc)
            raise ChainRpcError("Solana RPC unavailable") from exc

        logger.info(
            "Initiated bet {} market={} side={} lamports={} wallet={}",
            bet_id,
            request.market_id,
            request.side.value,
            lamports,
            request.wallet,
        )
        return InitiateBetResponse(
            betId=bet_id,
            txBase64=unsigned.tx_base64,
            lastValidBlockHeight=unsigned.last_valid_block_height,
        )

    async def confirm(self, request: ConfirmBetRequest) -> ConfirmBetResponse | ConfirmBetRejected:
        bet = await asyncio.to_thread(self._bet_repo.get_bet, request.bet_id)
        ensure(bet, "Bet not found")
        ensure(bet.wallet == request.wallet, "Wallet mismatch")

        if bet.status != BetStatus.PENDING.value:
            return self._finalized_outcome(bet, request.tx_signature)

        ensure(is_valid_signature(request.tx_signature), "Invalid transaction signature")
        treasury = self._require_treasury()
        bet_id = bet.id
        expected_lamports = to_lamports(bet.amount_sol)

        try:
            verification = await self._solana.verify_transfer(
                signature=request.tx_signature,
                from_pubkey=request.wallet,
                to_pubkey=treasury,
                expected_lamports=expected_lamports,
            )
        except SolanaRpcError as exc:
            logger.error("Could not verify transfer for bet {}: {}", bet_id, exc)
            raise ChainRpcError("Solana RPC unavailable") from exc

        if not verification.ok:
            changed = await asyncio.to_thread(
                self._bet_repo.mark_bet_failed,
                bet_id,
                tx=request.tx_signature,
                reason=verification.reason,
            )
            if not changed:
                return await self._reread_outcome(bet_id, request.tx_signature)
            logger.warning("Bet {} failed verification: {}", bet_id, verification.reason)
            return ConfirmBetRejected(reason=verification.reason or "VERIFICATION_FAILED")

        proof = self._proof_builder(bet_id, request.tx_signature)
        changed = await asyncio.to_thread(
            self._bet_repo.mark_bet_confirmed, bet_id, tx=request.tx_signature, proof=proof
        )
        if not changed:
            return await self._reread_outcome(bet_id, request.tx_signature)

        logger.info("Confirmed bet {} tx={}", bet_id, request.tx_signature)
        return ConfirmBetResponse(betId=bet_id, txSignature=request.tx_signature, proof=proof)

    async def _reread_outcome(
        self, bet_id: str, tx_signature: str
    ) -> ConfirmBetResponse | ConfirmBetRejected:
        bet = await asyncio.to_thread(self._bet_repo.get_bet, bet_id)
        return self._finalized_outcome(bet, tx_signature)

    def _finalized_outcome(
        self, bet: Bet | None, tx_signature: str
    ) -> ConfirmBetResponse | ConfirmBetRejected:
        """Answer a confirmation for a bet that has already left ``PENDING``."""

        ensure(bet, "Bet not found")
        if bet.status == BetStatus.CONFIRMED.value and bet.tx == tx_signature:
            proof = bet.proof or self._proof_builder(bet.id, tx_signature)
            return ConfirmBetResponse(betId=bet.id, txSignature=tx_signature, proof=proof)
        return ConfirmBetRejected(reason=ALREADY_FINALIZED, status=bet.status)

    # ------------------------------------------------------------------
    # EVM signed-receipt flow

    def record_evm_receipt(self, request: EvmReceiptRequest) -> EvmReceiptResponse:
        matches, recovered = signature_matches(request.message, request.signature, request.address)
        ensure(matches, "Invalid signature")
        ensure(self._market_repo.get_market(request.market_id), "Unknown market")

        bet_id = self._bet_repo.create_bet(
            market_id=request.market_id,
            side=request.side.value,
            amount_sol=request.amount,
            wallet=request.address,
            chain=BetChain.EVM.value,
            status=BetStatus.RECEIPT_ONLY.value,
        )
        logger.info("Recorded receipt-only bet {} signer={}", bet_id, recovered)
        return EvmReceiptResponse(betId=bet_id, recovered=recovered)

    # ------------------------------------------------------------------
    # Queries

    def list_bets_for_wallet(self, wallet: str) -> list[BetSchema]:
        return [BetSchema.model_validate(bet) for bet in self._bet_repo.list_bets_for_wallet(wallet)]
