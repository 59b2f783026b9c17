"""Solana transfer construction and verification over JSON-RPC."""

from __future__ import annotations

import base64
import itertools
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger
from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

TX_NOT_FOUND = "TX_NOT_FOUND"
NO_TRANSFER_IN_TX = "NO_TRANSFER_IN_TX"
TX_FAILED = "TX_FAILED"


def is_valid_pubkey(value: str) -> bool:
    try:
        Pubkey.from_string(value)
    except (TypeError, ValueError):
        return False
    return True


def is_valid_signature(value: str) -> bool:
    try:
        Signature.from_string(value)
    except (TypeError, ValueError):
        return False
    return True


@dataclass(slots=True)
class UnsignedTransfer:
    """A serialized transfer transaction waiting for the payer's signature."""

    tx_base64: str
    blockhash: str
    last_valid_block_height: int
    lamports: int


@dataclass(slots=True)
class TransferVerification:
    ok: bool
    reason: str | None = None

    @classmethod
    def success(cls) -> "TransferVerification":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "TransferVerification":
        return cls(ok=False, reason=reason)


class SolanaRpcError(RuntimeError):
    """Raised when the RPC node cannot be reached or answers with an error."""


class SolanaClient:
    """Thin async wrapper around the Solana JSON-RPC methods the bet flow needs."""

    def __init__(
        self,
        rpc_url: str,
        *,
        commitment: str = "confirmed",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.commitment = commitment
        self._ids = itertools.count(1)
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug("Solana RPC {} params={}", method, params)
        try:
            response = await self.client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise SolanaRpcError(f"{method} request failed: {exc}") from exc

        if not isinstance(body, dict):
            raise SolanaRpcError(f"{method} returned a malformed response")
        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise SolanaRpcError(f"{method} failed: {message}")
        return body.get("result")

    async def get_latest_blockhash(self) -> tuple[str, int]:
        result = await self._call("getLatestBlockhash", [{"commitment": self.commitment}])
        try:
            value = result["value"]
            return str(value["blockhash"]), int(value["lastValidBlockHeight"])
        except (KeyError, TypeError, ValueError) as exc:
            raise SolanaRpcError("getLatestBlockhash returned an unexpected payload") from exc

    async def get_parsed_transaction(self, signature: str) -> dict[str, Any] | None:
        # getTransaction rejects "processed"; the weakest level it accepts is "confirmed".
        commitment = "confirmed" if self.commitment == "processed" else self.commitment
        return await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    async def build_transfer_transaction(
        self,
        *,
        from_pubkey: str,
        treasury_pubkey: str,
        lamports: int,
    ) -> UnsignedTransfer:
        """Build an unsigned transfer of ``lamports`` from ``from_pubkey`` to the treasury.

        The payer signs and submits it from their own wallet; no signature is added here.
        """

        payer = Pubkey.from_string(from_pubkey)
        treasury = Pubkey.from_string(treasury_pubkey)
        blockhash, last_valid_block_height = await self.get_latest_blockhash()

        instruction = transfer(
            TransferParams(from_pubkey=payer, to_pubkey=treasury, lamports=lamports)
        )
        message = Message.new_with_blockhash([instruction], payer, Hash.from_string(blockhash))
        transaction = Transaction.new_unsigned(message)
        tx_base64 = base64.b64encode(bytes(transaction)).decode("ascii")
        return UnsignedTransfer(
            tx_base64=tx_base64,
            blockhash=blockhash,
            last_valid_block_height=last_valid_block_height,
            lamports=lamports,
        )

    async def verify_transfer(
        self,
        *,
        signature: str,
        from_pubkey: str,
        to_pubkey: str,
        expected_lamports: int,
    ) -> TransferVerification:
        """Check that ``signature`` moved exactly ``expected_lamports`` between the two accounts."""

        parsed = await self.get_parsed_transaction(signature)
        if not parsed:
            return TransferVerification.failure(TX_NOT_FOUND)

        meta = parsed.get("meta") or {}
        if meta.get("err") is not None:
            return TransferVerification.failure(TX_FAILED)

        message = (parsed.get("transaction") or {}).get("message") or {}
        instruction = next(
            (
                item
                for item in message.get("instructions") or []
                if item.get("program") == "system"
                and (item.get("parsed") or {}).get("type") == "transfer"
            ),
            None,
        )
        if instruction is None:
            return TransferVerification.failure(NO_TRANSFER_IN_TX)

        info = instruction["parsed"].get("info") or {}
        actual_from = info.get("source")
        actual_to = info.get("destination")
        try:
            actual_lamports = int(info.get("lamports"))
        except (TypeError, ValueError):
            actual_lamports = None

        if (
            actual_from == from_pubkey
            and actual_to == to_pubkey
            and actual_lamports == expected_lamports
        ):
            return TransferVerification.success()
        return TransferVerification.failure(
            f"MISMATCH from={actual_from} to={actual_to} lamports={actual_lamports}"
        )

    async def aclose(self) -> None:
        await self.client.aclose()
