"""Test helpers shared across test files."""

from __future__ import annotations

import base64
import json
import struct
from typing import Any

import httpx
from solders.transaction import Transaction

SYSTEM_PROGRAM = "11111111111111111111111111111111"
WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
OTHER_WALLET = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TREASURY = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BLOCKHASH = "EETubP5AKHgjPAhzPAFcb8BAY1hMH639CWCFTqi3hq1k"
TX_SIGNATURE = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"
OTHER_TX_SIGNATURE = "4" + "Zq" * 43 + "z"


def parsed_transfer(
    source: str,
    destination: str,
    lamports: int,
    *,
    err: Any = None,
    extra_instructions: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a ``getTransaction`` (jsonParsed) result holding one system transfer."""

    instructions = list(extra_instructions or [])
    instructions.append(
        {
            "program": "system",
            "programId": SYSTEM_PROGRAM,
            "parsed": {
                "type": "transfer",
                "info": {"source": source, "destination": destination, "lamports": lamports},
            },
            "stackHeight": None,
        }
    )
    return {
        "slot": 250_000_000,
        "blockTime": 1_700_000_000,
        "meta": {"err": err, "fee": 5000},
        "transaction": {
            "signatures": [TX_SIGNATURE],
            "message": {"instructions": instructions},
        },
    }


class FakeSolanaRpc:
    """In-process JSON-RPC node served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.blockhash = BLOCKHASH
        self.last_valid_block_height = 280_000_150
        self.transactions: dict[str, dict[str, Any] | None] = {}
        self.calls: list[dict[str, Any]] = []
        self.unavailable = False

    def methods(self) -> list[str]:
        return [call["method"] for call in self.calls]

    def handle(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.calls.append(payload)
        if self.unavailable:
            return httpx.Response(503, json={"error": "node unavailable"})

        method = payload["method"]
        if method == "getLatestBlockhash":
            result: Any = {
                "context": {"slot": 250_000_000},
                "value": {
                    "blockhash": self.blockhash,
                    "lastValidBlockHeight": self.last_valid_block_height,
                },
            }
        elif method == "getTransaction":
            result = self.transactions.get(payload["params"][0])
        else:
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": payload["id"],
                    "error": {"code": -32601, "message": "Method not found"},
                },
            )
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


def decode_transfer(tx_base64: str) -> tuple[Transaction, str, str, int]:
    """Decode a serialized transfer into (transaction, source, destination, lamports)."""

    transaction = Transaction.from_bytes(base64.b64decode(tx_base64))
    keys = transaction.message.account_keys
    instruction = transaction.message.instructions[0]
    assert str(keys[instruction.program_id_index]) == SYSTEM_PROGRAM
    kind, lamports = struct.unpack("<IQ", bytes(instruction.data))
    assert kind == 2
    accounts = bytes(instruction.accounts)
    return transaction, str(keys[accounts[0]]), str(keys[accounts[1]]), lamports
