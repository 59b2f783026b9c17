"""EVM personal-sign (EIP-191) signature recovery."""

from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct
from loguru import logger


class SignatureRecoveryError(ValueError):
    """Raised when a signature cannot be decoded or recovered."""


def recover_signer(message: str, signature: str) -> str:
    """Return the checksum address that produced ``signature`` over ``message``."""

    try:
        encoded = encode_defunct(text=message)
        return Account.recover_message(encoded, signature=signature)
    except Exception as exc:
        logger.warning("Could not recover EVM signer: {}", exc)
        raise SignatureRecoveryError(str(exc)) from exc


def signature_matches(message: str, signature: str, address: str) -> tuple[bool, str | None]:
    """Check whether ``address`` signed ``message``; addresses compare case-insensitively."""

    try:
        recovered = recover_signer(message, signature)
    except SignatureRecoveryError:
        return False, None
    return recovered.lower() == address.lower(), recovered
