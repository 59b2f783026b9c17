"""Chain adapters used by the bet lifecycle."""

from .evm import SignatureRecoveryError, recover_signer, signature_matches
from .solana import SolanaClient, SolanaRpcError, TransferVerification, UnsignedTransfer

__all__ = [
    "SignatureRecoveryError",
    "SolanaClient",
    "SolanaRpcError",
    "TransferVerification",
    "UnsignedTransfer",
    "recover_signer",
    "signature_matches",
]
