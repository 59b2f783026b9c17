"""Error types surfaced through the ``{ok: false, error}`` envelope."""

from __future__ import annotations

from http import HTTPStatus


class ApiError(Exception):
    """An error whose message is safe to return to the client."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = int(status_code)


class ValidationFailed(ApiError):
    status_code = HTTPStatus.BAD_REQUEST


class Unauthorized(ApiError):
    status_code = HTTPStatus.UNAUTHORIZED


class ConfigurationError(ApiError):
    """A required server-side setting is missing."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class ChainRpcError(ApiError):
    """The Solana RPC endpoint could not be reached or returned an error."""

    status_code = HTTPStatus.BAD_GATEWAY


__all__ = [
    "ApiError",
    "ChainRpcError",
    "ConfigurationError",
    "Unauthorized",
    "ValidationFailed",
]
