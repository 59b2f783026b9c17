from functools import lru_cache
from typing import Any

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey

LAMPORTS_PER_SOL = 1_000_000_000
MAX_LAMPORTS = 2**64 - 1

VALID_COMMITMENTS = {"processed", "confirmed", "finalized"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///./data/odds.db",
        description="SQLAlchemy compatible database URL",
    )
    port: int = Field(default=8080, description="Port the HTTP server listens on", ge=1, le=65535)
    admin_token: str | None = Field(
        default=None,
        description="Bearer token required by the admin endpoints",
    )
    cors_origin: list[str] | str = Field(
        default_factory=list,
        description="Comma-separated list of allowed browser origins (empty allows any origin)",
    )
    solana_rpc: AnyUrl | str = Field(
        default="https://api.mainnet-beta.solana.com",
        description="Solana JSON-RPC endpoint",
    )
    solana_commitment: str = Field(
        default="confirmed",
        description="Commitment level used for blockhash and transaction lookups",
    )
    solana_rpc_timeout: float = Field(
        default=15.0,
        description="Timeout in seconds applied to every Solana RPC request",
        gt=0,
    )
    treasury_pubkey: str | None = Field(
        default=None,
        description="Solana account that receives every bet transfer",
    )
    min_bet_sol: float = Field(
        default=0.01,
        description="Smallest accepted bet amount, in SOL",
        gt=0,
    )

    @field_validator("cors_origin", mode="after")
    @classmethod
    def _parse_cors_origin(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item for item in (part.strip() for part in value.split(",")) if item]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        raise ValueError("CORS_ORIGIN must be provided as a list or comma-separated string")

    @field_validator("solana_commitment")
    @classmethod
    def _validate_commitment(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in VALID_COMMITMENTS:
            raise ValueError(
                "SOLANA_COMMITMENT must be one of: " + ", ".join(sorted(VALID_COMMITMENTS))
            )
        return normalized

    @field_validator("treasury_pubkey", "admin_token", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("treasury_pubkey")
    @classmethod
    def _validate_treasury(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            Pubkey.from_string(value)
        except ValueError as exc:
            raise ValueError("TREASURY_PUBKEY must be a base-58 Solana public key") from exc
        return value

    def require_production_secrets(self) -> None:
        """Fail fast when a production deployment is missing required secrets."""

        if self.environment.lower() != "production":
            return
        missing = [
            name
            for name, value in (
                ("TREASURY_PUBKEY", self.treasury_pubkey),
                ("ADMIN_TOKEN", self.admin_token),
            )
            if not value
        ]
        if missing:
            raise ValueError(
                f"{', '.join(missing)} must be set when ENVIRONMENT=production"
            )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
