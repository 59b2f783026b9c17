"""Precondition helpers shared by request schemas and services."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

from .core.config import LAMPORTS_PER_SOL
from .errors import ValidationFailed

AMOUNT_QUANTUM = Decimal("0.000000001")

SOLANA_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def ensure(condition: Any, message: str) -> None:
    """Raise :class:`ValidationFailed` when ``condition`` is falsy."""

    if not condition:
        raise ValidationFailed(message)


def parse_amount_sol(value: Any) -> float | None:
    """Parse ``value`` into a positive SOL amount rounded to 9 decimals.

    Returns ``None`` for zero, negative, NaN, infinite or unparseable input.
    """

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    amount = Decimal(str(number))
    # Room for every integer digit plus the nine fractional ones.
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 11)
        clamped = amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)
    if clamped <= 0:
        return None
    return float(clamped)


def to_lamports(amount_sol: float | Decimal | str) -> int:
    """Convert a SOL amount to lamports, rounding half-up."""

    try:
        amount = Decimal(str(amount_sol))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid SOL amount: {amount_sol!r}") from exc
    return int((amount * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_HALF_UP))


def is_solana_address(value: Any) -> bool:
    """Return True when ``value`` looks like a base-58 Solana address."""

    return isinstance(value, str) and SOLANA_ADDRESS_PATTERN.fullmatch(value) is not None
