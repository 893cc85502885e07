from __future__ import annotations

from typing import Iterable

from .models import Position


def format_pnl(pnl: float) -> str:
    """Signed two-decimal P&L, exactly as reported by the backend."""
    sign = "+" if pnl >= 0 else ""
    return f"{sign}{pnl:.2f}"


def format_price(price: float) -> str:
    return f"{price:.2f}"


def total_pnl(positions: Iterable[Position]) -> float:
    """Sum of backend-reported P&L; individual values are never recomputed."""
    return sum(p.pnl for p in positions)


def describe_position(position: Position) -> str:
    """One-line summary used by the CLI and log messages."""
    return (
        f"{position.symbol or position.security_id or '?'} "
        f"{position.position_type.value} {position.quantity} @ {format_price(position.avg_price)} "
        f"ltp {format_price(position.ltp)} pnl {format_pnl(position.pnl)}"
    )
