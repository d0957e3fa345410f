"""
Trade <-> similarity-store payload mapping.

Stores key points by a stable unsigned 63-bit integer derived from the
trade id. Collisions are tolerable because the full trade, id included,
round-trips through the payload.
"""

import hashlib
from datetime import datetime
from typing import Any, Mapping

from app.domain.coaching.entities import Trade, TradeDirection


def point_id_for(trade_id: str) -> int:
    """Map an arbitrary trade id to a stable non-negative integer key."""
    digest = hashlib.sha256(trade_id.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") >> 1


def trade_to_payload(trade: Trade) -> dict[str, Any]:
    return {
        "id": trade.id,
        "symbol": trade.symbol,
        "direction": trade.direction.value,
        "size": trade.size,
        "entry": trade.entry_price,
        "exit": trade.exit_price,
        "pnl": trade.pnl,
        "timestamp": trade.timestamp.isoformat(),
    }


def trade_from_payload(payload: Mapping[str, Any]) -> Trade:
    return Trade(
        id=payload["id"],
        symbol=payload["symbol"],
        direction=TradeDirection(payload["direction"]),
        size=float(payload["size"]),
        entry_price=float(payload["entry"]),
        exit_price=float(payload["exit"]),
        pnl=float(payload["pnl"]),
        timestamp=datetime.fromisoformat(payload["timestamp"]),
    )


def clamp_similarity(score: float) -> float:
    """Clamp a cosine score into [0, 1]."""
    return max(0.0, min(1.0, float(score)))
